"""Transactional account emails sent through the SendGrid v3 HTTP API.

Delivery is fire-and-forget: failures are logged and never propagate into
the account action that triggered them.
"""

import httpx

from task_manager.config import settings
from task_manager.logger import get_logger, log_exception, log_external_api

logger = get_logger(__name__)


class EmailClient:
    """Minimal SendGrid mail/send client."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        sender: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.sendgrid_api_key
        self.base_url = base_url or settings.sendgrid_base_url
        self.sender = sender or settings.email_from
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    @log_external_api("sendgrid")
    async def send(self, *, to: str, subject: str, text: str) -> None:
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.sender},
            "subject": subject,
            "content": [{"type": "text/plain", "value": text}],
        }
        timeout = httpx.Timeout(10.0, connect=5.0)
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=self._transport,
        ) as client:
            response = await client.post(
                "/mail/send",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
            response.raise_for_status()


async def _deliver(client: EmailClient | None, *, kind: str, to: str, subject: str, text: str) -> bool:
    client = client or EmailClient()
    if not client.enabled:
        logger.debug("Email delivery disabled, skipping", kind=kind)
        return False
    try:
        await client.send(to=to, subject=subject, text=text)
    except httpx.HTTPError as exc:
        log_exception(logger, exc, "Email delivery failed", level="warning", include_traceback=False, kind=kind)
        return False
    return True


async def send_welcome_email(email: str, name: str, client: EmailClient | None = None) -> bool:
    return await _deliver(
        client,
        kind="welcome",
        to=email,
        subject="Thanks for joining in!",
        text=f"Welcome to the app, {name}. Let us know how you get along with it.",
    )


async def send_cancellation_email(email: str, name: str, client: EmailClient | None = None) -> bool:
    return await _deliver(
        client,
        kind="cancellation",
        to=email,
        subject="Sorry to see you go!",
        text=f"Goodbye, {name}. Is there anything we could have done to keep you on board?",
    )
