"""
Environment Bootloader.

Single place for environment validation. It is used by:
1. Application Startup (main.py) -> mode="critical"
2. CI Pipelines -> mode="dry-run"
3. Smoke Tests (Manual/Cron) -> mode="full" (CLI)
"""

import asyncio
import os
import sys
import time
from dataclasses import dataclass
from enum import Enum

import httpx
import redis.asyncio as aioredis
from pydantic import ValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from task_manager.config import DEV_SECRET_KEY, settings
from task_manager.logger import get_logger

logger = get_logger(__name__)


class BootMode(str, Enum):
    CRITICAL = "critical"  # DB only (Fast fail for startup)
    FULL = "full"  # DB + Redis + SendGrid (Smoke tests)
    DRY_RUN = "dry-run"  # Static config check only (CI lint)


@dataclass
class ServiceStatus:
    service: str
    status: str  # 'ok', 'warning', 'error', 'skipped'
    message: str
    duration_ms: float = 0.0


class Bootloader:
    """Handles environment validation and service connectivity checks."""

    @staticmethod
    async def validate(mode: BootMode = BootMode.CRITICAL) -> bool:
        """Run validation checks. Returns True if passed, False if failed.

        If mode is CRITICAL, this may call sys.exit(1) on failure.
        """
        logger.info("Bootloader starting validation", mode=mode.value)

        # 1. Static Configuration Check (Always run)
        if not Bootloader._check_static_config():
            if mode == BootMode.CRITICAL:
                logger.critical("Static configuration check failed. Refusing to start.")
                sys.exit(1)
            return False

        if mode == BootMode.DRY_RUN:
            logger.info("Dry-run configuration check passed")
            return True

        # 2. Connectivity Checks
        results = [await Bootloader._check_database()]

        if mode == BootMode.FULL:
            results.append(await Bootloader._check_redis())
            results.append(await Bootloader._check_sendgrid())

        # 3. Report Results
        passed = True
        for res in results:
            if res.status == "error":
                passed = False
                logger.error(
                    "Service check failed",
                    service=res.service,
                    error=res.message,
                    duration_ms=res.duration_ms,
                )
            elif res.status == "warning":
                logger.warning(
                    "Service check warning",
                    service=res.service,
                    message=res.message,
                    duration_ms=res.duration_ms,
                )
            else:
                logger.info(
                    "Service check passed",
                    service=res.service,
                    status=res.status,
                    duration_ms=res.duration_ms,
                )

        if not passed:
            if mode == BootMode.CRITICAL:
                logger.critical("Critical service checks failed. Application cannot start.")
                sys.exit(1)
            return False

        logger.info("Bootloader validation successful")
        return True

    @staticmethod
    def print_config() -> None:
        """Print loaded configuration if DEBUG is enabled."""
        if os.getenv("DEBUG", "").lower() not in ("true", "1", "yes"):
            return

        print("\n" + "=" * 60)
        print("Config loaded (DEBUG mode)")
        print("=" * 60)

        # Safe fields - values can be displayed in full
        safe_fields = [
            "debug",
            "environment",
            "jwt_algorithm",
            "access_token_expire_minutes",
            "bcrypt_rounds",
            "email_from",
            "avatar_max_bytes",
            "trust_proxy",
        ]

        # Sensitive fields - only show "set"/"not set" status
        sensitive_fields = [
            "database_url",
            "secret_key",
            "redis_url",
            "sendgrid_api_key",
        ]

        for field in safe_fields:
            value = getattr(settings, field, None)
            if value is not None:
                print(f"  {field}: {value}")

        print("")
        for field in sensitive_fields:
            value = getattr(settings, field, None)
            status = "set" if value else "not set"
            print(f"  {field}: {status}")

        print("=" * 60 + "\n")

    @staticmethod
    def _check_static_config() -> bool:
        """Verify the loaded settings are usable for this environment."""
        try:
            _ = settings.database_url
        except ValidationError as e:
            logger.error("Configuration load failed", error=str(e))
            return False

        if not settings.secret_key:
            logger.error("SECRET_KEY is empty")
            return False

        if settings.environment == "production" and settings.secret_key == DEV_SECRET_KEY:
            logger.error("Development SECRET_KEY is not allowed in production")
            return False

        if settings.bcrypt_rounds < 4 or settings.bcrypt_rounds > 31:
            logger.error("BCRYPT_ROUNDS out of range", bcrypt_rounds=settings.bcrypt_rounds)
            return False

        return True

    @staticmethod
    async def _check_database() -> ServiceStatus:
        """Verify database connectivity (SELECT 1)."""
        start = time.perf_counter()
        engine = None
        try:
            engine = create_async_engine(settings.database_url, echo=False)
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "ok", "Connection successful", duration_ms)

        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("database", "error", str(e), duration_ms)
        finally:
            if engine:
                await engine.dispose()

    @staticmethod
    async def _check_redis() -> ServiceStatus:
        if not settings.redis_url:
            return ServiceStatus("redis", "skipped", "Not configured")

        start = time.perf_counter()
        try:
            client = aioredis.from_url(settings.redis_url, decode_responses=True)
            await client.ping()
            await client.aclose()
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("redis", "ok", "Ping successful", duration_ms)
        except aioredis.RedisError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            # Rate limiting falls back to process memory
            return ServiceStatus("redis", "warning", str(e), duration_ms)

    @staticmethod
    async def _check_sendgrid() -> ServiceStatus:
        """Validate the SendGrid API key."""
        if not settings.emails_enabled:
            return ServiceStatus("sendgrid", "skipped", "Not configured")

        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                resp = await client.get(
                    f"{settings.sendgrid_base_url}/scopes",
                    headers={"Authorization": f"Bearer {settings.sendgrid_api_key}"},
                )
            duration_ms = (time.perf_counter() - start) * 1000
            if resp.status_code == 200:
                return ServiceStatus("sendgrid", "ok", "API Key valid", duration_ms)
            # Emails are best-effort; a bad key never blocks startup
            return ServiceStatus("sendgrid", "warning", f"HTTP {resp.status_code}", duration_ms)
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - start) * 1000
            return ServiceStatus("sendgrid", "warning", str(e), duration_ms)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser()
    parser.add_argument("--mode", type=str, default="full", choices=["critical", "full", "dry-run"])
    args = parser.parse_args()

    Bootloader.print_config()
    print(f"Bootloader: Running validation cycle (mode={args.mode})")

    try:
        success = asyncio.run(Bootloader.validate(BootMode(args.mode)))
    except KeyboardInterrupt:
        print("\nAborted.")
        sys.exit(130)

    if success:
        print("Validation check passed.")
        sys.exit(0)
    else:
        print("Validation check failed.")
        sys.exit(1)
