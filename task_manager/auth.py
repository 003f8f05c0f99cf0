"""Authentication guard resolving the request's bearer token to a user."""

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.database import get_db
from task_manager.logger import get_logger
from task_manager.models import User, UserToken
from task_manager.security import TokenError, verify_token
from task_manager.utils import raise_unauthorized

logger = get_logger(__name__)

# auto_error=False: a missing header must fail with the same 401 as a bad token
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved for the current request.

    Passed explicitly to every service call that reads or writes user-owned
    data; handlers never derive identity from request bodies.
    """

    user: User
    token: str


async def find_token_owner(db: AsyncSession, user_id: UUID, token: str) -> User | None:
    """Load the user only if ``token`` is still in their live token list."""
    result = await db.execute(
        select(User)
        .join(UserToken, UserToken.user_id == User.id)
        .where(User.id == user_id)
        .where(UserToken.token == token)
    )
    return result.scalars().first()


async def get_current_auth(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> AuthContext:
    """Resolve the authenticated user and token.

    Every failure (missing header, bad signature, expiry, revoked token,
    deleted user) yields the same 401 so callers cannot probe accounts.
    """
    if credentials is None or not credentials.credentials:
        logger.debug("Authentication failed", reason="missing_credentials")
        raise_unauthorized()

    token = credentials.credentials
    try:
        user_id = verify_token(token)
    except TokenError as exc:
        logger.debug("Authentication failed", reason=type(exc).__name__)
        raise_unauthorized(cause=exc)

    user = await find_token_owner(db, user_id, token)
    if user is None:
        logger.warning("Authentication failed", reason="token_not_live", user_id=str(user_id))
        raise_unauthorized()

    return AuthContext(user=user, token=token)
