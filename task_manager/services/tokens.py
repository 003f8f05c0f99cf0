"""Session token lifecycle: issue, revoke one, revoke all."""

from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.logger import get_logger
from task_manager.models import User, UserToken
from task_manager.security import create_access_token

logger = get_logger(__name__)


async def issue_token(db: AsyncSession, user: User) -> str:
    """Mint a token for ``user`` and append it to their live token list."""
    token = create_access_token(data={"sub": str(user.id)})
    user.tokens.append(UserToken(token=token))
    await db.flush()
    logger.debug("Token issued", user_id=str(user.id), live_tokens=len(user.tokens))
    return token


async def revoke_token(db: AsyncSession, user: User, token: str) -> bool:
    """Remove exactly ``token`` from the user's list. Returns False if absent."""
    matches = [entry for entry in user.tokens if entry.token == token]
    for entry in matches:
        user.tokens.remove(entry)
    await db.flush()
    return bool(matches)


async def revoke_all_tokens(db: AsyncSession, user: User) -> int:
    """Clear every live token of ``user``. Returns how many were revoked."""
    count = len(user.tokens)
    user.tokens.clear()
    await db.flush()
    logger.info("All tokens revoked", user_id=str(user.id), revoked=count)
    return count
