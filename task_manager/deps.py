"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from task_manager.deps import CurrentAuth, DbSession

    async def my_endpoint(db: DbSession, auth: CurrentAuth):
        # db is AsyncSession with get_db dependency injected
        # auth is the AuthContext for the bearer token on the request
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.auth import AuthContext, get_current_auth
from task_manager.database import get_db

DbSession = Annotated[AsyncSession, Depends(get_db)]
CurrentAuth = Annotated[AuthContext, Depends(get_current_auth)]

__all__ = ["CurrentAuth", "DbSession"]
