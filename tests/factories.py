"""Test data factories using factory_boy pattern.

Usage:
    # Simple creation
    user = UserFactory.build()

    # Create and flush to DB (transaction not committed)
    user = await UserFactory.create_async(db, email="a@x.com")
    task = await TaskFactory.create_async(db, owner_id=user.id, completed=True)
"""

from datetime import UTC, datetime
from typing import TypeVar
from uuid import UUID, uuid4

import factory
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.models import Task, User
from task_manager.security import hash_password

T = TypeVar("T")

DEFAULT_PASSWORD = "longenough1"


def bearer(token: str) -> dict[str, str]:
    """Authorization header for ``token``."""
    return {"Authorization": f"Bearer {token}"}


class AsyncFactoryMixin:
    """Mixin providing async database persistence for factories.

    Subclasses should override _build_kwargs() if they need to inject required fields.
    """

    @classmethod
    def _build_kwargs(cls, *args, **kwargs) -> dict:
        return kwargs

    @classmethod
    async def create_async(cls, db: AsyncSession, *args, **kwargs) -> T:
        """Create and flush to database (transaction not committed)."""
        build_kwargs = cls._build_kwargs(*args, **kwargs)
        instance = cls.build(**build_kwargs)
        db.add(instance)
        await db.flush()
        await db.refresh(instance)
        return instance


class UserFactory(factory.Factory, AsyncFactoryMixin):
    """Users are stored already hashed; the plaintext is DEFAULT_PASSWORD."""

    class Meta:
        model = User

    id = factory.LazyFunction(uuid4)
    name = factory.Sequence(lambda n: f"User {n}")
    email = factory.Sequence(lambda n: f"user{n}@example.com")
    password = factory.LazyFunction(lambda: hash_password(DEFAULT_PASSWORD))
    age = 0
    tokens = factory.LazyFunction(list)
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
    updated_at = factory.LazyFunction(lambda: datetime.now(UTC))


class TaskFactory(factory.Factory, AsyncFactoryMixin):
    class Meta:
        model = Task

    id = factory.LazyFunction(uuid4)
    description = factory.Sequence(lambda n: f"Task {n}")
    completed = False
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
    updated_at = factory.LazyFunction(lambda: datetime.now(UTC))

    @classmethod
    def _build_kwargs(cls, owner_id: UUID, **kwargs) -> dict:
        return {"owner_id": owner_id, **kwargs}
