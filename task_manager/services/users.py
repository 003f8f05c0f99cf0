"""User account service: registration, credentials, profile and deletion."""

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Final

from fastapi.concurrency import run_in_threadpool
from pydantic import TypeAdapter
from sqlalchemy import delete, func, inspect, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.logger import get_logger, log_exception
from task_manager.models import Task, User
from task_manager.schemas.user import UserAge, UserCreate, UserEmail, UserName, UserPassword
from task_manager.security import hash_password, verify_password
from task_manager.services.tokens import issue_token
from task_manager.services.updates import FieldRule, apply_validated, assign, validate_update

logger = get_logger(__name__)


class UserServiceError(Exception):
    """Base exception for user service errors."""


class EmailAlreadyRegisteredError(UserServiceError):
    """Another account already uses this email."""


class InvalidCredentialsError(UserServiceError):
    """Email/password pair does not match an account."""


class CascadeDeleteError(UserServiceError):
    """Deleting a user and the tasks they own did not complete."""


USER_UPDATE_RULES: Final[Mapping[str, FieldRule[User]]] = MappingProxyType(
    {
        "name": FieldRule(TypeAdapter(UserName), assign("name")),
        "email": FieldRule(TypeAdapter(UserEmail), assign("email")),
        # Plaintext here; save_user hashes it before the flush
        "password": FieldRule(TypeAdapter(UserPassword), assign("password")),
        "age": FieldRule(TypeAdapter(UserAge), assign("age")),
    }
)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def _hash_password_if_changed(user: User) -> bool:
    """Replace a newly assigned plaintext password with its hash.

    Uses the attribute history since the last flush, so an untouched password
    is never hashed a second time.
    """
    history = inspect(user).attrs.password.history
    if not history.added:
        return False
    user.password = await run_in_threadpool(hash_password, user.password)
    return True


async def save_user(db: AsyncSession, user: User) -> User:
    """Write path for users: hash a changed password, then flush."""
    rehashed = await _hash_password_if_changed(user)
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as exc:
        # Lost a race with another request registering the same email
        await db.rollback()
        raise EmailAlreadyRegisteredError("Email already registered") from exc
    if rehashed:
        logger.debug("Password hashed", user_id=str(user.id))
    return user


async def email_in_use(db: AsyncSession, email: str) -> bool:
    result = await db.execute(select(func.count(User.id)).where(User.email == email))
    return result.scalar_one() > 0


async def register_user(db: AsyncSession, data: UserCreate) -> tuple[User, str]:
    """Create an account and its first session token."""
    if await email_in_use(db, data.email):
        raise EmailAlreadyRegisteredError("Email already registered")

    user = User(
        name=data.name,
        email=data.email,
        password=data.password,
        age=data.age,
        # Initialized so issue_token never lazy-loads the collection
        tokens=[],
    )
    await save_user(db, user)
    token = await issue_token(db, user)
    logger.info("User registered", user_id=str(user.id))
    return user, token


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    """Return the user for a matching email/password pair.

    Raises ``InvalidCredentialsError`` for unknown email and wrong password
    alike.
    """
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    user = result.scalar_one_or_none()
    if user is None or not await run_in_threadpool(verify_password, password, user.password):
        raise InvalidCredentialsError("Unable to login")
    return user


async def update_user(db: AsyncSession, user: User, payload: Mapping[str, Any]) -> User:
    """Apply an allow-listed partial update to ``user``.

    The whole payload is validated (including email uniqueness) before any
    attribute is touched.
    """
    cleaned = validate_update(USER_UPDATE_RULES, payload)
    new_email = cleaned.get("email")
    if new_email is not None and new_email != user.email and await email_in_use(db, new_email):
        raise EmailAlreadyRegisteredError("Email already registered")

    changed = apply_validated(user, USER_UPDATE_RULES, cleaned)
    await save_user(db, user)
    logger.info("User updated", user_id=str(user.id), fields=changed)
    return user


async def delete_user(db: AsyncSession, user: User) -> int:
    """Delete ``user`` together with every task they own.

    Both deletes run in one transaction; on failure it is rolled back and
    ``CascadeDeleteError`` is raised so no orphaned tasks remain unnoticed.
    Returns the number of tasks removed.
    """
    user_id = user.id
    try:
        result = await db.execute(delete(Task).where(Task.owner_id == user_id))
        await db.delete(user)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        log_exception(logger, exc, "Cascade delete failed", user_id=str(user_id))
        raise CascadeDeleteError(f"Failed to delete user {user_id}") from exc

    tasks_deleted = result.rowcount or 0
    logger.info("User deleted", user_id=str(user_id), tasks_deleted=tasks_deleted)
    return tasks_deleted
