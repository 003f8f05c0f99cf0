"""Task service. Every query is scoped to the authenticated owner."""

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Final
from uuid import UUID

from pydantic import StrictBool, TypeAdapter
from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from task_manager.auth import AuthContext
from task_manager.logger import get_logger
from task_manager.models import Task
from task_manager.schemas.task import TaskCreate, TaskDescription
from task_manager.services.updates import FieldRule, apply_validated, assign, validate_update

logger = get_logger(__name__)


class TaskServiceError(Exception):
    """Base exception for task service errors."""


class TaskNotFoundError(TaskServiceError):
    """Task does not exist or belongs to someone else."""


class InvalidTaskQueryError(TaskServiceError):
    """List query modifiers could not be interpreted."""


TASK_UPDATE_RULES: Final[Mapping[str, FieldRule[Task]]] = MappingProxyType(
    {
        "description": FieldRule(TypeAdapter(TaskDescription), assign("description")),
        "completed": FieldRule(TypeAdapter(StrictBool), assign("completed")),
    }
)

SORTABLE_FIELDS: Final[Mapping[str, InstrumentedAttribute[Any]]] = MappingProxyType(
    {
        "created_at": Task.created_at,
        "createdAt": Task.created_at,
        "updated_at": Task.updated_at,
        "updatedAt": Task.updated_at,
        "description": Task.description,
        "completed": Task.completed,
    }
)


@dataclass(frozen=True)
class TaskQuery:
    """Composable list modifiers; each is optional and independent."""

    completed: bool | None = None
    limit: int | None = None
    skip: int = 0
    sort_by: str | None = None


def parse_task_id(task_id: str | UUID) -> UUID:
    """Malformed ids are reported the same way as ids that do not exist."""
    if isinstance(task_id, UUID):
        return task_id
    try:
        return UUID(task_id)
    except ValueError as exc:
        raise TaskNotFoundError(f"Task {task_id} not found") from exc


def parse_sort(sort_by: str) -> tuple[InstrumentedAttribute[Any], bool]:
    """Parse ``<field>_<asc|desc>`` (direction optional) into column and descending flag."""
    field, _, direction = sort_by.rpartition("_")
    if not field or direction not in ("asc", "desc"):
        field, direction = sort_by, "asc"

    column = SORTABLE_FIELDS.get(field)
    if column is None:
        raise InvalidTaskQueryError(f"Cannot sort by '{field}'")
    return column, direction == "desc"


def _owned(auth: AuthContext) -> Select[tuple[Task]]:
    return select(Task).where(Task.owner_id == auth.user.id)


async def create_task(db: AsyncSession, auth: AuthContext, data: TaskCreate) -> Task:
    task = Task(
        description=data.description,
        completed=data.completed,
        owner_id=auth.user.id,
    )
    db.add(task)
    await db.flush()
    await db.refresh(task)
    logger.info("Task created", task_id=str(task.id), owner_id=str(auth.user.id))
    return task


async def list_tasks(db: AsyncSession, auth: AuthContext, query: TaskQuery) -> list[Task]:
    stmt = _owned(auth)

    if query.completed is not None:
        stmt = stmt.where(Task.completed == query.completed)

    if query.sort_by:
        column, descending = parse_sort(query.sort_by)
        stmt = stmt.order_by(column.desc() if descending else column.asc())
    stmt = stmt.order_by(Task.created_at, Task.id)

    if query.limit:
        stmt = stmt.limit(query.limit)
    if query.skip:
        stmt = stmt.offset(query.skip)

    result = await db.execute(stmt)
    return list(result.scalars().all())


async def get_task(db: AsyncSession, auth: AuthContext, task_id: str | UUID) -> Task:
    task_uuid = parse_task_id(task_id)
    result = await db.execute(_owned(auth).where(Task.id == task_uuid))
    task = result.scalar_one_or_none()

    if not task:
        raise TaskNotFoundError(f"Task {task_id} not found")

    return task


async def update_task(
    db: AsyncSession,
    auth: AuthContext,
    task_id: str | UUID,
    payload: Mapping[str, Any],
) -> Task:
    """Apply an allow-listed partial update to one of the caller's tasks.

    The payload is validated before the lookup, so a disallowed field is
    reported even for ids the caller does not own.
    """
    cleaned = validate_update(TASK_UPDATE_RULES, payload)
    task = await get_task(db, auth, task_id)

    apply_validated(task, TASK_UPDATE_RULES, cleaned)
    await db.flush()
    await db.refresh(task)

    return task


async def delete_task(db: AsyncSession, auth: AuthContext, task_id: str | UUID) -> Task:
    task = await get_task(db, auth, task_id)
    await db.delete(task)
    await db.flush()
    logger.info("Task deleted", task_id=str(task.id), owner_id=str(auth.user.id))
    return task
