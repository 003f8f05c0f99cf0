"""Task API router. All routes are scoped to the authenticated user."""

from typing import Any

from fastapi import APIRouter, Body, Query, status

from task_manager.deps import CurrentAuth, DbSession
from task_manager.logger import get_logger
from task_manager.schemas import TaskCreate, TaskResponse
from task_manager.services import (
    InvalidTaskQueryError,
    TaskNotFoundError,
    TaskQuery,
    UpdateError,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    update_task,
)
from task_manager.utils import raise_bad_request, raise_not_found

router = APIRouter(prefix="/tasks", tags=["tasks"])
logger = get_logger(__name__)


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create(
    data: TaskCreate,
    auth: CurrentAuth,
    db: DbSession,
) -> TaskResponse:
    """Create a task owned by the caller."""
    task = await create_task(db, auth, data)
    await db.commit()
    return TaskResponse.model_validate(task)


@router.get("", response_model=list[TaskResponse])
async def list_all(
    auth: CurrentAuth,
    db: DbSession,
    completed: bool | None = Query(None, description="Only tasks with this completion state"),
    limit: int | None = Query(None, ge=0, description="Page size; 0 or absent returns all"),
    skip: int = Query(0, ge=0, description="Number of tasks to skip"),
    sort_by: str | None = Query(
        None,
        alias="sortBy",
        description=(
            "<field>_<asc|desc>, e.g. created_at_desc. Any other suffix is read as part of the"
            " field name, so an unknown direction is rejected with 400 rather than sorted ascending"
        ),
    ),
) -> list[TaskResponse]:
    """List the caller's tasks with optional filter, pagination and sorting."""
    query = TaskQuery(completed=completed, limit=limit, skip=skip, sort_by=sort_by)
    try:
        tasks = await list_tasks(db, auth, query)
    except InvalidTaskQueryError as e:
        raise_bad_request(str(e), cause=e)
    return [TaskResponse.model_validate(task) for task in tasks]


@router.get("/{task_id}", response_model=TaskResponse)
async def read(task_id: str, auth: CurrentAuth, db: DbSession) -> TaskResponse:
    try:
        task = await get_task(db, auth, task_id)
    except TaskNotFoundError as e:
        logger.debug("Task not found", task_id=task_id)
        raise_not_found("Task", cause=e)
    return TaskResponse.model_validate(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update(
    task_id: str,
    auth: CurrentAuth,
    db: DbSession,
    payload: dict[str, Any] = Body(...),
) -> TaskResponse:
    """Partially update a task. Allowed fields: description, completed."""
    try:
        task = await update_task(db, auth, task_id, payload)
    except UpdateError as e:
        raise_bad_request(e.to_detail(), cause=e)
    except TaskNotFoundError as e:
        logger.debug("Task not found for update", task_id=task_id)
        raise_not_found("Task", cause=e)
    await db.commit()
    return TaskResponse.model_validate(task)


@router.delete("/{task_id}", response_model=TaskResponse)
async def delete(task_id: str, auth: CurrentAuth, db: DbSession) -> TaskResponse:
    try:
        task = await delete_task(db, auth, task_id)
    except TaskNotFoundError as e:
        logger.debug("Task not found for deletion", task_id=task_id)
        raise_not_found("Task", cause=e)
    response = TaskResponse.model_validate(task)
    await db.commit()
    return response
