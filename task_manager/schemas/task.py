"""Pydantic schemas for tasks."""

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, StringConstraints

from task_manager.schemas.base import RecordResponse

TaskDescription = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class TaskCreate(BaseModel):
    """Schema for creating a task.

    Unknown keys (including any client-supplied owner) are ignored; the owner
    always comes from the authenticated caller.
    """

    description: TaskDescription
    completed: bool = False


class TaskResponse(RecordResponse):
    """Schema for task response."""

    description: str
    completed: bool
    owner_id: UUID
