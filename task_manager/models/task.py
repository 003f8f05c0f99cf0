"""Task model."""

from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from task_manager.database import Base
from task_manager.models.base import TimestampMixin, UUIDMixin


class Task(UUIDMixin, TimestampMixin, Base):
    """A to-do item owned by exactly one user."""

    __tablename__ = "tasks"

    description: Mapped[str] = mapped_column(Text, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # No DB-level cascade: tasks are removed by services.users.delete_user
    owner_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Task {self.id} completed={self.completed}>"
