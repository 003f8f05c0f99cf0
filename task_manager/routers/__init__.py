"""API routers package."""

from task_manager.routers import tasks, users

__all__ = [
    "tasks",
    "users",
]
