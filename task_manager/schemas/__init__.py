"""Pydantic schemas package."""

from task_manager.schemas.base import BaseResponse, RecordResponse
from task_manager.schemas.task import TaskCreate, TaskResponse
from task_manager.schemas.user import AuthResponse, LoginRequest, UserCreate, UserResponse

__all__ = [
    "AuthResponse",
    "BaseResponse",
    "LoginRequest",
    "RecordResponse",
    "TaskCreate",
    "TaskResponse",
    "UserCreate",
    "UserResponse",
]
