"""Services package."""

from task_manager.services.avatars import AvatarError, clear_avatar, get_avatar, set_avatar
from task_manager.services.notifications import EmailClient, send_cancellation_email, send_welcome_email
from task_manager.services.tasks import (
    InvalidTaskQueryError,
    TaskNotFoundError,
    TaskQuery,
    TaskServiceError,
    create_task,
    delete_task,
    get_task,
    list_tasks,
    update_task,
)
from task_manager.services.tokens import issue_token, revoke_all_tokens, revoke_token
from task_manager.services.updates import FieldValidationError, UpdateError, UpdateNotAllowedError
from task_manager.services.users import (
    CascadeDeleteError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserServiceError,
    authenticate_user,
    delete_user,
    register_user,
    update_user,
)

__all__ = [
    "AvatarError",
    "CascadeDeleteError",
    "EmailAlreadyRegisteredError",
    "EmailClient",
    "FieldValidationError",
    "InvalidCredentialsError",
    "InvalidTaskQueryError",
    "TaskNotFoundError",
    "TaskQuery",
    "TaskServiceError",
    "UpdateError",
    "UpdateNotAllowedError",
    "UserServiceError",
    "authenticate_user",
    "clear_avatar",
    "create_task",
    "delete_task",
    "delete_user",
    "get_avatar",
    "get_task",
    "issue_token",
    "list_tasks",
    "register_user",
    "revoke_all_tokens",
    "revoke_token",
    "send_cancellation_email",
    "send_welcome_email",
    "set_avatar",
    "update_task",
    "update_user",
]
