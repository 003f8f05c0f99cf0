"""Shared utilities."""

from task_manager.utils.exceptions import (
    AUTHENTICATE_DETAIL,
    raise_bad_request,
    raise_internal_error,
    raise_not_found,
    raise_too_many_requests,
    raise_unauthorized,
)

__all__ = [
    "AUTHENTICATE_DETAIL",
    "raise_bad_request",
    "raise_internal_error",
    "raise_not_found",
    "raise_too_many_requests",
    "raise_unauthorized",
]
