"""Unit tests for exception utilities."""

import pytest
from fastapi import HTTPException

from task_manager.utils.exceptions import (
    AUTHENTICATE_DETAIL,
    raise_bad_request,
    raise_internal_error,
    raise_not_found,
    raise_too_many_requests,
    raise_unauthorized,
)


class TestRaiseNotFound:
    def test_basic_usage(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_not_found("Task")
        assert exc_info.value.status_code == 404
        assert exc_info.value.detail == "Task not found"

    def test_preserves_cause(self):
        original = ValueError("Original error")
        with pytest.raises(HTTPException) as exc_info:
            raise_not_found("Task", cause=original)
        assert exc_info.value.__cause__ is original


class TestRaiseBadRequest:
    def test_basic_usage(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_bad_request("Invalid input")
        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "Invalid input"

    def test_structured_detail(self):
        detail = {"error": "Invalid updates!", "fields": ["owner"]}
        with pytest.raises(HTTPException) as exc_info:
            raise_bad_request(detail)
        assert exc_info.value.detail == detail


class TestRaiseUnauthorized:
    def test_default_detail_and_header(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_unauthorized()
        assert exc_info.value.status_code == 401
        assert exc_info.value.detail == AUTHENTICATE_DETAIL
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


class TestRaiseTooManyRequests:
    def test_with_retry_after(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_too_many_requests("Too many", retry_after=60)
        assert exc_info.value.status_code == 429
        assert exc_info.value.headers == {"Retry-After": "60"}

    def test_without_retry_after(self):
        with pytest.raises(HTTPException) as exc_info:
            raise_too_many_requests("Too many")
        assert exc_info.value.headers is None


class TestRaiseInternalError:
    def test_basic_usage(self):
        original = RuntimeError("boom")
        with pytest.raises(HTTPException) as exc_info:
            raise_internal_error("Account deletion failed", cause=original)
        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "Account deletion failed"
        assert exc_info.value.__cause__ is original
