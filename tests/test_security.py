"""Tests for security utilities (JWT tokens and password hashing)."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch
from uuid import uuid4

import jwt
import pytest

from task_manager.config import settings
from task_manager.security import (
    InvalidTokenError,
    TokenExpiredError,
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
    verify_token,
)


def test_hash_password_is_not_plaintext():
    """
    GIVEN a plaintext password
    WHEN hashing it
    THEN the stored value differs from the plaintext and verifies against it
    """
    hashed = hash_password("longenough1")

    assert hashed != "longenough1"
    assert hashed.startswith("$2")
    assert verify_password("longenough1", hashed) is True
    assert verify_password("wrong-secret", hashed) is False


def test_hash_password_is_salted():
    assert hash_password("longenough1") != hash_password("longenough1")


def test_verify_password_rejects_non_bcrypt_value():
    assert verify_password("longenough1", "longenough1") is False


def test_create_access_token_with_custom_expiry():
    """
    GIVEN a data payload and custom expiry delta
    WHEN creating an access token
    THEN the token should contain the data and custom expiry
    """
    token = create_access_token({"sub": "user123"}, timedelta(hours=2))

    decoded = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    assert decoded["sub"] == "user123"
    exp_datetime = datetime.fromtimestamp(decoded["exp"], tz=UTC)
    assert abs((exp_datetime - (datetime.now(UTC) + timedelta(hours=2))).total_seconds()) < 5


def test_create_access_token_with_default_expiry():
    """
    GIVEN a data payload without custom expiry
    WHEN creating an access token
    THEN the token should use default expiry from settings
    """
    token = create_access_token({"sub": "user456"})

    decoded = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    exp_datetime = datetime.fromtimestamp(decoded["exp"], tz=UTC)
    expected_exp = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)

    assert abs((exp_datetime - expected_exp).total_seconds()) < 5


def test_create_access_token_without_expiry_policy():
    """A zero expiry setting produces tokens without an exp claim."""
    with patch.object(settings, "access_token_expire_minutes", 0):
        token = create_access_token({"sub": "user789"})

    decoded = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    assert "exp" not in decoded


def test_tokens_for_same_subject_are_distinct():
    """Two tokens minted in the same instant still differ (jti)."""
    first = create_access_token({"sub": "same-user"})
    second = create_access_token({"sub": "same-user"})

    assert first != second


def test_decode_access_token_valid():
    token = create_access_token({"sub": "user789", "role": "admin"})

    payload = decode_access_token(token)

    assert payload["sub"] == "user789"
    assert payload["role"] == "admin"


def test_decode_access_token_expired():
    """
    GIVEN an expired JWT token
    WHEN decoding the token
    THEN TokenExpiredError is raised and a debug message logged
    """
    token = create_access_token({"sub": "expired_user"}, timedelta(seconds=-1))

    with patch("task_manager.security.logger.debug") as mock_debug:
        with pytest.raises(TokenExpiredError):
            decode_access_token(token)

    mock_debug.assert_called_once_with("JWT token expired")


def test_decode_access_token_bad_signature():
    token = jwt.encode({"sub": "user"}, "some-other-secret", algorithm="HS256")

    with pytest.raises(InvalidTokenError):
        decode_access_token(token)


def test_decode_access_token_garbage():
    with pytest.raises(InvalidTokenError):
        decode_access_token("not-a-jwt")


def test_decode_access_token_requires_subject():
    token = jwt.encode({"role": "admin"}, settings.secret_key, algorithm=settings.jwt_algorithm)

    with pytest.raises(InvalidTokenError):
        decode_access_token(token)


def test_verify_token_returns_user_id():
    user_id = uuid4()
    token = create_access_token({"sub": str(user_id)})

    assert verify_token(token) == user_id


def test_verify_token_rejects_non_uuid_subject():
    token = create_access_token({"sub": "not-a-uuid"})

    with pytest.raises(InvalidTokenError):
        verify_token(token)
