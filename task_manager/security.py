"""Security utilities for JWT and password hashing."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID, uuid4

import bcrypt
import jwt

from task_manager.config import settings
from task_manager.logger import get_logger

logger = get_logger(__name__)


class TokenError(Exception):
    """Base exception for bearer token failures."""


class InvalidTokenError(TokenError):
    """Signature, format or claims are not acceptable."""


class TokenExpiredError(TokenError):
    """Token signature is valid but the token is past its expiry."""


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    """Create a new JWT access token.

    Every token carries a random ``jti`` so two logins in the same second
    still produce distinct, individually revocable tokens. ``exp`` is only
    set when an expiry policy is configured or ``expires_delta`` is given.
    """
    to_encode = data.copy()
    now = datetime.now(UTC)
    to_encode.setdefault("iat", now)
    to_encode.setdefault("jti", uuid4().hex)

    if expires_delta is None and settings.access_token_expire_minutes:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    if expires_delta is not None:
        to_encode["exp"] = now + expires_delta

    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode and validate a JWT access token.

    Raises:
        TokenExpiredError: the token is past its ``exp`` claim.
        InvalidTokenError: bad signature, malformed token or missing subject.
    """
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.debug("JWT token expired")
        raise TokenExpiredError("Token expired") from exc
    except jwt.PyJWTError as exc:
        logger.warning(
            "JWT decode failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise InvalidTokenError(str(exc)) from exc


def verify_token(token: str) -> UUID:
    """Verify a raw bearer token and return the user id it was issued to.

    Only proves the token was minted by this server and is unexpired; whether
    it is still live (not logged out) is checked against the user's token list.
    """
    payload = decode_access_token(token)
    try:
        return UUID(payload["sub"])
    except (TypeError, ValueError, AttributeError) as exc:
        raise InvalidTokenError("Invalid subject claim") from exc
