"""Pydantic schemas for users and authentication."""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, BeforeValidator, EmailStr, Field, StringConstraints

from task_manager.schemas.base import RecordResponse

# bcrypt only considers the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def _strip(value: object) -> object:
    return value.strip() if isinstance(value, str) else value


def _check_password(value: str) -> str:
    if "password" in value.lower():
        raise ValueError("Password cannot contain the word password")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


UserName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
UserEmail = Annotated[EmailStr, BeforeValidator(_strip), AfterValidator(str.lower)]
UserPassword = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=7),
    AfterValidator(_check_password),
]
UserAge = Annotated[int, Field(ge=0)]


class UserCreate(BaseModel):
    """Schema for user registration."""

    name: UserName
    email: UserEmail
    password: UserPassword
    age: UserAge = 0


class LoginRequest(BaseModel):
    """Schema for user login."""

    email: str
    password: str


class UserResponse(RecordResponse):
    """Public user profile; never exposes password, tokens or avatar."""

    name: str
    email: str
    age: int


class AuthResponse(BaseModel):
    """Registration/login response - user profile plus the new bearer token."""

    user: UserResponse
    token: str
