"""User account, session and avatar API router."""

from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, File, Request, Response, UploadFile, status

from task_manager.config import settings
from task_manager.deps import CurrentAuth, DbSession
from task_manager.logger import get_logger
from task_manager.rate_limit import enforce, login_rate_limiter, register_rate_limiter
from task_manager.schemas import AuthResponse, LoginRequest, UserCreate, UserResponse
from task_manager.services import (
    AvatarError,
    CascadeDeleteError,
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UpdateError,
    authenticate_user,
    clear_avatar,
    delete_user,
    get_avatar,
    issue_token,
    register_user,
    revoke_all_tokens,
    revoke_token,
    send_cancellation_email,
    send_welcome_email,
    set_avatar,
    update_user,
)
from task_manager.services.avatars import AVATAR_MEDIA_TYPE
from task_manager.utils import raise_bad_request, raise_internal_error, raise_not_found

router = APIRouter(prefix="/users", tags=["users"])
logger = get_logger(__name__)


@router.post("", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    data: UserCreate,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> AuthResponse:
    """Register a new user and return the first session token."""
    client_key = await enforce(
        request,
        register_rate_limiter,
        "Too many registration attempts. Please try again later.",
    )

    try:
        user, token = await register_user(db, data)
    except EmailAlreadyRegisteredError as e:
        raise_bad_request(str(e), cause=e)
    await db.commit()

    await register_rate_limiter.reset(client_key)
    background_tasks.add_task(send_welcome_email, user.email, user.name)

    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: Request,
    data: LoginRequest,
    db: DbSession,
) -> AuthResponse:
    """Exchange email and password for a new session token."""
    client_key = await enforce(
        request,
        login_rate_limiter,
        "Too many login attempts. Please try again later.",
    )

    try:
        user = await authenticate_user(db, data.email, data.password)
    except InvalidCredentialsError as e:
        logger.warning("Failed login attempt", client_ip=client_key)
        raise_bad_request(str(e), cause=e)

    token = await issue_token(db, user)
    await db.commit()

    logger.info("Successful login", user_id=str(user.id), client_ip=client_key)
    await login_rate_limiter.reset(client_key)

    return AuthResponse(user=UserResponse.model_validate(user), token=token)


@router.post("/logout")
async def logout(auth: CurrentAuth, db: DbSession) -> dict[str, str]:
    """Revoke the token used for this request."""
    await revoke_token(db, auth.user, auth.token)
    await db.commit()
    return {"status": "logged_out"}


@router.post("/logoutAll")
async def logout_all(auth: CurrentAuth, db: DbSession) -> dict[str, Any]:
    """Revoke every token of the current user."""
    revoked = await revoke_all_tokens(db, auth.user)
    await db.commit()
    return {"status": "logged_out", "revoked": revoked}


@router.get("/me", response_model=UserResponse)
async def read_me(auth: CurrentAuth) -> UserResponse:
    """Get the current user's profile."""
    return UserResponse.model_validate(auth.user)


@router.patch("/me", response_model=UserResponse)
async def update_me(
    auth: CurrentAuth,
    db: DbSession,
    payload: dict[str, Any] = Body(...),
) -> UserResponse:
    """Partially update the profile. Allowed fields: name, email, password, age."""
    try:
        user = await update_user(db, auth.user, payload)
    except UpdateError as e:
        raise_bad_request(e.to_detail(), cause=e)
    except EmailAlreadyRegisteredError as e:
        raise_bad_request(str(e), cause=e)
    await db.commit()

    return UserResponse.model_validate(user)


@router.delete("/me", response_model=UserResponse)
async def delete_me(
    auth: CurrentAuth,
    db: DbSession,
    background_tasks: BackgroundTasks,
) -> UserResponse:
    """Delete the account and every task it owns."""
    profile = UserResponse.model_validate(auth.user)
    try:
        await delete_user(db, auth.user)
    except CascadeDeleteError as e:
        raise_internal_error("Account deletion failed", cause=e)

    background_tasks.add_task(send_cancellation_email, profile.email, profile.name)
    return profile


@router.post("/me/avatar")
async def upload_avatar(
    auth: CurrentAuth,
    db: DbSession,
    avatar: UploadFile = File(...),
) -> dict[str, str]:
    """Upload a jpg/png profile image; stored as a normalized PNG."""
    # One byte past the cap is enough for validate_upload to reject the file
    content = await avatar.read(settings.avatar_max_bytes + 1)
    try:
        await set_avatar(db, auth.user, avatar.filename, content)
    except AvatarError as e:
        raise_bad_request({"error": str(e)}, cause=e)
    await db.commit()
    return {"status": "uploaded"}


@router.delete("/me/avatar")
async def delete_avatar(auth: CurrentAuth, db: DbSession) -> dict[str, str]:
    await clear_avatar(db, auth.user)
    await db.commit()
    return {"status": "deleted"}


@router.get("/{user_id}/avatar")
async def read_avatar(user_id: str, db: DbSession) -> Response:
    """Public avatar image for any user."""
    content = await get_avatar(db, user_id)
    if not content:
        raise_not_found("Avatar")
    return Response(content=content, media_type=AVATAR_MEDIA_TYPE)
