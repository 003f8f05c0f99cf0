"""Profile image upload, normalization and retrieval."""

import io
from pathlib import Path
from uuid import UUID

from fastapi.concurrency import run_in_threadpool
from PIL import Image, ImageOps, UnidentifiedImageError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from task_manager.config import settings
from task_manager.logger import get_logger, log_timing
from task_manager.models import User

logger = get_logger(__name__)

ALLOWED_EXTENSIONS = frozenset({"jpg", "jpeg", "png"})
AVATAR_MEDIA_TYPE = "image/png"


class AvatarError(Exception):
    """Uploaded file cannot be used as an avatar."""


def validate_upload(filename: str | None, content: bytes) -> None:
    """Reject unsupported extensions and oversized files before decoding."""
    name = Path(filename or "").name
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if extension not in ALLOWED_EXTENSIONS:
        raise AvatarError("Please upload a supported image file type.")
    if len(content) > settings.avatar_max_bytes:
        raise AvatarError(f"File exceeds {settings.avatar_max_bytes} byte limit")
    if not content:
        raise AvatarError("Uploaded file is empty")


def normalize_avatar(content: bytes, size: int | None = None) -> bytes:
    """Crop-resize to a square of ``size`` pixels and re-encode as PNG."""
    edge = size or settings.avatar_size
    try:
        with Image.open(io.BytesIO(content)) as image:
            width, height = image.size
            if width * height > settings.avatar_max_pixels:
                raise AvatarError(f"Image dimensions {width}x{height} are too large")
            image.load()
            converted = image.convert("RGBA")
    except Image.DecompressionBombError as exc:
        raise AvatarError("Image dimensions are too large") from exc
    except (UnidentifiedImageError, OSError) as exc:
        raise AvatarError("Uploaded file is not a valid image") from exc

    with log_timing("normalize_avatar", logger=logger, level="debug", source_bytes=len(content)) as ctx:
        resized = ImageOps.fit(converted, (edge, edge))
        buffer = io.BytesIO()
        resized.save(buffer, format="PNG")
        ctx["output_bytes"] = buffer.tell()
    return buffer.getvalue()


async def set_avatar(db: AsyncSession, user: User, filename: str | None, content: bytes) -> None:
    validate_upload(filename, content)
    user.avatar = await run_in_threadpool(normalize_avatar, content)
    await db.flush()
    logger.info("Avatar updated", user_id=str(user.id))


async def clear_avatar(db: AsyncSession, user: User) -> None:
    user.avatar = None
    await db.flush()


async def get_avatar(db: AsyncSession, user_id: str | UUID) -> bytes | None:
    """Public lookup; malformed ids and missing images both return None."""
    if not isinstance(user_id, UUID):
        try:
            user_id = UUID(user_id)
        except ValueError:
            return None
    result = await db.execute(select(User.avatar).where(User.id == user_id))
    return result.scalar_one_or_none()
