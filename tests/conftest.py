"""Test fixtures and configuration."""

import io
import logging
import os
import struct
import sys
import zlib
from collections.abc import Awaitable, Callable
from typing import Any

# Settings are read at import time; configure the environment first
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "testing"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SENDGRID_API_KEY"] = ""
# Rate limiting stays in-memory for tests
os.environ.pop("REDIS_URL", None)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
import structlog  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from task_manager import database  # noqa: E402
from task_manager.rate_limit import login_rate_limiter, register_rate_limiter  # noqa: E402
from tests.factories import DEFAULT_PASSWORD, bearer  # noqa: E402


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(colors=False),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


@pytest.fixture(autouse=True)
def reset_rate_limiters():
    """Clear in-memory limiter state so tests never block each other."""
    login_rate_limiter.clear()
    register_rate_limiter.clear()
    yield
    login_rate_limiter.clear()
    register_rate_limiter.clear()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Fresh SQLite database file per test, schema created from the models.

    NullPool gives every session its own connection, so uncommitted work in
    one session is invisible to the others, as with PostgreSQL.
    """
    from task_manager.models import Task, User, UserToken  # noqa: F401

    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(database.Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def session_maker(db_engine):
    """Route the API's get_db dependency to the test engine."""
    maker = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    previous = database.set_test_session_maker(maker)
    yield maker
    database.set_test_session_maker(previous)


@pytest_asyncio.fixture(scope="function")
async def db(session_maker):
    """Session for arranging and inspecting data.

    Tests commit their setup before calling the API, since requests use
    their own sessions.
    """
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def public_client(session_maker):
    """Unauthenticated client against the ASGI app."""
    from task_manager.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


RegisterFn = Callable[..., Awaitable[dict[str, Any]]]


@pytest.fixture
def register(public_client) -> RegisterFn:
    """Register a user through the API; returns the response body.

    Usage:
        body = await register(email="a@x.com")
        token = body["token"]
    """
    counter = {"n": 0}

    async def _register(**overrides: Any) -> dict[str, Any]:
        counter["n"] += 1
        payload = {
            "name": f"User {counter['n']}",
            "email": f"user{counter['n']}@example.com",
            "password": DEFAULT_PASSWORD,
            **overrides,
        }
        response = await public_client.post("/users", json=payload)
        assert response.status_code == 201, response.text
        return response.json()

    return _register


@pytest_asyncio.fixture(scope="function")
async def registered(register) -> dict[str, Any]:
    """A registered user: {"user": {...}, "token": "..."}."""
    return await register(name="Test User", email="test@example.com")


@pytest_asyncio.fixture(scope="function")
async def client(session_maker, registered):
    """Client authenticated as the ``registered`` user."""
    from task_manager.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers=bearer(registered["token"]),
    ) as client_instance:
        yield client_instance


@pytest.fixture
def png_bytes() -> bytes:
    """A small non-square PNG image."""
    image = Image.new("RGB", (400, 300), color=(200, 30, 30))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


@pytest.fixture
def huge_png_bytes() -> bytes:
    """A few hundred bytes declaring a 20000x20000 1-bit image."""
    header = struct.pack(">IIBBBBB", 20000, 20000, 1, 0, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b"\x00" * 2501))
        + _png_chunk(b"IEND", b"")
    )
