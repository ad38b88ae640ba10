"""Shared fixtures.

Testing Strategy:
1. Database: in-memory SQLite (aiosqlite) with the schema created from the models
2. AI Services: litellm.acompletion patched at the client boundary
3. Authentication: trusted-gateway header mode, single-user mode where noted
4. External APIs: YouTube served by httpx.MockTransport, nothing leaves the process
"""

import os


# Settings are cached at import time, so the environment must be fixed first
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AUTH_PROVIDER"] = "header"
os.environ["PRIMARY_LLM_MODEL"] = "openai/gpt-4o-mini"
os.environ["AI_RETRY_BASE_DELAY"] = "0"
os.environ["AI_RATE_LIMIT"] = "1000/minute"
os.environ["YOUTUBE_API_KEY"] = "test-key"
os.environ["YOUTUBE_RETRY_BASE_DELAY"] = "0"
# Use litellm's bundled model cost map instead of fetching it over the network on import
os.environ["LITELLM_LOCAL_MODEL_COST_MAP"] = "True"

import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import src.database.init  # noqa: F401  registers every model on Base.metadata
from src.database.base import Base
from src.database.session import get_db_session
from src.insights.providers import get_insight_breaker
from src.middleware.security import limiter
from tests.fixtures.auth_modes import AuthMode


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as session:
        yield session


@pytest.fixture(autouse=True)
def reset_process_state():
    """Breaker and limiter are process-wide; start every test closed and empty."""
    get_insight_breaker.cache_clear()
    limiter.reset()
    yield
    get_insight_breaker.cache_clear()


@pytest.fixture
def app(session_maker):
    from src.main import app as fastapi_app

    async def override_get_db_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    fastapi_app.dependency_overrides[get_db_session] = override_get_db_session
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def client_factory(app) -> AsyncGenerator[Callable[..., Any], None]:
    """Build API clients; each one acts as the given user through the gateway header."""
    clients: list[httpx.AsyncClient] = []

    async def _create(user_id: uuid.UUID | None = None) -> httpx.AsyncClient:
        headers = {"X-User-Id": str(user_id)} if user_id is not None else {}
        client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test", headers=headers)
        clients.append(client)
        return client

    yield _create

    for client in clients:
        await client.aclose()


@pytest.fixture
def user_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
async def client(client_factory, user_id) -> httpx.AsyncClient:
    return await client_factory(user_id)


@pytest.fixture
def auth_mode(request, monkeypatch) -> AuthMode:
    """Switch the identity provider for one test (use with indirect parametrize)."""
    mode = getattr(request, "param", AuthMode.MULTI_USER)
    monkeypatch.setattr("src.auth.config.settings.AUTH_PROVIDER", mode.provider)
    return mode

