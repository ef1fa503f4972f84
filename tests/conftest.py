"""
Shared fixtures for Copypanda backend tests.

Each test gets a fresh database (a throw-away SQLite file through aiosqlite
unless TEST_DATABASE_URL points somewhere else), created with create_all and
dropped afterwards.  The language model is replaced by ``FakeTextGenerator``
so pipeline runs are deterministic and need no Ollama.
"""
from __future__ import annotations

import asyncio
import os
from typing import AsyncGenerator, List, Optional, Tuple

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Override DATABASE_URL *before* any app module is imported, so that
# settings.DATABASE_URL and the global engine never point at production.
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL or "sqlite+aiosqlite:///./copypanda_test.db"

from app.database import Base, get_db, get_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.models import database_models  # noqa: E402,F401
from app.services.llm_client import GenerationError, get_text_generator  # noqa: E402
from app.services.run_manager import run_manager  # noqa: E402


# ---------------------------------------------------------------------------
# Fake language model
# ---------------------------------------------------------------------------

class FakeTextGenerator:
    """
    Scripted stand-in for the text generator.

    - Editor calls (system prompt of the editor) echo the draft back.
    - Prompts containing any string in ``fail_on`` raise ``GenerationError``.
    - Queued ``responses`` are returned first, in order.
    - If ``gate`` is set, every call waits for it.
    """

    BODY = "Plain paragraph text produced by the model."

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Optional[str]]] = []
        self.fail_on: List[str] = []
        self.responses: List[str] = []
        self.gate: Optional[asyncio.Event] = None
        self.healthy = True

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        self.calls.append((prompt, system))
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0)

        if any(marker in prompt for marker in self.fail_on):
            raise GenerationError("model returned HTTP 500")
        if self.responses:
            return self.responses.pop(0)
        if system and "professional editor" in system:
            return prompt.split("Draft:\n", 1)[1]
        return self.BODY

    async def check_health(self) -> bool:
        return self.healthy

    def prompts_containing(self, text: str) -> List[str]:
        return [prompt for prompt, _ in self.calls if text in prompt]


# ---------------------------------------------------------------------------
# Per-test fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh schema per test; yields the session factory bound to it."""
    url = TEST_DATABASE_URL or f"sqlite+aiosqlite:///{tmp_path / 'copypanda_test.db'}"
    engine = create_async_engine(url, echo=False, poolclass=NullPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    # Runs still in flight must not outlive the schema
    await run_manager.shutdown()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and inspecting data directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_generator() -> FakeTextGenerator:
    return FakeTextGenerator()


@pytest_asyncio.fixture(autouse=True)
async def _reset_runs() -> AsyncGenerator[None, None]:
    run_manager.reset()
    yield
    await run_manager.shutdown()
    run_manager.reset()


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker,
    fake_generator: FakeTextGenerator,
) -> AsyncGenerator[AsyncClient, None]:
    """
    httpx AsyncClient wired to the FastAPI app with the DB, session factory
    and text generator dependencies overridden.
    """

    async def _override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_text_generator] = lambda: fake_generator

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

AUTH_HEADERS = {
    "X-User-Id": "test-user-1",
    "X-User-Email": "test1@example.com",
    "X-User-Name": "Test User 1",
}

AUTH_HEADERS_USER2 = {
    "X-User-Id": "test-user-2",
    "X-User-Email": "test2@example.com",
    "X-User-Name": "Test User 2",
}


def headings(markdown: str) -> List[str]:
    """Markdown heading lines, in document order."""
    return [line for line in markdown.splitlines() if line.startswith("#")]
