"""Pytest configuration helpers.

Puts ``backend/`` on ``sys.path`` so tests can import the ``threadflow``
package without an install, and sets test settings before anything
imports ``threadflow.config``.
"""
import asyncio
import os
import sys
import tempfile

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
BACKEND = os.path.join(ROOT, "backend")
if BACKEND not in sys.path:
    sys.path.insert(0, BACKEND)

_TMP = tempfile.mkdtemp(prefix="threadflow-tests-")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP, 'app.db')}"
os.environ["OPENAI_API_KEY"] = "sk-test-0123456789abcdef"
os.environ["OPENAI_BASE_URL"] = "https://llm.test/v1"
os.environ["AUTH_URL"] = "https://auth.test"
os.environ["AUTH_API_KEY"] = "anon-key"
os.environ["DEFAULT_CREDITS"] = "3"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["GATEWAY_URL"] = ""

import pytest  # noqa: E402
from fastapi import Header, HTTPException  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from threadflow.database import Base, build_engine, build_session_factory  # noqa: E402
from threadflow.errors import UpstreamServiceError  # noqa: E402
from threadflow.models import Profile  # noqa: E402
from threadflow.schemas.script import Scene, Script  # noqa: E402
from threadflow.services.auth import AuthUser  # noqa: E402
from threadflow.services.sessions import SessionContext, SessionRegistry  # noqa: E402


def run(coro):
    """Run a coroutine to completion on a fresh event loop."""
    return asyncio.run(coro)


def make_script(count: int = 2) -> Script:
    return Script(scenes=[
        Scene(
            id=i,
            dialogue=f"Line {i}",
            visualInstruction=f"Shot {i}",
            duration="3s",
        )
        for i in range(1, count + 1)
    ])


class FakeGenerator:
    """Stand-in gateway: returns ``script``, raises ``error`` or waits on ``gate``."""

    def __init__(self, script: Script | None = None, error: Exception | None = None):
        self.script = script or make_script()
        self.error = error
        self.calls: list[tuple[str, str | None]] = []
        self.gate: asyncio.Event | None = None
        self.started: asyncio.Event | None = None

    def hold(self) -> None:
        """Make the next call block until ``release()``; call inside a running loop."""
        self.gate = asyncio.Event()
        self.started = asyncio.Event()

    def release(self) -> None:
        if self.gate is not None:
            self.gate.set()

    async def generate(self, thread_text, vibe=None, *, timeout=None):
        self.calls.append((thread_text, vibe))
        if self.started is not None:
            self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.script


@pytest.fixture
def db_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", poolclass=NullPool)

    async def _create():
        import threadflow.models  # noqa: F401
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    run(_create())
    yield engine
    run(engine.dispose())


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def ctx():
    return SessionContext(user_id="user-1", session_id="session-1", email="maya@example.com")


async def seed_profile(session_factory, user_id: str = "user-1", credits: int = 3) -> None:
    async with session_factory() as db:
        db.add(Profile(user_id=user_id, display_name=user_id, credits=credits, tier="free"))
        await db.commit()


async def read_credits(session_factory, user_id: str = "user-1") -> int | None:
    from threadflow.services.profile_store import ProfileStore

    async with session_factory() as db:
        profile = await ProfileStore(db).find_profile(user_id)
        return profile.credits if profile else None


async def count_projects(session_factory, user_id: str = "user-1") -> int:
    from threadflow.services.project_store import ProjectStore

    async with session_factory() as db:
        return len(await ProjectStore(db).list_for_owner(user_id))


async def fake_current_user(authorization: str | None = Header(None)) -> AuthUser:
    """Test auth: ``Bearer <user-id>`` resolves to that user."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    user_id = authorization.split(" ", 1)[1]
    return AuthUser(id=user_id, email=f"{user_id}@example.com")


@pytest.fixture
def upstream_error():
    return UpstreamServiceError("Rate limit reached for gpt-4o")
