"""
Test fixtures for the RadioCalico backend.

Provides:
- Storage backends on a temporary SQLite file (and PostgreSQL when
  TEST_POSTGRES_URL is set)
- Rating store bound to that backend
- FastAPI test client (httpx AsyncClient) with the backend injected
"""
import os

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from radiocalico.config import Settings
from radiocalico.dependencies import get_backend
from radiocalico.main import app
from radiocalico.models import Base
from radiocalico.services.database import create_backend
from radiocalico.services.hashing import song_hash
from radiocalico.services.ratings import RatingStore

POSTGRES_URL = os.getenv("TEST_POSTGRES_URL")


# ============================================
# Sample data
# ============================================

SAMPLE_TRACK = {
    "title": "Never Gonna Give You Up",
    "artist": "Rick Astley",
    "album": "Whenever You Need Somebody",
}
SAMPLE_HASH = song_hash(SAMPLE_TRACK["artist"], SAMPLE_TRACK["title"], SAMPLE_TRACK["album"])


def make_settings(database_url: str, **overrides) -> Settings:
    """Settings isolated from any local .env file."""
    return Settings(_env_file=None, database_url=database_url, **overrides)


async def open_backend(kind: str, tmp_path, **overrides):
    """Create a backend with a fresh, initialized schema."""
    if kind == "postgres":
        backend = create_backend(make_settings(POSTGRES_URL, **overrides))
        async with backend.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    else:
        backend = create_backend(make_settings(f"sqlite:///{tmp_path / 'radiocalico.db'}", **overrides))
    await backend.init_schema()
    return backend


# ============================================
# Fixtures
# ============================================

@pytest.fixture(params=[
    "sqlite",
    pytest.param(
        "postgres",
        marks=pytest.mark.skipif(not POSTGRES_URL, reason="TEST_POSTGRES_URL not set"),
    ),
])
async def backend(request, tmp_path):
    """Initialized storage backend, once per available variant."""
    backend = await open_backend(request.param, tmp_path)
    yield backend
    await backend.close()


@pytest.fixture
def track():
    """Sample track metadata plus its song key."""
    return {**SAMPLE_TRACK, "song_hash": SAMPLE_HASH}


@pytest.fixture
def store(backend):
    return RatingStore(backend)


@pytest.fixture
def count_rows(backend):
    """Async helper: number of rows of a model matching optional filters."""

    async def _count(model, *criteria) -> int:
        async with backend.session() as session:
            result = await session.execute(select(func.count()).select_from(model).where(*criteria))
            return result.scalar_one()

    return _count


@pytest.fixture
async def client(backend):
    """
    Async test client wired to the test backend.

    The app lifespan is not run; the backend is injected through the
    get_backend dependency instead.
    """
    app.dependency_overrides[get_backend] = lambda: backend
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        ac.backend = backend  # type: ignore
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def sqlite_backend_factory(tmp_path):
    """Build extra SQLite backends with custom settings; closed on teardown."""
    opened = []

    async def _open(**overrides):
        backend = await open_backend("sqlite", tmp_path, **overrides)
        opened.append(backend)
        return backend

    yield _open
    for backend in opened:
        await backend.close()
