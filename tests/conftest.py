from __future__ import annotations

import os
import tempfile
from pathlib import Path

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Test-mode runtime: throwaway SQLite file, fixed curriculum.
_DB_DIR = Path(tempfile.mkdtemp(prefix="caresim-tests-"))
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_DB_DIR / 'api.db'}")
os.environ.setdefault("CURRICULUM_SIZE", "6")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from caresim.db.base import Base  # noqa: E402
from caresim.main import app  # noqa: E402


@pytest.fixture(scope="session")
def client() -> TestClient:
    with TestClient(app) as tc:
        yield tc


@pytest_asyncio.fixture
async def db_session(tmp_path: Path):
    """Isolated database per test for service-level tests."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'service.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()
