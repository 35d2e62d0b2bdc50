import os
import tempfile

# Point the app-wide engine at a throwaway directory before backend is imported
os.environ.setdefault("ELORIZE_DATA_DIR", tempfile.mkdtemp(prefix="elorize-test-"))

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from backend.models import Base  # noqa: E402
from backend.repository import FlashcardRepository  # noqa: E402


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def repo(db) -> FlashcardRepository:
    return FlashcardRepository(db)
