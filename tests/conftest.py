import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path

# Settings are cached on first import; configure them before the app loads
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.gettempdir()) / 'driveros-test-default.db'}",
)

import httpx
import pytest
from httpx import ASGITransport

from app.core.db import build_engine, build_session_factory, get_db, init_database
from app.main import app


@asynccontextmanager
async def open_database(db_path: Path):
    """Fresh SQLite file database with all tables created."""
    engine = build_engine(f"sqlite+aiosqlite:///{db_path}")
    await init_database(engine)
    try:
        yield build_session_factory(engine)
    finally:
        await engine.dispose()


@asynccontextmanager
async def open_client(db_path: Path):
    """HTTP client bound to the app, with ``get_db`` pointed at ``db_path``."""
    async with open_database(db_path) as session_factory:

        async def override_get_db():
            async with session_factory() as session:
                yield session

        app.dependency_overrides[get_db] = override_get_db
        try:
            async with httpx.AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
                yield client
        finally:
            app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "driveros.db"
