from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

import devcamper.models  # noqa: F401
from devcamper.config import Settings
from devcamper.database import Database, connect_database
from devcamper.main import create_app


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "node_env": None,
        "database_url": f"sqlite+aiosqlite:///{tmp_path / 'devcamper_test.db'}",
        "public_dir": tmp_path / "public",
        "file_upload_path": tmp_path / "public" / "uploads",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    (tmp_path / "public").mkdir()
    return make_settings(tmp_path)


@pytest.fixture
async def database(settings: Settings) -> AsyncGenerator[Database]:
    db = await connect_database(settings)
    await db.create_all()
    yield db
    await db.dispose()


@pytest.fixture
def app(settings: Settings, database: Database, clock: FakeClock) -> FastAPI:
    return create_app(settings, database=database, clock=clock)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
