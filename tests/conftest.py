"""Shared fixtures for ninja-tables tests."""

import base64
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from ninja_tables.connections import EngineConnectionProvider
from ninja_tables.dialects import EngineKind
from ninja_tables.repository import TableRepository
from sqlalchemy.ext.asyncio import create_async_engine


class ReversingCipher:
    """Deterministic reversible cipher standing in for the host application's primitive."""

    def encrypt(self, text: str) -> str:
        return "enc:" + base64.b64encode(text[::-1].encode()).decode()

    def decrypt(self, text: str) -> str:
        return base64.b64decode(text.removeprefix("enc:")).decode()[::-1]


class FakeProvider:
    """Connection provider yielding a mocked connection; records each acquire()."""

    def __init__(self, engine: EngineKind, connection: MagicMock | None = None, paramstyle: str | None = None) -> None:
        self._engine = engine
        self._paramstyle = paramstyle
        self.connection = connection or MagicMock()
        if not isinstance(getattr(self.connection, "exec_driver_sql", None), AsyncMock):
            self.connection.exec_driver_sql = AsyncMock()
        self.acquire_count = 0

    @property
    def engine(self) -> EngineKind:
        return self._engine

    @property
    def paramstyle(self) -> str | None:
        return self._paramstyle

    @asynccontextmanager
    async def acquire(self):
        self.acquire_count += 1
        yield self.connection


def make_result(rows: list[dict] | None = None, rowcount: int = 0) -> MagicMock:
    """Build a mocked SQLAlchemy CursorResult."""
    rows = rows or []
    result = MagicMock()
    result.rowcount = rowcount
    result.mappings.return_value.all.return_value = rows
    result.mappings.return_value.first.return_value = rows[0] if rows else None
    result.first.return_value = tuple(rows[0].values()) if rows else None
    return result


@pytest.fixture
def cipher() -> ReversingCipher:
    return ReversingCipher()


@pytest.fixture
async def sqlite_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'tables.db'}")
    async with engine.begin() as conn:
        await conn.exec_driver_sql(
            "CREATE TABLE usuarios ("
            "id INTEGER PRIMARY KEY, "
            "name TEXT NOT NULL, "
            "email TEXT UNIQUE, "
            "password_hash TEXT, "
            "active BOOLEAN)"
        )
    yield engine
    await engine.dispose()


@pytest.fixture
def provider(sqlite_engine) -> EngineConnectionProvider:
    return EngineConnectionProvider(sqlite_engine)


@pytest.fixture
def repository(provider: EngineConnectionProvider, cipher: ReversingCipher) -> TableRepository:
    return TableRepository(provider, cipher=cipher)
