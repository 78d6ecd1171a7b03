"""Table access protocols: engine-agnostic contracts consumed and exposed by the core."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol, runtime_checkable

from ninja_tables.dialects import EngineKind
from ninja_tables.rows import Row


@runtime_checkable
class ConnectionProvider(Protocol):
    """Supplies ready-to-use connections for one engine.

    ``acquire()`` yields an object with an awaitable ``exec_driver_sql`` (a
    SQLAlchemy ``AsyncConnection`` in practice). The provider owns pooling,
    timeouts, and transaction scope.
    """

    @property
    def engine(self) -> EngineKind: ...

    @property
    def paramstyle(self) -> str | None: ...

    def acquire(self) -> AbstractAsyncContextManager[Any]: ...


@runtime_checkable
class TableStore(Protocol):
    """Generic CRUD, credential lookup, and diagnostics over any relational table.

    "Record not found" is an empty result (or ``0``/``None``), never an error.
    """

    async def fetch_rows(
        self,
        table: str,
        schema: str | None = None,
        limit: int | None = None,
        *,
        decrypt_fields: str | Iterable[str] | None = None,
    ) -> list[Row]:
        """Return up to *limit* rows (default cap 1000)."""
        ...

    async def fetch_by_key(
        self,
        table: str,
        schema: str | None,
        key_column: str,
        value: Any,
        *,
        decrypt_fields: str | Iterable[str] | None = None,
    ) -> list[Row]:
        """Return every row whose *key_column* equals *value*."""
        ...

    async def create(
        self,
        table: str,
        schema: str | None,
        data: Mapping[str, Any],
        encrypt_fields: str | Iterable[str] | None = None,
    ) -> bool:
        """Insert one row."""
        ...

    async def update(
        self,
        table: str,
        schema: str | None,
        key_column: str,
        key_value: Any,
        data: Mapping[str, Any],
        encrypt_fields: str | Iterable[str] | None = None,
    ) -> int:
        """Update matching rows and return the affected-row count."""
        ...

    async def delete(self, table: str, schema: str | None, key_column: str, key_value: Any) -> int:
        """Delete matching rows and return the affected-row count."""
        ...

    async def fetch_password_hash(
        self,
        table: str,
        schema: str | None,
        user_column: str,
        hash_column: str,
        user_value: Any,
    ) -> str | None:
        """Return the stored hash for a user, or ``None`` when the user is absent."""
        ...

    async def fetch_diagnostics(self) -> dict[str, Any]:
        """Return normalised connection metadata."""
        ...
