"""Generic table repository: CRUD, credential lookup, and diagnostics on any engine."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from sqlalchemy.exc import (
    DBAPIError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
)

from ninja_tables.cipher import FieldCipher, FieldCipherAdapter, parse_field_set
from ninja_tables.connections import ConnectionManager
from ninja_tables.diagnostics import DiagnosticInfo, get_probe
from ninja_tables.dialects import Dialect, EngineKind, TableRef, get_dialect
from ninja_tables.exceptions import (
    ConflictError,
    ConnectionFailedError,
    InvalidArgumentError,
    QueryError,
    TableAccessError,
    TableNotFoundError,
    UnsupportedOperationError,
)
from ninja_tables.protocols import ConnectionProvider
from ninja_tables.rows import Row
from ninja_tables.statements import DEFAULT_LIMIT, Statement, StatementBuilder, resolve_limit

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _error_text(exc: BaseException) -> str:
    """Lower-cased driver error text, including SQLSTATE codes when the driver exposes them."""
    orig = getattr(exc, "orig", None) or exc
    parts = [type(orig).__name__, str(orig)]
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            parts.append(str(code))
    return " ".join(parts).lower()


def _matches(text: str, markers: Iterable[str]) -> bool:
    return any(marker in text for marker in markers)


def _is_connection_error(exc: BaseException) -> bool:
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    return isinstance(exc, (OperationalError, InterfaceError, DisconnectionError, OSError))


class TableRepository:
    """Dialect-aware implementation of :class:`~ninja_tables.protocols.TableStore`.

    The repository owns nothing but its dialect, statement builder, optional
    field cipher, and a reference to the connection provider. Every call
    validates its arguments and builds its statement before acquiring a
    connection, so rejected input never reaches the engine. Each call is a
    single round-trip; no retries are attempted.
    """

    def __init__(
        self,
        provider: ConnectionProvider,
        engine: EngineKind | str | None = None,
        *,
        cipher: FieldCipher | None = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        kind = EngineKind(engine) if engine is not None else provider.engine
        self._provider = provider
        self._dialect: Dialect = get_dialect(kind).with_paramstyle(provider.paramstyle)
        self._builder = StatementBuilder(self._dialect)
        self._cipher = FieldCipherAdapter(cipher) if cipher is not None else None
        self._default_limit = resolve_limit(default_limit, table="<repository>", operation="configure")

    @classmethod
    def from_manager(
        cls,
        manager: ConnectionManager,
        profile_name: str = "default",
        *,
        cipher: FieldCipher | None = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> TableRepository:
        """Build a repository for a configured connection profile."""
        provider = manager.get_provider(profile_name)
        return cls(provider, cipher=cipher, default_limit=default_limit)

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    # -- public contract ------------------------------------------------------

    async def fetch_rows(
        self,
        table: str,
        schema: str | None = None,
        limit: int | None = None,
        *,
        decrypt_fields: str | Iterable[str] | None = None,
    ) -> list[Row]:
        """Return up to *limit* rows; without a limit at most ``default_limit`` rows come back."""
        ref = self._table_ref(table, schema, "fetch_rows")
        fields = self._cipher_fields(ref, decrypt_fields, "fetch_rows")
        statement = self._builder.select_all(ref, self._default_limit if limit is None else limit)
        rows = await self._run("fetch_rows", ref, statement, _mapped_rows)
        return self._decrypt_rows(rows, fields)

    async def fetch_by_key(
        self,
        table: str,
        schema: str | None,
        key_column: str,
        value: Any,
        *,
        decrypt_fields: str | Iterable[str] | None = None,
    ) -> list[Row]:
        """Return every row whose *key_column* equals *value* (0..n rows)."""
        ref = self._table_ref(table, schema, "fetch_by_key")
        fields = self._cipher_fields(ref, decrypt_fields, "fetch_by_key")
        statement = self._builder.select_by_key(ref, key_column, value)
        rows = await self._run("fetch_by_key", ref, statement, _mapped_rows)
        return self._decrypt_rows(rows, fields)

    async def create(
        self,
        table: str,
        schema: str | None,
        data: Mapping[str, Any],
        encrypt_fields: str | Iterable[str] | None = None,
    ) -> bool:
        """Insert *data* as one row, encrypting *encrypt_fields* first."""
        ref = self._table_ref(table, schema, "create")
        row = self._write_row(ref, data, encrypt_fields, "create")
        statement = self._builder.insert(ref, row)
        return await self._run("create", ref, statement, lambda result: result.rowcount != 0)

    async def update(
        self,
        table: str,
        schema: str | None,
        key_column: str,
        key_value: Any,
        data: Mapping[str, Any],
        encrypt_fields: str | Iterable[str] | None = None,
    ) -> int:
        """Update rows matching the key; returns the affected-row count (0 when none matched)."""
        ref = self._table_ref(table, schema, "update")
        row = self._write_row(ref, data, encrypt_fields, "update")
        statement = self._builder.update(ref, row, key_column, key_value)
        return await self._run("update", ref, statement, _affected)

    async def delete(self, table: str, schema: str | None, key_column: str, key_value: Any) -> int:
        """Delete rows matching the key; returns the affected-row count (0 when none matched)."""
        ref = self._table_ref(table, schema, "delete")
        statement = self._builder.delete(ref, key_column, key_value)
        return await self._run("delete", ref, statement, _affected)

    async def fetch_password_hash(
        self,
        table: str,
        schema: str | None,
        user_column: str,
        hash_column: str,
        user_value: Any,
    ) -> str | None:
        """Return the stored password hash for *user_value*, or ``None`` if the user is absent."""
        ref = self._table_ref(table, schema, "fetch_password_hash")
        statement = self._builder.select_column_by_key(ref, hash_column, user_column, user_value)
        return await self._run("fetch_password_hash", ref, statement, _first_text)

    async def fetch_diagnostics(self) -> DiagnosticInfo:
        """Return normalised server metadata for the active connection.

        Raises:
            UnsupportedOperationError: If the engine exposes no server metadata.
        """
        label = f"<{self._dialect.engine.value}>"
        probe = get_probe(self._dialect.engine)
        if probe is None:
            raise UnsupportedOperationError(
                table=label,
                operation="fetch_diagnostics",
                detail=f"{self._dialect.label} does not expose server diagnostics.",
            )
        try:
            async with self._provider.acquire() as conn:
                result = await conn.exec_driver_sql(probe.query)
                raw: dict[str, Any] = dict(result.mappings().first() or {})
                for query in probe.supplementary:
                    try:
                        extra = await conn.exec_driver_sql(query)
                    except DBAPIError as exc:
                        if exc.connection_invalidated:
                            raise
                        logger.warning(
                            "Optional %s diagnostics query failed (%s); related keys omitted.",
                            self._dialect.label,
                            type(exc).__name__,
                        )
                        break
                    for column, value in (extra.mappings().first() or {}).items():
                        raw.setdefault(column, value)
        except TableAccessError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            raise self._translate(exc, label, "fetch_diagnostics") from exc
        return probe.normalize(raw)

    # -- internals ------------------------------------------------------------

    def _table_ref(self, table: str, schema: str | None, operation: str) -> TableRef:
        if not isinstance(table, str) or not table.strip():
            raise InvalidArgumentError(table="<empty>", operation=operation, detail="table name is required")
        return TableRef(table, schema)

    def _cipher_fields(
        self, ref: TableRef, fields: str | Iterable[str] | None, operation: str
    ) -> frozenset[str]:
        names = parse_field_set(fields)
        if names and self._cipher is None:
            raise UnsupportedOperationError(
                table=ref.name,
                operation=operation,
                detail="Field encryption was requested but no cipher is configured.",
            )
        return names

    def _write_row(
        self,
        ref: TableRef,
        data: Mapping[str, Any],
        encrypt_fields: str | Iterable[str] | None,
        operation: str,
    ) -> Row:
        if not isinstance(data, Mapping) or not data:
            raise InvalidArgumentError(table=ref.name, operation=operation, detail="data must be a non-empty mapping")
        fields = self._cipher_fields(ref, encrypt_fields, operation)
        row = Row(data)
        if fields:
            row = self._cipher.encrypt_fields(row, fields)
        return row

    def _decrypt_rows(self, rows: list[Row], fields: frozenset[str]) -> list[Row]:
        if not fields:
            return rows
        return [self._cipher.decrypt_fields(row, fields) for row in rows]

    async def _run(
        self,
        operation: str,
        ref: TableRef,
        statement: Statement,
        consume: Callable[[Any], T],
    ) -> T:
        """Execute *statement* on a freshly acquired connection and consume its result there."""
        try:
            async with self._provider.acquire() as conn:
                result = await conn.exec_driver_sql(statement.sql, self._dialect.bind(statement.params))
                return consume(result)
        except TableAccessError:
            raise
        except (SQLAlchemyError, OSError) as exc:
            raise self._translate(exc, str(ref), operation) from exc

    def _translate(self, exc: BaseException, table: str, operation: str) -> TableAccessError:
        """Map a driver failure onto the domain taxonomy."""
        text = _error_text(exc)
        kind = type(exc).__name__
        if isinstance(exc, IntegrityError):
            logger.error("%s %s failed for %s: constraint violation", self._dialect.label, operation, table)
            return ConflictError(
                table=table,
                operation=operation,
                detail="The write violates a uniqueness or integrity constraint.",
                cause=exc,
            )
        if _matches(text, self._dialect.missing_table_markers):
            logger.error("%s %s failed for %s: table not found", self._dialect.label, operation, table)
            return TableNotFoundError(
                table=table,
                operation=operation,
                detail="The table or schema does not exist.",
                cause=exc,
            )
        if _matches(text, self._dialect.query_error_markers):
            logger.error("%s %s failed for %s: %s", self._dialect.label, operation, table, kind)
            return QueryError(
                table=table,
                operation=operation,
                detail="The engine rejected the statement.",
                cause=exc,
            )
        if _is_connection_error(exc):
            logger.error("%s %s failed for %s: %s", self._dialect.label, operation, table, kind)
            return ConnectionFailedError(
                table=table,
                operation=operation,
                detail="Database connection failed.",
                cause=exc,
            )
        logger.error("%s %s failed for %s: %s", self._dialect.label, operation, table, kind)
        return QueryError(table=table, operation=operation, detail="Statement execution failed.", cause=exc)


def _mapped_rows(result: Any) -> list[Row]:
    return [Row.from_result(mapping) for mapping in result.mappings().all()]


def _affected(result: Any) -> int:
    # Some drivers report -1 when the count is unavailable.
    return max(result.rowcount, 0)


def _first_text(result: Any) -> str | None:
    record = result.first()
    if record is None or record[0] is None:
        return None
    value = record[0]
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        # Text hashes kept in binary columns are ASCII; raw digests come back as hex.
        try:
            return raw.decode("ascii")
        except UnicodeDecodeError:
            return raw.hex()
    return str(value)
