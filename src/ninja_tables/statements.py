"""Parameterized statement construction for the generic CRUD operations.

Identifiers only reach SQL text through :meth:`Dialect.quote_identifier`;
values only reach the engine as bound parameters. Limits are validated
integers rendered by :meth:`Dialect.limit_clause`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ninja_tables.dialects import Dialect, TableRef
from ninja_tables.exceptions import InvalidArgumentError
from ninja_tables.rows import Row, Scalar, to_scalar

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 1000
MIN_LIMIT = 1


def resolve_limit(
    limit: int | None,
    *,
    default: int = DEFAULT_LIMIT,
    table: str = "<table>",
    operation: str = "fetch_rows",
) -> int:
    """Return the effective row limit.

    ``None`` falls back to *default*; explicit values must be positive integers.
    """
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise InvalidArgumentError(
            table=table,
            operation=operation,
            detail=f"limit must be an integer, got {type(limit).__name__}",
        )
    if limit < MIN_LIMIT:
        raise InvalidArgumentError(
            table=table,
            operation=operation,
            detail=f"limit must be >= {MIN_LIMIT}, got {limit}",
        )
    return limit


@dataclass(frozen=True)
class Statement:
    """SQL text plus its ordered bound parameter values."""

    sql: str
    params: tuple[Scalar, ...] = ()


class StatementBuilder:
    """Builds dialect-correct, parameterized statements for one engine."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    def _column(self, name: str) -> str:
        return self._dialect.quote_identifier(name, kind="column")

    def _select(self, table: TableRef, projection: str, limit: int | None) -> str:
        target = self._dialect.qualify(table)
        if limit is None:
            return f"SELECT {projection} FROM {target}"
        clause = self._dialect.limit_clause(limit)
        if self._dialect.limit_style == "top":
            return f"SELECT {clause} {projection} FROM {target}"
        return f"SELECT {projection} FROM {target} {clause}"

    def _where(self, key_column: str, index: int, value: Scalar) -> str:
        column = self._dialect.key_expression(self._column(key_column), value)
        return f"WHERE {column} = {self._dialect.placeholder(index)}"

    def select_all(self, table: TableRef, limit: int | None = None) -> Statement:
        sql = self._select(table, "*", resolve_limit(limit, table=table.name, operation="fetch_rows"))
        return self._built("select_all", Statement(sql))

    def select_by_key(self, table: TableRef, key_column: str, value: Any) -> Statement:
        """Select every row whose *key_column* equals *value*; uniqueness is not assumed."""
        key = to_scalar(value, column=key_column)
        sql = f"{self._select(table, '*', None)} {self._where(key_column, 1, key)}"
        return self._built("select_by_key", Statement(sql, (key,)))

    def select_column_by_key(
        self, table: TableRef, column: str, key_column: str, value: Any, *, limit: int = 1
    ) -> Statement:
        target = self._dialect.qualify(table)
        clause = self._dialect.limit_clause(resolve_limit(limit, table=table.name, operation="fetch_password_hash"))
        key = to_scalar(value, column=key_column)
        where = self._where(key_column, 1, key)
        if self._dialect.limit_style == "top":
            sql = f"SELECT {clause} {self._column(column)} FROM {target} {where}"
        else:
            sql = f"SELECT {self._column(column)} FROM {target} {where} {clause}"
        return self._built("select_column_by_key", Statement(sql, (key,)))

    def insert(self, table: TableRef, row: Row) -> Statement:
        if not row:
            raise InvalidArgumentError(table=table.name, operation="create", detail="data must not be empty")
        columns = ", ".join(self._column(name) for name in row)
        markers = ", ".join(self._dialect.placeholder(i) for i in range(1, len(row) + 1))
        sql = f"INSERT INTO {self._dialect.qualify(table)} ({columns}) VALUES ({markers})"
        return self._built("insert", Statement(sql, row.to_params()))

    def update(self, table: TableRef, row: Row, key_column: str, key_value: Any) -> Statement:
        if not row:
            raise InvalidArgumentError(table=table.name, operation="update", detail="data must not be empty")
        assignments = ", ".join(
            f"{self._column(name)} = {self._dialect.placeholder(i)}" for i, name in enumerate(row, start=1)
        )
        key = to_scalar(key_value, column=key_column)
        where = self._where(key_column, len(row) + 1, key)
        sql = f"UPDATE {self._dialect.qualify(table)} SET {assignments} {where}"
        params = (*row.to_params(), key)
        return self._built("update", Statement(sql, params))

    def delete(self, table: TableRef, key_column: str, key_value: Any) -> Statement:
        key = to_scalar(key_value, column=key_column)
        sql = f"DELETE FROM {self._dialect.qualify(table)} {self._where(key_column, 1, key)}"
        return self._built("delete", Statement(sql, (key,)))

    def _built(self, kind: str, statement: Statement) -> Statement:
        logger.debug("Built %s statement for %s: %s", kind, self._dialect.label, statement.sql)
        return statement
