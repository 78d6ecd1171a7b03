"""Per-engine dialect rules: identifier quoting, placeholders, schemas, and limits.

Each supported engine maps to one immutable :class:`Dialect` value. Table,
schema, and column names cannot be bound as parameters, so every identifier
is checked against a strict grammar here before it is quoted into SQL text.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Sequence

from ninja_tables.exceptions import InvalidArgumentError

# ASCII letters, digits and underscore; at least one non-digit.
_IDENTIFIER_RE = re.compile(r"(?!\d+\Z)[A-Za-z0-9_]+")

_POSITIONAL_STYLES = frozenset({"qmark", "numeric", "numeric_dollar", "format"})
_NAMED_STYLES = frozenset({"named", "pyformat"})


class EngineKind(str, Enum):
    """Relational engines the table access layer can talk to."""

    SQLSERVER = "sqlserver"
    POSTGRES = "postgres"
    MYSQL = "mysql"
    SQLITE = "sqlite"

    @classmethod
    def from_url(cls, url: str) -> EngineKind:
        """Infer the engine from a SQLAlchemy URL scheme such as ``postgresql+asyncpg``."""
        scheme = url.split("://", 1)[0].split("+", 1)[0].lower()
        try:
            return _SCHEME_ENGINES[scheme]
        except KeyError:
            raise ValueError(f"Unsupported database URL scheme: '{scheme}'") from None


_SCHEME_ENGINES: dict[str, EngineKind] = {
    "mssql": EngineKind.SQLSERVER,
    "sqlserver": EngineKind.SQLSERVER,
    "postgresql": EngineKind.POSTGRES,
    "postgres": EngineKind.POSTGRES,
    "mysql": EngineKind.MYSQL,
    "mariadb": EngineKind.MYSQL,
    "sqlite": EngineKind.SQLITE,
}


def validate_identifier(name: Any, *, kind: str = "identifier", max_length: int = 128) -> str:
    """Check *name* against the safe-identifier grammar and return it unchanged.

    Raises:
        InvalidArgumentError: If the name is empty, too long, purely numeric,
            or contains anything other than ASCII letters, digits, and ``_``.
    """
    if not isinstance(name, str) or not name:
        raise InvalidArgumentError(
            table=str(name) if name else "<empty>",
            operation="validate_identifier",
            detail=f"The {kind} name must be a non-empty string.",
        )
    if len(name) > max_length:
        raise InvalidArgumentError(
            table=name[:32],
            operation="validate_identifier",
            detail=f"The {kind} name exceeds {max_length} characters.",
        )
    if not _IDENTIFIER_RE.fullmatch(name):
        raise InvalidArgumentError(
            table="<rejected>",
            operation="validate_identifier",
            detail=f"The {kind} name may only contain letters, digits and underscores and cannot be purely numeric.",
        )
    return name


@dataclass(frozen=True)
class TableRef:
    """A target table, optionally qualified by schema.

    A ``None`` schema resolves to the active dialect's default.
    """

    name: str
    schema: str | None = None

    def __post_init__(self) -> None:
        validate_identifier(self.name, kind="table")
        if self.schema is not None:
            validate_identifier(self.schema, kind="schema")

    def __str__(self) -> str:
        return f"{self.schema}.{self.name}" if self.schema else self.name


@dataclass(frozen=True)
class Dialect:
    """Identifier, placeholder, schema, and limit rules of a single engine."""

    engine: EngineKind
    label: str
    quote_open: str
    quote_close: str
    default_schema: str | None
    paramstyle: str
    limit_style: str  # "top" (prefix after SELECT) or "limit" (trailing clause)
    max_identifier_length: int
    # Applied to a key column compared with a text value; None compares the column as is.
    text_key_cast: str | None = None
    # Lower-cased fragments / codes used to classify driver errors.
    missing_table_markers: tuple[str, ...] = field(default=())
    query_error_markers: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        if self.paramstyle not in _POSITIONAL_STYLES | _NAMED_STYLES:
            raise ValueError(f"Unsupported paramstyle: '{self.paramstyle}'")

    # -- identifiers ------------------------------------------------------

    def quote_identifier(self, name: str, *, kind: str = "identifier") -> str:
        validate_identifier(name, kind=kind, max_length=self.max_identifier_length)
        escaped = name.replace(self.quote_close, self.quote_close * 2)
        return f"{self.quote_open}{escaped}{self.quote_close}"

    def unquote_identifier(self, quoted: str) -> str:
        """Inverse of :meth:`quote_identifier`."""
        if not (quoted.startswith(self.quote_open) and quoted.endswith(self.quote_close)) or len(quoted) < 2:
            raise ValueError(f"Not a quoted {self.label} identifier: {quoted!r}")
        return quoted[len(self.quote_open) : -len(self.quote_close)].replace(self.quote_close * 2, self.quote_close)

    def key_expression(self, quoted_column: str, value: Any) -> str:
        """Return the left-hand side of a key comparison against *value*.

        Engines without implicit text conversion compare a ``str`` key through a
        text cast of the column, so ``"1"`` matches an integer key of 1.
        """
        if self.text_key_cast is None or not isinstance(value, str):
            return quoted_column
        return self.text_key_cast.format(quoted_column)

    def resolve_schema(self, table: TableRef) -> str | None:
        return table.schema if table.schema is not None else self.default_schema

    def qualify(self, table: TableRef) -> str:
        """Return the quoted ``schema.table`` reference (or just the table when schemaless)."""
        quoted_table = self.quote_identifier(table.name, kind="table")
        schema = self.resolve_schema(table)
        if schema is None:
            return quoted_table
        return f"{self.quote_identifier(schema, kind='schema')}.{quoted_table}"

    # -- parameters -------------------------------------------------------

    @property
    def is_positional(self) -> bool:
        return self.paramstyle in _POSITIONAL_STYLES

    def placeholder(self, index: int) -> str:
        """Return the marker for the *index*-th (1-based) bound parameter."""
        if self.paramstyle == "qmark":
            return "?"
        if self.paramstyle == "numeric":
            return f":{index}"
        if self.paramstyle == "numeric_dollar":
            return f"${index}"
        if self.paramstyle == "format":
            return "%s"
        if self.paramstyle == "named":
            return f":p{index}"
        return f"%(p{index})s"

    def bind(self, params: Sequence[Any]) -> tuple[Any, ...] | dict[str, Any] | None:
        """Shape ordered parameter values the way the driver's paramstyle expects."""
        if not params:
            return None
        if self.is_positional:
            return tuple(params)
        return {f"p{i}": value for i, value in enumerate(params, start=1)}

    def with_paramstyle(self, paramstyle: str | None) -> Dialect:
        """Return a copy that renders placeholders for a live driver's paramstyle."""
        if not paramstyle or paramstyle == self.paramstyle:
            return self
        return replace(self, paramstyle=paramstyle)

    # -- limits -----------------------------------------------------------

    def limit_clause(self, n: int) -> str:
        if self.limit_style == "top":
            return f"TOP ({int(n)})"
        return f"LIMIT {int(n)}"


DIALECTS: dict[EngineKind, Dialect] = {
    EngineKind.SQLSERVER: Dialect(
        engine=EngineKind.SQLSERVER,
        label="SQL Server",
        quote_open="[",
        quote_close="]",
        default_schema="dbo",
        paramstyle="qmark",
        limit_style="top",
        max_identifier_length=128,
        missing_table_markers=("(208)", "invalid object name", "42s02"),
        query_error_markers=("(207)", "invalid column name", "42s22", "(245)", "conversion failed"),
    ),
    EngineKind.POSTGRES: Dialect(
        engine=EngineKind.POSTGRES,
        label="PostgreSQL",
        quote_open='"',
        quote_close='"',
        default_schema="public",
        paramstyle="numeric_dollar",
        limit_style="limit",
        max_identifier_length=63,
        text_key_cast="{}::text",
        missing_table_markers=("42p01", "3f000", "undefinedtableerror", "invalidschemanameerror"),
        query_error_markers=("42703", "22p02", "42804", "undefinedcolumnerror", "datatypemismatch"),
    ),
    EngineKind.MYSQL: Dialect(
        engine=EngineKind.MYSQL,
        label="MySQL",
        quote_open="`",
        quote_close="`",
        default_schema=None,
        paramstyle="format",
        limit_style="limit",
        max_identifier_length=64,
        missing_table_markers=("(1146", "(1049", "doesn't exist", "unknown database"),
        query_error_markers=("(1054", "(1064", "(1366", "unknown column", "incorrect"),
    ),
    EngineKind.SQLITE: Dialect(
        engine=EngineKind.SQLITE,
        label="SQLite",
        quote_open="[",
        quote_close="]",
        default_schema=None,
        paramstyle="qmark",
        limit_style="limit",
        max_identifier_length=128,
        missing_table_markers=("no such table", "unknown database"),
        query_error_markers=("no such column", "has no column named", "syntax error", "datatype mismatch"),
    ),
}


def get_dialect(engine: EngineKind | str) -> Dialect:
    """Return the dialect for *engine* (an :class:`EngineKind` or its value)."""
    try:
        return DIALECTS[EngineKind(engine)]
    except ValueError:
        raise ValueError(f"Unsupported engine: '{engine}'. Available: {[e.value for e in EngineKind]}") from None
