"""Domain exceptions for the table access layer.

Driver exceptions raised by SQLAlchemy or the underlying DBAPI module are
caught by the repository and re-raised as one of these classes, so callers
branch on a stable taxonomy and never see raw database errors, connection
URLs, or bound values.
"""

from __future__ import annotations


class TableAccessError(Exception):
    """Base exception for all table access errors.

    Attributes:
        table: The table (or ``"<engine>"`` for connection-wide calls) involved.
        operation: The operation that failed (e.g. ``"create"``, ``"fetch_rows"``).
        detail: A sanitised description of what went wrong.
    """

    def __init__(
        self,
        *,
        table: str,
        operation: str,
        detail: str,
        cause: BaseException | None = None,
    ) -> None:
        self.table = table
        self.operation = operation
        self.detail = detail
        msg = f"[{table}] {operation} failed: {detail}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause


class InvalidArgumentError(TableAccessError, ValueError):
    """Raised for malformed identifiers, non-positive limits, or empty required input.

    Always caller-fixable; raised before any connection is acquired.
    """


class TableNotFoundError(TableAccessError):
    """Raised when the target table or schema does not exist."""


class ConflictError(TableAccessError):
    """Raised when a write violates a uniqueness or other integrity constraint."""


class ConnectionFailedError(TableAccessError):
    """Raised when the engine cannot be reached or the connection drops mid-call."""


class UnsupportedOperationError(TableAccessError, NotImplementedError):
    """Raised when the active engine or configuration lacks a requested capability."""


class QueryError(TableAccessError):
    """Raised when the engine rejects a well-formed statement (unknown column, type mismatch)."""
