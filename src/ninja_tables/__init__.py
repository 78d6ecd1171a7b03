"""Ninja Tables: provider-agnostic table access layer for Ninja Stack."""

from ninja_tables.cipher import FieldCipher, FieldCipherAdapter, parse_field_set
from ninja_tables.connections import (
    ConnectionManager,
    ConnectionProfile,
    EngineConnectionProvider,
    InvalidConnectionURL,
    redact_url,
)
from ninja_tables.credentials import check_password, hash_password, verify_credentials
from ninja_tables.diagnostics import DiagnosticInfo, DiagnosticKey
from ninja_tables.dialects import DIALECTS, Dialect, EngineKind, TableRef, get_dialect, validate_identifier
from ninja_tables.exceptions import (
    ConflictError,
    ConnectionFailedError,
    InvalidArgumentError,
    QueryError,
    TableAccessError,
    TableNotFoundError,
    UnsupportedOperationError,
)
from ninja_tables.protocols import ConnectionProvider, TableStore
from ninja_tables.repository import TableRepository
from ninja_tables.rows import Row, Scalar
from ninja_tables.statements import DEFAULT_LIMIT, Statement, StatementBuilder

__all__ = [
    "DEFAULT_LIMIT",
    "DIALECTS",
    "ConflictError",
    "ConnectionFailedError",
    "ConnectionManager",
    "ConnectionProfile",
    "ConnectionProvider",
    "DiagnosticInfo",
    "DiagnosticKey",
    "Dialect",
    "EngineConnectionProvider",
    "EngineKind",
    "FieldCipher",
    "FieldCipherAdapter",
    "InvalidArgumentError",
    "InvalidConnectionURL",
    "QueryError",
    "Row",
    "Scalar",
    "Statement",
    "StatementBuilder",
    "TableAccessError",
    "TableNotFoundError",
    "TableRef",
    "TableRepository",
    "TableStore",
    "UnsupportedOperationError",
    "check_password",
    "get_dialect",
    "hash_password",
    "parse_field_set",
    "redact_url",
    "validate_identifier",
    "verify_credentials",
]
