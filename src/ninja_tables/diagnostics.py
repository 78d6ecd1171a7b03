"""Connection diagnostics normalised across engines.

Each engine family has its own system-metadata queries; the normalizers map
their raw columns onto the fixed :class:`DiagnosticKey` vocabulary. Keys an
engine cannot supply are omitted rather than filled with placeholders, and
nothing outside the vocabulary (credentials, connection strings) is ever
copied into the result.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from ninja_tables.dialects import EngineKind

DiagnosticInfo = dict[str, Any]


class DiagnosticKey(str, Enum):
    """Stable, additive-only diagnostic vocabulary."""

    PROVIDER = "provider"
    DATABASE = "database"
    VERSION = "version"
    HOST = "host"
    PORT = "port"
    START_TIME = "startTime"
    CONNECTED_USER = "connectedUser"
    SESSION_ID = "sessionId"


# Raw column alias -> vocabulary key, shared by every engine query below.
_COMMON_COLUMNS: dict[str, DiagnosticKey] = {
    "database_name": DiagnosticKey.DATABASE,
    "server_version": DiagnosticKey.VERSION,
    "server_host": DiagnosticKey.HOST,
    "server_port": DiagnosticKey.PORT,
    "start_time": DiagnosticKey.START_TIME,
    "connected_user": DiagnosticKey.CONNECTED_USER,
    "session_id": DiagnosticKey.SESSION_ID,
}

_INTEGER_KEYS = frozenset({DiagnosticKey.PORT, DiagnosticKey.SESSION_ID})


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _collect(provider: str, raw: Mapping[str, Any]) -> DiagnosticInfo:
    info: DiagnosticInfo = {DiagnosticKey.PROVIDER.value: provider}
    for column, key in _COMMON_COLUMNS.items():
        value = raw.get(column)
        if key in _INTEGER_KEYS:
            value = _as_int(value)
        elif isinstance(value, str):
            value = value.strip() or None
        if value is not None:
            info[key.value] = value
    return info


def normalize_postgres(raw: Mapping[str, Any]) -> DiagnosticInfo:
    return _collect("PostgreSQL", raw)


def normalize_sqlserver(raw: Mapping[str, Any]) -> DiagnosticInfo:
    info = _collect("SQL Server", raw)
    version = info.get(DiagnosticKey.VERSION.value)
    if version:
        # @@VERSION spans several lines; the first carries the product and build.
        info[DiagnosticKey.VERSION.value] = version.splitlines()[0].strip()
    return info


def _status_value(raw: Mapping[str, Any], name: str) -> Any:
    """Read a ``SHOW STATUS`` row (``Variable_name``, ``Value``) merged into *raw*."""
    columns = {column.lower(): value for column, value in raw.items()}
    if str(columns.get("variable_name", "")).lower() != name.lower():
        return None
    return columns.get("value")


def normalize_mysql(raw: Mapping[str, Any], *, now: datetime | None = None) -> DiagnosticInfo:
    """MySQL/MariaDB report uptime in seconds instead of a start timestamp."""
    info = _collect("MySQL", raw)
    uptime = _as_int(raw.get("uptime_seconds", _status_value(raw, "Uptime")))
    if uptime is not None and DiagnosticKey.START_TIME.value not in info:
        info[DiagnosticKey.START_TIME.value] = (now or datetime.now(timezone.utc)) - timedelta(seconds=uptime)
    return info


@dataclass(frozen=True)
class DiagnosticProbe:
    """Metadata queries for one engine plus the function that normalises their output.

    ``query`` must succeed; each ``supplementary`` query needs elevated
    privileges or optional server features and may fail without aborting the
    probe.
    """

    query: str
    normalize: Callable[[Mapping[str, Any]], DiagnosticInfo]
    supplementary: tuple[str, ...] = ()


DIAGNOSTIC_PROBES: dict[EngineKind, DiagnosticProbe] = {
    EngineKind.POSTGRES: DiagnosticProbe(
        query=(
            "SELECT current_database() AS database_name, version() AS server_version, "
            "host(inet_server_addr()) AS server_host, inet_server_port() AS server_port, "
            "pg_postmaster_start_time() AS start_time, current_user AS connected_user, "
            "pg_backend_pid() AS session_id"
        ),
        normalize=normalize_postgres,
    ),
    EngineKind.SQLSERVER: DiagnosticProbe(
        query=(
            "SELECT DB_NAME() AS database_name, @@VERSION AS server_version, "
            "@@SERVERNAME AS server_host, SUSER_SNAME() AS connected_user, "
            "@@SPID AS session_id"
        ),
        normalize=normalize_sqlserver,
        supplementary=(
            "SELECT sqlserver_start_time AS start_time FROM sys.dm_os_sys_info",
            "SELECT local_tcp_port AS server_port FROM sys.dm_exec_connections WHERE session_id = @@SPID",
        ),
    ),
    EngineKind.MYSQL: DiagnosticProbe(
        query=(
            "SELECT DATABASE() AS database_name, VERSION() AS server_version, "
            "@@hostname AS server_host, @@port AS server_port, "
            "CURRENT_USER() AS connected_user, CONNECTION_ID() AS session_id"
        ),
        normalize=normalize_mysql,
        # Works with performance_schema disabled (the MariaDB default).
        supplementary=("SHOW GLOBAL STATUS LIKE 'Uptime'",),
    ),
}


def get_probe(engine: EngineKind) -> DiagnosticProbe | None:
    """Return the diagnostic probe for *engine*, or ``None`` when it has no server metadata."""
    return DIAGNOSTIC_PROBES.get(engine)
