"""Dynamic row model shared by the read and write paths."""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Iterator, Mapping
from datetime import date, datetime, time
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Union

from ninja_tables.exceptions import InvalidArgumentError

Scalar = Union[None, bool, int, float, str, bytes, datetime, date, time]

# Types stored verbatim. ``datetime`` is a ``date`` subclass, so both are covered.
_PASSTHROUGH_TYPES = (bool, int, float, str, bytes, date, time)


def to_scalar(value: Any, *, column: str = "?") -> Scalar:
    """Normalise a driver or caller value into the closed :data:`Scalar` set.

    ``None`` is SQL ``NULL`` in both directions.

    Raises:
        InvalidArgumentError: If the value has no scalar representation.
    """
    if value is None or isinstance(value, _PASSTHROUGH_TYPES):
        return value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, uuid.UUID):
        return str(value)
    raise InvalidArgumentError(
        table="<row>",
        operation="to_scalar",
        detail=f"Column '{column}' holds unsupported value type {type(value).__name__}.",
    )


class Row(Mapping[str, Scalar]):
    """An ordered, read-only mapping from column name to scalar value.

    Rows are data snapshots: there is no mutation API, and equality/``repr``
    are by value for debugging only.

    >>> row = Row({"id": 1, "name": "Juan"})
    >>> row["name"]
    'Juan'
    >>> list(row)
    ['id', 'name']
    """

    __slots__ = ("_data",)

    def __init__(self, source: Mapping[str, Any] | Iterable[tuple[str, Any]] = ()) -> None:
        pairs = source.items() if isinstance(source, Mapping) else source
        data: dict[str, Scalar] = {}
        for column, value in pairs:
            if not isinstance(column, str) or not column:
                raise InvalidArgumentError(
                    table="<row>",
                    operation="build_row",
                    detail="Column names must be non-empty strings.",
                )
            if column in data:
                raise InvalidArgumentError(
                    table="<row>",
                    operation="build_row",
                    detail=f"Duplicate column '{column}'.",
                )
            data[column] = to_scalar(value, column=column)
        self._data = MappingProxyType(data)

    @classmethod
    def from_result(cls, mapping: Mapping[str, Any]) -> Row:
        """Build a row from a result-set mapping (e.g. a SQLAlchemy ``RowMapping``)."""
        return cls(mapping.items())

    def __getitem__(self, column: str) -> Scalar:
        return self._data[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Row({dict(self._data)!r})"

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(self._data)

    def replace(self, changes: Mapping[str, Any]) -> Row:
        """Return a new row with *changes* applied to existing columns, order kept."""
        return Row((column, changes.get(column, value)) for column, value in self._data.items())

    def to_params(self, columns: Iterable[str] | None = None) -> tuple[Scalar, ...]:
        """Return wire values for bound parameters, in row order or *columns* order."""
        names = self._data.keys() if columns is None else columns
        return tuple(self._data[name] for name in names)
