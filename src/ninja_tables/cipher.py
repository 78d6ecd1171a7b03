"""Selective field encryption applied on the write path and undone on the read path."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from ninja_tables.exceptions import InvalidArgumentError
from ninja_tables.rows import Row


@runtime_checkable
class FieldCipher(Protocol):
    """Reversible text transform supplied by the host application."""

    def encrypt(self, text: str) -> str: ...
    def decrypt(self, text: str) -> str: ...


def parse_field_set(fields: str | Iterable[str] | None) -> frozenset[str]:
    """Parse an encryptable field list.

    >>> sorted(parse_field_set(" email, phone ,,"))
    ['email', 'phone']
    >>> parse_field_set(None)
    frozenset()
    """
    if fields is None:
        return frozenset()
    names = fields.split(",") if isinstance(fields, str) else fields
    return frozenset(name.strip() for name in names if name and name.strip())


class FieldCipherAdapter:
    """Applies a :class:`FieldCipher` to a named subset of a row's columns.

    Columns outside the subset, and subset names the row does not have, pass
    through untouched. ``NULL`` values stay ``NULL``.
    """

    def __init__(self, cipher: FieldCipher) -> None:
        self._cipher = cipher

    def encrypt_fields(self, row: Row, fields: str | Iterable[str] | None) -> Row:
        return self._transform(row, parse_field_set(fields), self._cipher.encrypt, "encrypt_fields")

    def decrypt_fields(self, row: Row, fields: str | Iterable[str] | None) -> Row:
        return self._transform(row, parse_field_set(fields), self._cipher.decrypt, "decrypt_fields")

    @staticmethod
    def _transform(row: Row, fields: frozenset[str], transform, operation: str) -> Row:
        targets = fields.intersection(row)
        if not targets:
            return row
        changes: dict[str, str] = {}
        for name in targets:
            value = row[name]
            if value is None:
                continue
            if not isinstance(value, str):
                raise InvalidArgumentError(
                    table="<row>",
                    operation=operation,
                    detail=f"Field '{name}' must hold text to be transformed, got {type(value).__name__}.",
                )
            changes[name] = transform(value)
        return row.replace(changes)
