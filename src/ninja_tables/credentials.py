"""Password hashing and credential checks on top of ``fetch_password_hash``."""

from __future__ import annotations

import logging
from typing import Any

import bcrypt

from ninja_tables.protocols import TableStore

logger = logging.getLogger(__name__)

# Pre-computed dummy hash so missing-user lookups still run bcrypt,
# preventing timing side-channel user enumeration.
_DUMMY_HASH: bytes = bcrypt.hashpw(b"dummy", bcrypt.gensalt())


def hash_password(password: str) -> str:
    """Hash a plaintext password using bcrypt, ready to store through ``create``."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, hashed: str | None) -> bool:
    """Verify *password* against a stored bcrypt hash; ``None`` never matches."""
    if hashed is None:
        bcrypt.checkpw(password.encode(), _DUMMY_HASH)
        return False
    try:
        return bcrypt.checkpw(password.encode(), hashed.encode())
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt hash.")
        return False


async def verify_credentials(
    store: TableStore,
    table: str,
    schema: str | None,
    user_column: str,
    hash_column: str,
    user_value: Any,
    password: str,
) -> bool:
    """Look up the user's stored hash and check *password* against it."""
    hashed = await store.fetch_password_hash(table, schema, user_column, hash_column, user_value)
    return check_password(password, hashed)
