"""Tests for parameterized statement construction across dialects."""

from __future__ import annotations

import pytest
from ninja_tables.dialects import EngineKind, TableRef, get_dialect
from ninja_tables.exceptions import InvalidArgumentError
from ninja_tables.rows import Row
from ninja_tables.statements import DEFAULT_LIMIT, StatementBuilder, resolve_limit

USERS = TableRef("usuarios")


def _builder(engine: EngineKind) -> StatementBuilder:
    return StatementBuilder(get_dialect(engine))


# ---------------------------------------------------------------------------
# resolve_limit
# ---------------------------------------------------------------------------


class TestResolveLimit:
    def test_absent_limit_uses_default_cap(self):
        assert resolve_limit(None) == DEFAULT_LIMIT == 1000

    def test_explicit_limit_is_honoured(self):
        assert resolve_limit(1) == 1
        assert resolve_limit(5000) == 5000

    @pytest.mark.parametrize("limit", [0, -1, -100])
    def test_rejects_non_positive(self, limit: int):
        with pytest.raises(InvalidArgumentError, match="limit must be >= 1"):
            resolve_limit(limit)

    @pytest.mark.parametrize("limit", [True, 2.5, "10"])
    def test_rejects_non_integers(self, limit):
        with pytest.raises(InvalidArgumentError, match="limit must be an integer"):
            resolve_limit(limit)

    def test_error_names_calling_operation(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            resolve_limit(0, operation="fetch_password_hash")
        assert exc_info.value.operation == "fetch_password_hash"
        assert "fetch_password_hash failed" in str(exc_info.value)


# ---------------------------------------------------------------------------
# select
# ---------------------------------------------------------------------------


def test_select_all_default_limit_per_engine():
    assert _builder(EngineKind.SQLSERVER).select_all(USERS).sql == "SELECT TOP (1000) * FROM [dbo].[usuarios]"
    assert _builder(EngineKind.POSTGRES).select_all(USERS).sql == 'SELECT * FROM "public"."usuarios" LIMIT 1000'
    assert _builder(EngineKind.MYSQL).select_all(USERS).sql == "SELECT * FROM `usuarios` LIMIT 1000"
    assert _builder(EngineKind.SQLITE).select_all(USERS).sql == "SELECT * FROM [usuarios] LIMIT 1000"


def test_select_all_has_no_params():
    statement = _builder(EngineKind.POSTGRES).select_all(USERS, 25)
    assert statement.sql.endswith("LIMIT 25")
    assert statement.params == ()


def test_select_all_zero_limit_rejected_before_building():
    with pytest.raises(InvalidArgumentError):
        _builder(EngineKind.SQLITE).select_all(USERS, 0)


def test_select_by_key_binds_value():
    statement = _builder(EngineKind.POSTGRES).select_by_key(USERS, "email", "juan@test.com")
    assert statement.sql == 'SELECT * FROM "public"."usuarios" WHERE "email"::text = $1'
    assert statement.params == ("juan@test.com",)


def test_select_by_key_never_inlines_values():
    hostile = "x' OR '1'='1"
    statement = _builder(EngineKind.MYSQL).select_by_key(USERS, "name", hostile)
    assert hostile not in statement.sql
    assert statement.sql == "SELECT * FROM `usuarios` WHERE `name` = %s"
    assert statement.params == (hostile,)


def test_select_by_key_rejects_bad_column():
    with pytest.raises(InvalidArgumentError):
        _builder(EngineKind.SQLITE).select_by_key(USERS, "id = 1 OR 1", 1)
    with pytest.raises(InvalidArgumentError):
        _builder(EngineKind.SQLITE).select_by_key(USERS, "", 1)


def test_select_column_by_key():
    sqlserver = _builder(EngineKind.SQLSERVER).select_column_by_key(USERS, "password_hash", "email", "a@b.c")
    assert sqlserver.sql == "SELECT TOP (1) [password_hash] FROM [dbo].[usuarios] WHERE [email] = ?"
    sqlite = _builder(EngineKind.SQLITE).select_column_by_key(USERS, "password_hash", "email", "a@b.c")
    assert sqlite.sql == "SELECT [password_hash] FROM [usuarios] WHERE [email] = ? LIMIT 1"
    assert sqlite.params == ("a@b.c",)


# ---------------------------------------------------------------------------
# writes
# ---------------------------------------------------------------------------


def test_insert_uses_row_order():
    row = Row({"id": 1, "name": "Juan", "email": "juan@test.com"})
    statement = _builder(EngineKind.POSTGRES).insert(USERS, row)
    assert statement.sql == 'INSERT INTO "public"."usuarios" ("id", "name", "email") VALUES ($1, $2, $3)'
    assert statement.params == (1, "Juan", "juan@test.com")


def test_insert_sqlserver_qmark():
    row = Row({"id": 1, "name": None})
    statement = _builder(EngineKind.SQLSERVER).insert(TableRef("usuarios", "ventas"), row)
    assert statement.sql == "INSERT INTO [ventas].[usuarios] ([id], [name]) VALUES (?, ?)"
    assert statement.params == (1, None)


def test_insert_rejects_empty_row():
    with pytest.raises(InvalidArgumentError, match="data must not be empty"):
        _builder(EngineKind.SQLITE).insert(USERS, Row())


def test_insert_rejects_unsafe_column_name():
    row = Row({"name) VALUES ('x'); --": "x"})
    with pytest.raises(InvalidArgumentError):
        _builder(EngineKind.SQLITE).insert(USERS, row)


def test_update_binds_key_last():
    row = Row({"name": "Juan Carlos", "active": False})
    statement = _builder(EngineKind.POSTGRES).update(USERS, row, "id", 1)
    assert statement.sql == 'UPDATE "public"."usuarios" SET "name" = $1, "active" = $2 WHERE "id" = $3'
    assert statement.params == ("Juan Carlos", False, 1)


def test_update_named_paramstyle():
    dialect = get_dialect(EngineKind.POSTGRES).with_paramstyle("named")
    statement = StatementBuilder(dialect).update(USERS, Row({"name": "Ana"}), "id", 7)
    assert statement.sql == 'UPDATE "public"."usuarios" SET "name" = :p1 WHERE "id" = :p2'
    assert dialect.bind(statement.params) == {"p1": "Ana", "p2": 7}


def test_update_rejects_empty_row():
    with pytest.raises(InvalidArgumentError, match="data must not be empty"):
        _builder(EngineKind.SQLITE).update(USERS, Row(), "id", 1)


def test_delete():
    statement = _builder(EngineKind.MYSQL).delete(TableRef("usuarios", "tienda"), "id", 3)
    assert statement.sql == "DELETE FROM `tienda`.`usuarios` WHERE `id` = %s"
    assert statement.params == (3,)


def test_key_value_must_be_scalar():
    with pytest.raises(InvalidArgumentError, match="unsupported value type"):
        _builder(EngineKind.SQLITE).delete(USERS, "id", [1, 2])


# ---------------------------------------------------------------------------
# text keys
# ---------------------------------------------------------------------------


def test_postgres_text_key_compares_through_text_cast():
    builder = _builder(EngineKind.POSTGRES)
    assert builder.select_by_key(USERS, "id", "1").sql == 'SELECT * FROM "public"."usuarios" WHERE "id"::text = $1'
    assert builder.delete(USERS, "id", "1").sql == 'DELETE FROM "public"."usuarios" WHERE "id"::text = $1'
    statement = builder.update(USERS, Row({"name": "Ana"}), "id", "1")
    assert statement.sql == 'UPDATE "public"."usuarios" SET "name" = $1 WHERE "id"::text = $2'
    assert statement.params == ("Ana", "1")


def test_postgres_non_text_key_compares_column_directly():
    statement = _builder(EngineKind.POSTGRES).select_by_key(USERS, "id", 1)
    assert statement.sql == 'SELECT * FROM "public"."usuarios" WHERE "id" = $1'
    assert statement.params == (1,)


@pytest.mark.parametrize("engine", [EngineKind.SQLSERVER, EngineKind.MYSQL, EngineKind.SQLITE])
def test_other_engines_never_cast_text_keys(engine: EngineKind):
    statement = _builder(engine).select_by_key(USERS, "id", "1")
    assert "text" not in statement.sql.lower()
    assert statement.params == ("1",)
