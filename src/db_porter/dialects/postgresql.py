"""PostgreSQL target dialect."""

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.expression import TableClause

from db_porter.dialects.base import Dialect, SqlDialect
from db_porter.dialects.types import (
    base_type,
    is_array_type,
    is_binary_type,
    is_boolean_type,
    is_char_type,
    is_date_type,
    is_decimal_type,
    is_enum_type,
    is_real_type,
    is_text_type,
    is_timestamp_type,
    is_varchar_type,
)

_INTEGER_SPELLING = {
    "integer": "INTEGER",
    "int": "INTEGER",
    "int4": "INTEGER",
    "mediumint": "INTEGER",
    "smallint": "SMALLINT",
    "int2": "SMALLINT",
    "bigint": "BIGINT",
    "int8": "BIGINT",
    "serial": "SERIAL",
    "serial4": "SERIAL",
    "smallserial": "SMALLSERIAL",
    "bigserial": "BIGSERIAL",
    "serial8": "BIGSERIAL",
    "auto_increment": "SERIAL",
    "autoincrement": "SERIAL",
}


class PostgreSQLDialect(SqlDialect):
    """PostgreSQL: native booleans, arrays, bytea and jsonb."""

    name = Dialect.POSTGRESQL
    supports_arrays = True

    # Replica role skips FK triggers for the session (needs superuser)
    disable_foreign_keys = "SET session_replication_role = replica;"
    enable_foreign_keys = "SET session_replication_role = DEFAULT;"
    begin_transaction = "BEGIN;"
    usage_hint = "psql -d mydb -f dump.sql"

    epoch_default = "EXTRACT(epoch FROM NOW())::INTEGER"

    def convert_type(
        self,
        logical_type: str,
        max_length: int | None = None,
        *,
        key: bool = False,
        precision: int | None = None,
        scale: int | None = None,
        enum_values: list[str] | None = None,
    ) -> str:
        name = base_type(logical_type)

        if is_array_type(logical_type):
            return "TEXT[]" if name == "array" else name.upper()
        if is_boolean_type(logical_type, max_length):
            return "BOOLEAN"
        if name in _INTEGER_SPELLING:
            return _INTEGER_SPELLING[name]

        if is_varchar_type(logical_type):
            return f"VARCHAR({max_length})" if max_length else "VARCHAR"
        if is_char_type(logical_type):
            return f"CHAR({max_length})" if max_length else "CHAR(1)"
        if is_text_type(logical_type) or is_enum_type(logical_type):
            return "TEXT"

        if is_date_type(logical_type):
            return "DATE"
        if name in ("timestamptz", "timestamp with time zone"):
            return "TIMESTAMPTZ"
        if is_timestamp_type(logical_type):
            return "TIMESTAMP"
        if name in ("time", "time without time zone"):
            return "TIME"
        if name in ("timetz", "time with time zone"):
            return "TIMETZ"
        if name in ("json", "jsonb"):
            return name.upper()
        if is_binary_type(logical_type):
            return "BYTEA"
        if name == "uuid":
            return "UUID"
        if is_real_type(logical_type):
            return "REAL" if name in ("real", "float4") else "DOUBLE PRECISION"
        if is_decimal_type(logical_type):
            if precision:
                return f"NUMERIC({precision},{scale or 0})"
            return "NUMERIC"
        return logical_type.upper()

    def expression_default(self, expr: str) -> str:
        return expr

    def render_bool(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def render_timestamp(self, text: str, logical_type: str) -> str:
        name = base_type(logical_type)
        if name == "date":
            return f"{self.quote_string(text)}::date"
        if name in ("timestamptz", "timestamp with time zone"):
            return f"{self.quote_string(text + '+00')}::timestamptz"
        return f"{self.quote_string(text)}::timestamp"

    def render_binary(self, data: bytes) -> str:
        return f"'\\x{data.hex()}'::bytea"

    def render_json(self, text: str, logical_type: str) -> str:
        cast = "json" if base_type(logical_type) == "json" else "jsonb"
        return f"{self.quote_string(text)}::{cast}"

    def render_array(self, items: list[str]) -> str:
        if not items:
            return "'{}'"
        return f"ARRAY[{', '.join(items)}]"

    def sa_dialect(self) -> PGDialect:
        return PGDialect(paramstyle="named")

    def insert_statement(
        self,
        table: TableClause,
        conflict_mode: str,
        primary_keys: list[str],
        update_columns: list[str],
    ) -> Insert:
        stmt = pg_insert(table)
        if conflict_mode == "ignore":
            return stmt.on_conflict_do_nothing()
        if conflict_mode == "replace":
            target = [table.c[name] for name in primary_keys]
            if not update_columns:
                return stmt.on_conflict_do_nothing(index_elements=target)
            return stmt.on_conflict_do_update(
                index_elements=target,
                set_={name: stmt.excluded[name] for name in update_columns},
            )
        return stmt

    def sequence_reset(self, table: str, column: str) -> str:
        """Move a SERIAL column's sequence past the loaded rows.

        Example:
            PostgreSQLDialect().sequence_reset("tasks", "id")
            # SELECT setval(pg_get_serial_sequence('"tasks"', 'id'), COALESCE(...), ...);
        """
        qtable = self.quote(table)
        qcol = self.quote(column)
        seq = (
            f"pg_get_serial_sequence({self.quote_string(qtable)}, "
            f"{self.quote_string(column)})"
        )
        return (
            f"SELECT setval({seq}, COALESCE((SELECT MAX({qcol}) FROM {qtable}), 1), "
            f"(SELECT MAX({qcol}) FROM {qtable}) IS NOT NULL);"
        )
