"""SQLite target dialect."""

from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.dialects.sqlite.base import SQLiteDialect as SASQLiteDialect
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.expression import TableClause

from db_porter.dialects.base import Dialect, SqlDialect
from db_porter.dialects.types import (
    base_type,
    is_binary_type,
    is_boolean_type,
    is_date_type,
    is_decimal_type,
    is_integer_type,
    is_real_type,
    is_timestamp_type,
)


class SQLiteDialect(SqlDialect):
    """SQLite: double-quoted identifiers, type affinity, 0/1 booleans."""

    name = Dialect.SQLITE

    disable_foreign_keys = "PRAGMA foreign_keys = OFF;"
    enable_foreign_keys = "PRAGMA foreign_keys = ON;"
    begin_transaction = "BEGIN TRANSACTION;"
    usage_hint = "sqlite3 mydb.db < dump.sql"

    epoch_default = "(unixepoch())"

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
        if is_integer_type(logical_type) or is_boolean_type(logical_type, max_length):
            return "INTEGER"
        if is_date_type(logical_type):
            return "DATE"
        if is_timestamp_type(logical_type):
            return "DATETIME"
        if is_binary_type(logical_type):
            return "BLOB"
        if is_real_type(logical_type):
            return "REAL"
        if is_decimal_type(logical_type):
            return "NUMERIC"
        if base_type(logical_type) in ("time", "timetz"):
            return "TIME"
        # varchar, char, text, json, uuid, enum, arrays and anything unknown
        return "TEXT"

    def sa_dialect(self) -> SASQLiteDialect:
        return SASQLiteDialect(paramstyle="named")

    def insert_statement(
        self,
        table: TableClause,
        conflict_mode: str,
        primary_keys: list[str],
        update_columns: list[str],
    ) -> Insert:
        stmt = sqlite_insert(table)
        if conflict_mode == "ignore":
            return stmt.prefix_with("OR IGNORE")
        if conflict_mode == "replace":
            target = [table.c[name] for name in primary_keys]
            if not update_columns:
                return stmt.on_conflict_do_nothing(index_elements=target)
            return stmt.on_conflict_do_update(
                index_elements=target,
                set_={name: stmt.excluded[name] for name in update_columns},
            )
        return stmt
