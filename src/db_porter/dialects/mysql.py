"""MySQL / MariaDB target dialect."""

from typing import TYPE_CHECKING

from sqlalchemy.dialects.mysql import insert as mysql_insert
from sqlalchemy.dialects.mysql.base import MySQLDialect as SAMySQLDialect
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.expression import TableClause

from db_porter.dialects.base import MYSQL_KEY_LENGTH, Dialect, SqlDialect
from db_porter.dialects.types import (
    base_type,
    is_array_type,
    is_binary_type,
    is_boolean_type,
    is_char_type,
    is_date_type,
    is_decimal_type,
    is_enum_type,
    is_json_type,
    is_real_type,
    is_text_type,
    is_timestamp_type,
    is_varchar_type,
)

if TYPE_CHECKING:
    from db_porter.schema.models import ColumnDescriptor

# Longest VARCHAR kept as VARCHAR; anything wider becomes LONGTEXT
_MAX_VARCHAR = 16383

_INTEGER_SPELLING = {
    "integer": "INT",
    "int": "INT",
    "int4": "INT",
    "mediumint": "MEDIUMINT",
    "smallint": "SMALLINT",
    "int2": "SMALLINT",
    "bigint": "BIGINT",
    "int8": "BIGINT",
    "serial": "BIGINT AUTO_INCREMENT",
    "serial4": "INT AUTO_INCREMENT",
    "smallserial": "SMALLINT AUTO_INCREMENT",
    "bigserial": "BIGINT AUTO_INCREMENT",
    "serial8": "BIGINT AUTO_INCREMENT",
    "auto_increment": "BIGINT AUTO_INCREMENT",
    "autoincrement": "BIGINT AUTO_INCREMENT",
}


class MySQLDialect(SqlDialect):
    """MySQL: backtick identifiers, TINYINT(1) booleans, backslash escapes."""

    name = Dialect.MYSQL
    quote_char = "`"
    backslash_escapes = True
    supports_on_update = True

    disable_foreign_keys = "SET FOREIGN_KEY_CHECKS=0;"
    enable_foreign_keys = "SET FOREIGN_KEY_CHECKS=1;"
    begin_transaction = "START TRANSACTION;"
    table_options = "ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
    usage_hint = "mysql mydb < dump.sql"

    # UNIX_TIMESTAMP() may return DECIMAL
    epoch_default = "(CAST(UNIX_TIMESTAMP() AS SIGNED))"

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

        if is_boolean_type(logical_type, max_length):
            return "TINYINT(1)"
        if name in _INTEGER_SPELLING:
            return _INTEGER_SPELLING[name]

        if is_varchar_type(logical_type) or is_char_type(logical_type):
            if key and (max_length is None or max_length > MYSQL_KEY_LENGTH):
                return f"VARCHAR({MYSQL_KEY_LENGTH})"
            if max_length is None:
                return f"VARCHAR({MYSQL_KEY_LENGTH})"
            if max_length > _MAX_VARCHAR:
                return "LONGTEXT"
            spelling = "CHAR" if is_char_type(logical_type) else "VARCHAR"
            return f"{spelling}({max_length})"
        if is_text_type(logical_type):
            if key:
                return f"VARCHAR({MYSQL_KEY_LENGTH})"
            return name.upper() if name in ("mediumtext", "longtext", "tinytext") else "TEXT"

        if is_enum_type(logical_type):
            if enum_values:
                values = ", ".join(self.quote_string(v) for v in enum_values)
                return f"ENUM({values})"
            return f"VARCHAR({MYSQL_KEY_LENGTH})"

        if is_date_type(logical_type):
            return "DATE"
        if is_timestamp_type(logical_type):
            return "DATETIME"
        if name in ("time", "timetz"):
            return "TIME"
        if is_json_type(logical_type) or is_array_type(logical_type):
            return "JSON"
        if is_binary_type(logical_type):
            if key:
                return f"VARBINARY({MYSQL_KEY_LENGTH})"
            if name in ("varbinary", "binary") and max_length:
                return f"{name.upper()}({max_length})"
            return "LONGBLOB"
        if name == "uuid":
            return "CHAR(36)"
        if is_real_type(logical_type):
            return "FLOAT" if name in ("real", "float4") else "DOUBLE"
        if is_decimal_type(logical_type):
            if precision:
                return f"DECIMAL({precision},{scale or 0})"
            return "DECIMAL(65,30)"
        return logical_type.upper()

    def allows_default(self, column: "ColumnDescriptor", target_type: str) -> bool:
        # Literal defaults are rejected on TEXT/BLOB/JSON columns
        return not target_type.startswith(
            ("TEXT", "TINYTEXT", "MEDIUMTEXT", "LONGTEXT", "LONGBLOB", "JSON")
        )

    def sa_dialect(self) -> SAMySQLDialect:
        return SAMySQLDialect(paramstyle="named")

    def insert_statement(
        self,
        table: TableClause,
        conflict_mode: str,
        primary_keys: list[str],
        update_columns: list[str],
    ) -> Insert:
        stmt = mysql_insert(table)
        if conflict_mode == "ignore":
            return stmt.prefix_with("IGNORE")
        if conflict_mode == "replace":
            # Every column is a key: assign a key to itself so the row is kept
            targets = update_columns or primary_keys[:1]
            return stmt.on_duplicate_key_update(
                {name: stmt.inserted[name] for name in targets}
            )
        return stmt
