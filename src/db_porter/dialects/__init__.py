"""Identifier and type formatting per target dialect.

One ``SqlDialect`` strategy exists per supported engine. Callers pick it
once with ``get_dialect()`` and pass it (or the plain ``Dialect`` value)
explicitly; there is no module-level "current dialect".

Usage:
    >>> from db_porter.dialects import quote_identifier, convert_data_type
    >>> quote_identifier("tasks", "mysql")
    '`tasks`'
    >>> convert_data_type("boolean", "mysql")
    'TINYINT(1)'
"""

from db_porter.dialects.base import MYSQL_KEY_LENGTH, Dialect, SqlDialect
from db_porter.dialects.mysql import MySQLDialect
from db_porter.dialects.postgresql import PostgreSQLDialect
from db_porter.dialects.sqlite import SQLiteDialect
from db_porter.errors import UnsupportedDialectError

_DIALECTS: dict[Dialect, SqlDialect] = {
    Dialect.SQLITE: SQLiteDialect(),
    Dialect.MYSQL: MySQLDialect(),
    Dialect.POSTGRESQL: PostgreSQLDialect(),
}

# Driver and client names that map onto a supported dialect
_ALIASES = {
    "sqlite3": Dialect.SQLITE,
    "better-sqlite3": Dialect.SQLITE,
    "pysqlite": Dialect.SQLITE,
    "mariadb": Dialect.MYSQL,
    "mysql2": Dialect.MYSQL,
    "postgres": Dialect.POSTGRESQL,
    "pg": Dialect.POSTGRESQL,
}


def resolve_dialect(name: "Dialect | str") -> Dialect:
    """Resolve a dialect name or alias to a ``Dialect``.

    Raises:
        UnsupportedDialectError: If the name is not a supported engine
    """
    if isinstance(name, Dialect):
        return name
    key = str(name).strip().lower()
    # SQLAlchemy URLs spell drivers as "mysql+pymysql"
    key = key.split("+", 1)[0]
    if key in _ALIASES:
        return _ALIASES[key]
    try:
        return Dialect(key)
    except ValueError:
        raise UnsupportedDialectError(str(name)) from None


def get_dialect(dialect: "Dialect | str | SqlDialect") -> SqlDialect:
    """Return the strategy object for a dialect."""
    if isinstance(dialect, SqlDialect):
        return dialect
    return _DIALECTS[resolve_dialect(dialect)]


def quote_identifier(name: str, dialect: "Dialect | str") -> str:
    """Quote an identifier for the dialect (backtick for MySQL, double quote otherwise)."""
    return get_dialect(dialect).quote(name)


def convert_data_type(
    logical_type: str, dialect: "Dialect | str", max_length: int | None = None
) -> str:
    """Map a logical column type to the dialect's native type."""
    return get_dialect(dialect).convert_type(logical_type, max_length)


__all__ = [
    "Dialect",
    "SqlDialect",
    "SQLiteDialect",
    "MySQLDialect",
    "PostgreSQLDialect",
    "MYSQL_KEY_LENGTH",
    "get_dialect",
    "resolve_dialect",
    "quote_identifier",
    "convert_data_type",
]
