"""Classification of engine-native type names.

Introspectors hand over ``logical_type`` as the source engine spells it.
These helpers group the spellings of all three engines into the families
the formatters dispatch on.
"""

import re

INTEGER_TYPES = {
    "integer",
    "int",
    "int2",
    "int4",
    "int8",
    "smallint",
    "mediumint",
    "bigint",
    "serial",
    "smallserial",
    "bigserial",
    "serial4",
    "serial8",
    "auto_increment",
    "autoincrement",
}
SERIAL_TYPES = {"serial", "smallserial", "bigserial", "serial4", "serial8", "auto_increment", "autoincrement"}
BOOLEAN_TYPES = {"bool", "boolean", "bit", "tinyint"}
TIMESTAMP_TYPES = {
    "timestamp",
    "timestamptz",
    "datetime",
    "timestamp without time zone",
    "timestamp with time zone",
}
DATE_TYPES = {"date"}
TIME_TYPES = {"time", "timetz", "time without time zone", "time with time zone"}
BINARY_TYPES = {
    "blob",
    "tinyblob",
    "mediumblob",
    "longblob",
    "bytea",
    "binary",
    "varbinary",
}
JSON_TYPES = {"json", "jsonb"}
TEXT_TYPES = {"text", "tinytext", "mediumtext", "longtext", "clob", "citext"}
VARCHAR_TYPES = {"varchar", "character varying", "nvarchar", "varchar2"}
CHAR_TYPES = {"char", "character", "nchar", "bpchar"}
REAL_TYPES = {"real", "float", "float4", "double", "double precision", "float8"}
DECIMAL_TYPES = {"numeric", "decimal", "number"}
ENUM_TYPES = {"enum", "set", "user-defined"}

_LENGTH_SUFFIX = re.compile(r"\s*\(.*\)\s*")
# MySQL spells per-column character sets and collations into the type
_CHARSET_CLAUSE = re.compile(r"\s+(?:character\s+set|charset|collate)\s+\S+")


def base_type(logical_type: str) -> str:
    """Normalize a type name: lower-case, no length, no ``unsigned``.

    Example:
        >>> base_type("VARCHAR(255)")
        'varchar'
        >>> base_type("int unsigned")
        'int'
        >>> base_type("TEXT CHARACTER SET latin1")
        'text'
    """
    name = logical_type.strip().lower()
    if name.endswith("[]"):
        return name
    name = _CHARSET_CLAUSE.sub("", name)
    name = _LENGTH_SUFFIX.sub(" ", name).strip()
    for suffix in (" unsigned", " zerofill", " signed"):
        if name.endswith(suffix):
            name = name[: -len(suffix)].strip()
    return name


def is_boolean_type(logical_type: str, max_length: int | None = None) -> bool:
    """Native booleans, bits and 1-byte integers."""
    name = base_type(logical_type)
    if name in BOOLEAN_TYPES:
        return True
    return name in ("integer", "int") and max_length == 1


def is_integer_type(logical_type: str) -> bool:
    return base_type(logical_type) in INTEGER_TYPES


def is_serial_type(logical_type: str) -> bool:
    return base_type(logical_type) in SERIAL_TYPES


def is_timestamp_type(logical_type: str) -> bool:
    """Timestamp, datetime and date columns."""
    name = base_type(logical_type)
    return name in TIMESTAMP_TYPES or name in DATE_TYPES


def is_date_type(logical_type: str) -> bool:
    return base_type(logical_type) in DATE_TYPES


def is_binary_type(logical_type: str) -> bool:
    return base_type(logical_type) in BINARY_TYPES


def is_json_type(logical_type: str) -> bool:
    return base_type(logical_type) in JSON_TYPES


def is_array_type(logical_type: str) -> bool:
    name = base_type(logical_type)
    return name.endswith("[]") or name == "array"


def is_enum_type(logical_type: str) -> bool:
    return base_type(logical_type) in ENUM_TYPES


def is_text_type(logical_type: str) -> bool:
    """Unbounded character types (TEXT and friends)."""
    return base_type(logical_type) in TEXT_TYPES


def is_varchar_type(logical_type: str) -> bool:
    return base_type(logical_type) in VARCHAR_TYPES


def is_char_type(logical_type: str) -> bool:
    return base_type(logical_type) in CHAR_TYPES


def is_numeric_type(logical_type: str) -> bool:
    """Any type whose values render unquoted."""
    name = base_type(logical_type)
    return name in INTEGER_TYPES or name in REAL_TYPES or name in DECIMAL_TYPES


def is_decimal_type(logical_type: str) -> bool:
    return base_type(logical_type) in DECIMAL_TYPES


def is_real_type(logical_type: str) -> bool:
    return base_type(logical_type) in REAL_TYPES
