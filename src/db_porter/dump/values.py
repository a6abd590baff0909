"""Per-dialect SQL literal encoding of row values.

``format_value`` dispatches on the column's logical type first and on the
Python type of the value second, so that e.g. an integer stored in a
SQLite boolean column renders as ``TRUE`` for PostgreSQL and a Unix epoch
in a timestamp column renders as a datetime literal.
"""

import json
import logging
import math
import re
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

from db_porter.dialects import Dialect, SqlDialect, get_dialect
from db_porter.dialects.types import (
    TIME_TYPES,
    base_type,
    is_array_type,
    is_binary_type,
    is_boolean_type,
    is_date_type,
    is_json_type,
    is_timestamp_type,
)
from db_porter.schema.models import ColumnDescriptor

logger = logging.getLogger(__name__)

_FALSE_STRINGS = {"0", "false", "f", "no", "off", "n", ""}

# Epoch values above this are milliseconds (1e10 s is in the year 2286)
_MILLISECOND_THRESHOLD = 10_000_000_000

_EPOCH_STRING = re.compile(r"^\d+(\.\d+)?$")


# ------------------------------------------------------------------
# Booleans
# ------------------------------------------------------------------


def to_bool(value: Any) -> bool:
    """Interpret a stored value as a boolean.

    Example:
        >>> to_bool("off"), to_bool(1), to_bool(b"\\x01")
        (False, True, True)
    """
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    if isinstance(value, (bytes, bytearray, memoryview)):
        return any(bytes(value))
    return bool(value)


# ------------------------------------------------------------------
# Timestamps
# ------------------------------------------------------------------


def _to_datetime(value: Any) -> datetime | date | None:
    """Coerce epoch numbers, ISO strings and date objects; None if unparseable."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        return value
    elif isinstance(value, bool):
        return None
    elif isinstance(value, (int, float, Decimal)) or (
        isinstance(value, str) and _EPOCH_STRING.match(value.strip())
    ):
        seconds = float(value)
        if seconds > _MILLISECOND_THRESHOLD:
            seconds /= 1000
        try:
            parsed = datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def canonical_timestamp(value: datetime | date, date_only: bool = False) -> str:
    """Render ``YYYY-MM-DD HH:MM:SS`` (microseconds kept when non-zero).

    Example:
        >>> canonical_timestamp(datetime(2025, 1, 2, 3, 4, 5))
        '2025-01-02 03:04:05'
    """
    if date_only:
        return value.strftime("%Y-%m-%d")
    if not isinstance(value, datetime):
        return value.strftime("%Y-%m-%d 00:00:00")
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += f".{value.microsecond:06d}"
    return text


def _format_timestamp(value: Any, column: ColumnDescriptor, fmt: SqlDialect) -> str:
    parsed = _to_datetime(value)
    if parsed is None:
        # Keep whatever the source stored
        return fmt.quote_string(str(value))
    text = canonical_timestamp(parsed, date_only=is_date_type(column.logical_type))
    return fmt.render_timestamp(text, column.logical_type)


def _format_time(value: Any, fmt: SqlDialect) -> str:
    if isinstance(value, time):
        return fmt.quote_string(value.isoformat())
    if isinstance(value, timedelta):
        # MySQL drivers return TIME columns as timedelta
        total = int(value.total_seconds())
        sign = "-" if total < 0 else ""
        hours, rest = divmod(abs(total), 3600)
        minutes, seconds = divmod(rest, 60)
        return fmt.quote_string(f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}")
    return fmt.quote_string(str(value))


# ------------------------------------------------------------------
# JSON, arrays, scalars
# ------------------------------------------------------------------


def _json_text(value: Any) -> str:
    """Keep valid JSON strings as they are, serialize everything else."""
    if isinstance(value, str):
        try:
            json.loads(value)
        except ValueError:
            return json.dumps(value)
        return value
    return json.dumps(value, default=str)


def _format_number(value: int | float | Decimal, fmt: SqlDialect) -> str:
    if isinstance(value, float) and not math.isfinite(value):
        return fmt.quote_string(str(value))
    if isinstance(value, Decimal) and not value.is_finite():
        return fmt.quote_string(str(value))
    return str(value)


def _format_array_item(item: Any, fmt: SqlDialect) -> str:
    if item is None:
        return "NULL"
    if isinstance(item, bool):
        return fmt.render_bool(item)
    if isinstance(item, (int, float, Decimal)):
        return _format_number(item, fmt)
    if isinstance(item, (dict, list, tuple)):
        return fmt.quote_string(json.dumps(item, default=str))
    return fmt.quote_string(str(item))


def format_value(
    value: Any, column: ColumnDescriptor | None, dialect: "Dialect | str | SqlDialect"
) -> str:
    """Encode one value as a SQL literal for the target dialect.

    Args:
        value: Value as returned by the source driver
        column: Column metadata (None for untyped values)
        dialect: Target dialect

    Returns:
        SQL literal text, e.g. ``NULL``, ``TRUE``, ``'it''s'``,
        ``'2025-01-02 03:04:05'::timestamp``

    Example:
        >>> col = ColumnDescriptor(name="done", logical_type="integer", max_length=1)
        >>> format_value(1, col, "postgresql")
        'TRUE'
    """
    fmt = get_dialect(dialect)
    if value is None:
        return "NULL"
    if column is None:
        column = ColumnDescriptor(name="", logical_type="")
    logical = column.logical_type

    if logical:
        if is_boolean_type(logical, column.max_length):
            return fmt.render_bool(to_bool(value))
        if is_timestamp_type(logical):
            return _format_timestamp(value, column, fmt)
        if base_type(logical) in TIME_TYPES:
            return _format_time(value, fmt)
        if is_json_type(logical):
            if isinstance(value, (bytes, bytearray, memoryview)):
                try:
                    value = bytes(value).decode("utf-8")
                except UnicodeDecodeError:
                    logger.warning(
                        "Column %s holds non-UTF-8 JSON bytes; writing a binary literal",
                        column.name,
                    )
                    return fmt.render_binary(bytes(value))
            return fmt.render_json(_json_text(value), logical)
        if is_array_type(logical) and fmt.supports_arrays:
            if isinstance(value, str):
                # Already an array literal ('{a,b}')
                return fmt.quote_string(value)
            return fmt.render_array([_format_array_item(item, fmt) for item in value])

    if isinstance(value, (bytes, bytearray, memoryview)):
        return fmt.render_binary(bytes(value))
    if logical and is_binary_type(logical):
        return fmt.render_binary(str(value).encode("utf-8"))

    if isinstance(value, bool):
        return fmt.render_bool(value)
    if isinstance(value, (int, float, Decimal)):
        return _format_number(value, fmt)
    if isinstance(value, (dict, list, tuple)):
        return fmt.quote_string(json.dumps(value, default=str))
    if isinstance(value, (datetime, date)):
        parsed = _to_datetime(value)
        date_only = not isinstance(value, datetime)
        return fmt.quote_string(canonical_timestamp(parsed, date_only=date_only))
    if isinstance(value, (time, timedelta)):
        return _format_time(value, fmt)
    return fmt.quote_string(str(value))
