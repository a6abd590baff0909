"""Dialect enum and the shared dialect strategy.

Every formatting decision in the engine goes through one ``SqlDialect``
instance selected once per dump. Subclasses override class attributes and
a handful of hooks; nothing here holds state, so a single instance can be
shared across concurrent dumps.
"""

import re
from abc import ABC, abstractmethod
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy.engine import Dialect as SADialect
from sqlalchemy.sql.dml import Insert
from sqlalchemy.sql.expression import TableClause

from db_porter.dialects.types import is_boolean_type

if TYPE_CHECKING:
    from db_porter.schema.models import ColumnDescriptor


class Dialect(StrEnum):
    """The three supported SQL dialects."""

    SQLITE = "sqlite"
    MYSQL = "mysql"
    POSTGRESQL = "postgresql"


# Widest VARCHAR that still fits a utf8mb4 index key on the MySQL family
MYSQL_KEY_LENGTH = 191


# ------------------------------------------------------------------
# Default-value classification
# ------------------------------------------------------------------

_SEQUENCE_DEFAULT = re.compile(r"^nextval\s*\(", re.IGNORECASE)
_EPOCH_DEFAULT = re.compile(
    r"unixepoch\s*\(|strftime\s*\(\s*'%s'|unix_timestamp\s*\(|"
    r"extract\s*\(\s*epoch\s+from|date_part\s*\(\s*'epoch'",
    re.IGNORECASE,
)
_NOW_DEFAULT = re.compile(
    r"^(current_timestamp(\s*\(\s*\d*\s*\))?|now\s*\(\s*\)|localtimestamp(\s*\(\s*\d*\s*\))?|"
    r"strftime\s*\(.*\)|datetime\s*\(\s*'now'.*\)|transaction_timestamp\s*\(\s*\))$",
    re.IGNORECASE,
)
_TRAILING_CAST = re.compile(
    r"::\s*\"?[A-Za-z_][\w ]*\"?(\(\s*\d+(\s*,\s*\d+)?\s*\))?(\[\])*\s*$"
)
_NUMBER = re.compile(r"^[+-]?\d+(\.\d+)?([eE][+-]?\d+)?$")
_FUNCTION_CALL = re.compile(r"^[A-Za-z_][\w.]*\s*\(.*\)$", re.DOTALL)
_ON_UPDATE = re.compile(r"\s+ON\s+UPDATE\s+(.+)$", re.IGNORECASE | re.DOTALL)
_KEYWORD_DEFAULTS = {"current_date", "current_time", "localtime"}


def strip_wrapping_parens(expr: str) -> str:
    """Remove parentheses that wrap the whole expression.

    Example:
        >>> strip_wrapping_parens("((unixepoch()))")
        'unixepoch()'
        >>> strip_wrapping_parens("(a) + (b)")
        '(a) + (b)'
    """
    expr = expr.strip()
    while expr.startswith("(") and expr.endswith(")"):
        depth = 0
        wraps = True
        for i, ch in enumerate(expr):
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0 and i != len(expr) - 1:
                    wraps = False
                    break
        if not wraps:
            break
        expr = expr[1:-1].strip()
    return expr


class SqlDialect(ABC):
    """Base dialect strategy.

    Subclasses provide the target's type mapping, quoting and literal
    syntax. Shared algorithms (default-value translation, string quoting)
    live here and call the subclass hooks.
    """

    name: Dialect
    quote_char = '"'
    supports_arrays = False
    backslash_escapes = False
    supports_on_update = False

    # Script envelope
    disable_foreign_keys = ""
    enable_foreign_keys = ""
    begin_transaction = "BEGIN;"
    commit = "COMMIT;"
    table_options = ""
    usage_hint = ""

    # Default expressions for "current epoch seconds" and "now"
    epoch_default = ""
    now_default = "CURRENT_TIMESTAMP"

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    # ------------------------------------------------------------------
    # Identifiers and types
    # ------------------------------------------------------------------

    def quote(self, name: str) -> str:
        """Wrap an identifier in the dialect's quote character."""
        return f"{self.quote_char}{name}{self.quote_char}"

    @abstractmethod
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
        """Map an engine-native type name to this dialect's nearest type.

        Args:
            logical_type: Source type name (any engine's spelling)
            max_length: Character length, if known
            key: True if the column takes part in a key or unique constraint
            precision: Numeric precision, if known
            scale: Numeric scale, if known
            enum_values: Allowed values of an inline enum

        Returns:
            Native type text for CREATE TABLE
        """
        ...

    def column_type(self, column: "ColumnDescriptor", *, key: bool = False) -> str:
        """Convert a column descriptor's type."""
        return self.convert_type(
            column.logical_type,
            column.max_length,
            key=key,
            precision=column.precision,
            scale=column.scale,
            enum_values=column.enum_values,
        )

    # ------------------------------------------------------------------
    # Default values
    # ------------------------------------------------------------------

    def convert_default(self, raw: str | None, column: "ColumnDescriptor") -> str | None:
        """Translate a catalog default expression into this dialect.

        Returns None when the default must be dropped (sequence defaults,
        or defaults the target cannot express for the column's type).

        Example:
            >>> from db_porter.dialects import get_dialect
            >>> from db_porter.schema.models import ColumnDescriptor
            >>> col = ColumnDescriptor(name="created_ts", logical_type="integer")
            >>> get_dialect("postgresql").convert_default("(unixepoch())", col)
            'EXTRACT(epoch FROM NOW())::INTEGER'
        """
        if raw is None:
            return None
        expr = strip_wrapping_parens(str(raw))
        if not expr or expr.lower() == "null":
            return None

        if _SEQUENCE_DEFAULT.match(expr):
            return None
        if _EPOCH_DEFAULT.search(expr):
            return self.epoch_default

        # MySQL reports the auto-update rule as part of the default
        on_update = None
        match = _ON_UPDATE.search(expr)
        if match and not expr.startswith("'"):
            on_update = match.group(1).strip()
            expr = strip_wrapping_parens(expr[: match.start()])

        # PostgreSQL decorates literals with casts ('x'::character varying)
        while _TRAILING_CAST.search(expr):
            expr = strip_wrapping_parens(_TRAILING_CAST.sub("", expr))

        if _NOW_DEFAULT.match(expr):
            if on_update and self.supports_on_update and _NOW_DEFAULT.match(on_update):
                return f"{self.now_default} ON UPDATE {self.now_default}"
            return self.now_default

        lowered = expr.lower()
        if lowered in _KEYWORD_DEFAULTS:
            return expr.upper()
        if lowered in ("true", "false"):
            return self.render_bool(lowered == "true")
        if is_boolean_type(column.logical_type, column.max_length):
            if lowered in ("0", "1", "'0'", "'1'", "b'0'", "b'1'"):
                return self.render_bool("1" in lowered)

        if _NUMBER.match(expr):
            if re.fullmatch(r"[+-]?\d+\.0+", expr):
                return expr.split(".")[0]
            return expr

        if len(expr) >= 2 and expr.startswith("'") and expr.endswith("'"):
            return self.quote_string(expr[1:-1].replace("''", "'"))

        if _FUNCTION_CALL.match(expr):
            return self.expression_default(expr)

        return self.quote_string(expr)

    def expression_default(self, expr: str) -> str:
        """Render an arbitrary expression as a DEFAULT."""
        return f"({expr})"

    def allows_default(self, column: "ColumnDescriptor", target_type: str) -> bool:
        """True if a DEFAULT clause may be attached to the column."""
        return True

    # ------------------------------------------------------------------
    # Value literals
    # ------------------------------------------------------------------

    def quote_string(self, text: str) -> str:
        """Quote a string literal, escaping as this dialect requires."""
        escaped = text.replace("'", "''")
        if self.backslash_escapes:
            escaped = escaped.replace("\\", "\\\\")
        return f"'{escaped}'"

    def render_bool(self, value: bool) -> str:
        return "1" if value else "0"

    def render_timestamp(self, text: str, logical_type: str) -> str:
        return self.quote_string(text)

    def render_binary(self, data: bytes) -> str:
        return f"X'{data.hex()}'"

    def render_json(self, text: str, logical_type: str) -> str:
        return self.quote_string(text)

    def render_array(self, items: list[str]) -> str:
        raise NotImplementedError(f"{self.name} has no array literal")

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    @abstractmethod
    def sa_dialect(self) -> SADialect:
        """SQLAlchemy dialect used to compile statements.

        Built without a DBAPI, so the paramstyle must be given explicitly;
        ``named`` yields the ``:name`` placeholders the bulk-insert generator
        substitutes.
        """
        ...

    @abstractmethod
    def insert_statement(
        self,
        table: TableClause,
        conflict_mode: str,
        primary_keys: list[str],
        update_columns: list[str],
    ) -> Insert:
        """Build an INSERT construct carrying the conflict clause.

        Args:
            table: Target table clause (columns already attached)
            conflict_mode: 'error', 'ignore' or 'replace'
            primary_keys: Conflict target columns (replace mode)
            update_columns: Non-key columns overwritten in replace mode

        Returns:
            SQLAlchemy Insert without values
        """
        ...

    def sequence_reset(self, table: str, column: str) -> str | None:
        """Statement re-syncing an auto-increment sequence, if the dialect has one."""
        return None

