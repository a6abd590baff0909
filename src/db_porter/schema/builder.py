"""CREATE TABLE / VIEW / INDEX statement builder.

Consumes the dialect-neutral descriptions from the introspector and
renders DDL for a target dialect:
- Column clauses with converted types, defaults and auto-increment syntax
- Table-level PRIMARY KEY, FOREIGN KEY and UNIQUE clauses
- View bodies translated between engines (quotes, aggregates, epoch
  functions, casts)
- Index statements with MySQL prefix lengths
"""

import logging
import re

from db_porter.dialects import MYSQL_KEY_LENGTH, Dialect, SqlDialect, get_dialect
from db_porter.dialects.types import (
    base_type,
    is_binary_type,
    is_json_type,
    is_text_type,
    is_varchar_type,
)
from db_porter.errors import ObjectNotFoundError
from db_porter.schema.introspector import is_auto_increment_key
from db_porter.schema.models import (
    ColumnDescriptor,
    IndexDescription,
    TableDescription,
    ViewDescription,
)

logger = logging.getLogger(__name__)

_BIG_INTEGERS = {"bigint", "int8", "bigserial", "serial8"}

# PostgreSQL cast suffix: ::text, ::character varying(20), ::integer[]
_PG_CAST = re.compile(
    r"::\s*\"?[A-Za-z_]\w*\"?"
    r"(?:\s+(?:varying|precision|with(?:out)?\s+time\s+zone))?"
    r"(?:\s*\(\s*\d+(?:\s*,\s*\d+)?\s*\))?"
    r"(?:\[\])*",
    re.IGNORECASE,
)
_DOUBLE_QUOTED = re.compile(r'"([A-Za-z0-9_.\-]+)"')
_BACKTICKED = re.compile(r"`([A-Za-z0-9_.\-]+)`")
_STRING_AGGREGATE = re.compile(r"\b(group_concat|string_agg)\s*\(", re.IGNORECASE)
_SEPARATOR = re.compile(r"\s+SEPARATOR\s+", re.IGNORECASE)
_DISTINCT = re.compile(r"^DISTINCT\s+", re.IGNORECASE)
_EPOCH_CALLS = re.compile(
    r"CAST\s*\(\s*UNIX_TIMESTAMP\s*\(\s*\)\s*AS\s+SIGNED\s*\)"
    r"|EXTRACT\s*\(\s*epoch\s+FROM\s+(?:NOW\s*\(\s*\)|CURRENT_TIMESTAMP)\s*\)(?:\s*::\s*INTEGER)?"
    r"|unixepoch\s*\(\s*\)"
    r"|strftime\s*\(\s*'%s'\s*,\s*'now'\s*\)"
    r"|UNIX_TIMESTAMP\s*\(\s*\)",
    re.IGNORECASE,
)
# "col = 0" / "t.col = 1" where the source stores booleans as integers
_BOOLEAN_COMPARISON = re.compile(r"(\b[A-Za-z_][\w.]*)\s*=\s*([01])(?![\d.])")

_VIEW_EPOCH = {
    Dialect.SQLITE: "unixepoch()",
    Dialect.MYSQL: "CAST(UNIX_TIMESTAMP() AS SIGNED)",
    Dialect.POSTGRESQL: "EXTRACT(epoch FROM NOW())::INTEGER",
}


# ============================================================================
# CREATE TABLE
# ============================================================================


def _column_clause(
    description: TableDescription, column: ColumnDescriptor, fmt: SqlDialect
) -> str:
    auto = is_auto_increment_key(description, column)
    key = description.is_key_column(column.name)
    column_type = fmt.column_type(column, key=key)

    if column_type.endswith(" AUTO_INCREMENT"):
        # Serial source types carry the keyword in their MySQL spelling;
        # MySQL only accepts it on a key column
        column_type = column_type.removesuffix(" AUTO_INCREMENT")
        auto = auto or (
            column.is_primary_key and description.primary_key_columns == [column.name]
        )

    if auto and fmt.name == Dialect.POSTGRESQL:
        column_type = (
            "BIGSERIAL" if base_type(column.logical_type) in _BIG_INTEGERS else "SERIAL"
        )

    parts = [fmt.quote(column.name), column_type]

    if not column.nullable or (column.is_primary_key and fmt.name != Dialect.SQLITE):
        parts.append("NOT NULL")

    # Auto-increment is carried by the type or keyword, never by a default
    if not auto:
        default = fmt.convert_default(column.default_raw, column)
        if default is not None and fmt.allows_default(column, column_type):
            parts.append(f"DEFAULT {default}")

    if auto and fmt.name == Dialect.MYSQL:
        parts.append("AUTO_INCREMENT")

    if column.is_unique and not column.is_primary_key:
        parts.append("UNIQUE")

    return " ".join(parts)


def build_create_table(description: TableDescription, dialect: "Dialect | str") -> str:
    """Render ``CREATE TABLE IF NOT EXISTS`` for a described table.

    Args:
        description: Introspected table
        dialect: Target dialect

    Returns:
        One CREATE TABLE statement terminated by ``;``

    Raises:
        UnsupportedDialectError: If the dialect is not supported

    Example:
        >>> from db_porter.schema.models import ColumnDescriptor, TableDescription
        >>> table = TableDescription(
        ...     name="tags",
        ...     columns=[ColumnDescriptor(name="name", logical_type="text", nullable=False)],
        ... )
        >>> print(build_create_table(table, "sqlite"))
        CREATE TABLE IF NOT EXISTS "tags" (
          "name" TEXT NOT NULL
        );
    """
    fmt = get_dialect(dialect)
    q = fmt.quote

    clauses = [_column_clause(description, col, fmt) for col in description.columns]

    primary_key = description.primary_key_columns
    if primary_key:
        clauses.append(f"PRIMARY KEY ({', '.join(q(c) for c in primary_key)})")

    for fk in description.foreign_keys:
        clause = (
            f"FOREIGN KEY ({', '.join(q(c) for c in fk.columns)}) "
            f"REFERENCES {q(fk.referenced_table)} "
            f"({', '.join(q(c) for c in fk.referenced_columns)})"
        )
        if fk.on_delete != "NO ACTION":
            clause += f" ON DELETE {fk.on_delete}"
        if fk.on_update != "NO ACTION":
            clause += f" ON UPDATE {fk.on_update}"
        clauses.append(clause)

    for unique in description.composite_uniques:
        clauses.append(f"UNIQUE ({', '.join(q(c) for c in unique.columns)})")

    body = ",\n".join(f"  {clause}" for clause in clauses)
    statement = f"CREATE TABLE IF NOT EXISTS {q(description.name)} (\n{body}\n)"
    if fmt.table_options:
        statement += f" {fmt.table_options}"
    return statement + ";"


# ============================================================================
# CREATE VIEW
# ============================================================================


def _matching_paren(sql: str, open_at: int) -> int:
    """Index of the parenthesis closing the one at ``open_at`` (-1 if none).

    Parentheses inside single-quoted literals are ignored.
    """
    depth = 0
    in_string = False
    i = open_at
    while i < len(sql):
        ch = sql[i]
        if in_string:
            if ch == "'":
                if i + 1 < len(sql) and sql[i + 1] == "'":
                    i += 1
                else:
                    in_string = False
        elif ch == "'":
            in_string = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def _split_top_level(args: str) -> list[str]:
    """Split an argument list on commas outside parentheses and literals."""
    parts = []
    depth = 0
    in_string = False
    start = 0
    for i, ch in enumerate(args):
        if in_string:
            if ch == "'":
                in_string = False
        elif ch == "'":
            in_string = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append(args[start:i].strip())
            start = i + 1
    parts.append(args[start:].strip())
    return parts


def _render_string_aggregate(expr: str, separator: str, distinct: bool, target: Dialect) -> str:
    prefix = "DISTINCT " if distinct else ""
    if target == Dialect.POSTGRESQL:
        return f"string_agg({prefix}CAST({expr} AS TEXT), {separator})"
    if target == Dialect.MYSQL:
        return f"GROUP_CONCAT({prefix}{expr} SEPARATOR {separator})"
    if distinct:
        # SQLite only accepts DISTINCT with the one-argument form
        return f"GROUP_CONCAT(DISTINCT {expr})"
    return f"GROUP_CONCAT({expr}, {separator})"


def translate_string_aggregates(sql: str, target: "Dialect | str") -> str:
    """Rewrite GROUP_CONCAT / string_agg calls for the target dialect.

    Handles ``GROUP_CONCAT(x)``, ``GROUP_CONCAT(x, sep)``,
    ``GROUP_CONCAT(x SEPARATOR sep)`` and ``string_agg(x, sep)``, including
    a leading DISTINCT.

    Example:
        >>> translate_string_aggregates("SELECT GROUP_CONCAT(t.name, ', ') FROM t", "postgresql")
        "SELECT string_agg(CAST(t.name AS TEXT), ', ') FROM t"
    """
    target = get_dialect(target).name
    out = []
    pos = 0
    while True:
        match = _STRING_AGGREGATE.search(sql, pos)
        if match is None:
            out.append(sql[pos:])
            return "".join(out)
        open_at = match.end() - 1
        close_at = _matching_paren(sql, open_at)
        if close_at == -1:
            out.append(sql[pos:])
            return "".join(out)

        inner = translate_string_aggregates(sql[open_at + 1 : close_at].strip(), target)
        distinct = bool(_DISTINCT.match(inner))
        inner = _DISTINCT.sub("", inner)

        parts = _SEPARATOR.split(inner, maxsplit=1)
        if len(parts) == 2:
            expr, separator = parts[0].strip(), parts[1].strip()
        else:
            args = _split_top_level(inner)
            expr = args[0]
            separator = args[1] if len(args) > 1 else "','"

        out.append(sql[pos : match.start()])
        out.append(_render_string_aggregate(expr, separator, distinct, target))
        pos = close_at + 1


def strip_pg_casts(sql: str) -> str:
    """Remove PostgreSQL ``::type`` casts.

    Example:
        >>> strip_pg_casts("(status = 'open'::text)")
        "(status = 'open')"
    """
    return _PG_CAST.sub("", sql)


def translate_view_body(
    select_sql: str, source: "Dialect | str", target: "Dialect | str"
) -> str:
    """Translate a view's SELECT body from one dialect to another."""
    src = get_dialect(source).name
    dst = get_dialect(target).name
    sql = select_sql.strip().rstrip(";").strip()
    if src == dst:
        return sql

    if dst == Dialect.MYSQL:
        sql = _DOUBLE_QUOTED.sub(r"`\1`", sql)
    else:
        sql = _BACKTICKED.sub(r'"\1"', sql)

    sql = translate_string_aggregates(sql, dst)
    sql = _EPOCH_CALLS.sub(_VIEW_EPOCH[dst], sql)

    if dst != Dialect.POSTGRESQL:
        sql = strip_pg_casts(sql)
    elif src != Dialect.POSTGRESQL:
        # Works for native booleans (TRUE::integer = 1) and integer flags
        sql = _BOOLEAN_COMPARISON.sub(r"\1::integer = \2", sql)
    return sql


def build_create_view(
    view: ViewDescription, source: "Dialect | str", target: "Dialect | str"
) -> str:
    """Render ``CREATE VIEW`` for the target dialect.

    Args:
        view: View with its native SELECT body
        source: Dialect the body was written in
        target: Dialect to render for

    Raises:
        ObjectNotFoundError: If the view has an empty body
        UnsupportedDialectError: If either dialect is not supported
    """
    fmt = get_dialect(target)
    if not view.select_sql.strip():
        raise ObjectNotFoundError("view", view.name, "empty definition")
    body = translate_view_body(view.select_sql, source, fmt.name)
    return f"CREATE VIEW {fmt.quote(view.name)} AS {body};"


# ============================================================================
# CREATE INDEX
# ============================================================================


def _needs_prefix(column: ColumnDescriptor | None) -> bool:
    """True if MySQL cannot index the column without a prefix length."""
    if column is None:
        return False
    logical = column.logical_type
    if is_text_type(logical) or is_binary_type(logical) or is_json_type(logical):
        return True
    if is_varchar_type(logical):
        return column.max_length is None or column.max_length > MYSQL_KEY_LENGTH
    return False


def build_create_index(
    index: IndexDescription,
    columns: list[ColumnDescriptor],
    dialect: "Dialect | str",
) -> str:
    """Reconstruct ``CREATE [UNIQUE] INDEX`` from catalog metadata.

    Args:
        index: Index to render
        columns: Columns of the indexed table (for type lookups)
        dialect: Target dialect

    Returns:
        One CREATE INDEX statement terminated by ``;``

    Raises:
        ObjectNotFoundError: If the index has no columns
    """
    fmt = get_dialect(dialect)
    if not index.columns:
        raise ObjectNotFoundError("index", index.name, "no columns in catalog")

    by_name = {col.name: col for col in columns}
    rendered = []
    for name in index.columns:
        spec = fmt.quote(name)
        if fmt.name == Dialect.MYSQL and _needs_prefix(by_name.get(name)):
            spec += f"({MYSQL_KEY_LENGTH})"
        rendered.append(spec)

    unique = "UNIQUE " if index.is_unique else ""
    statement = (
        f"CREATE {unique}INDEX {fmt.quote(index.name)} "
        f"ON {fmt.quote(index.table)} ({', '.join(rendered)})"
    )

    if index.where:
        if fmt.name == Dialect.MYSQL:
            logger.warning(
                "Dropping partial index predicate on %s for MySQL: WHERE %s",
                index.name,
                index.where,
            )
        else:
            where = index.where
            if fmt.name != Dialect.POSTGRESQL:
                where = strip_pg_casts(where)
            statement += f" WHERE {where}"
    return statement + ";"
