"""Chunked multi-row INSERT generation.

Statements are built in two stages:

1. A SQLAlchemy Core ``insert()`` with one named bind parameter per cell
   (``:r<row>c<col>``) and the dialect's conflict clause, compiled against
   the target's base SQLAlchemy dialect. No DBAPI and no connection are
   involved.
2. Every placeholder is replaced by the ``format_value`` literal of its
   cell.

The column/value order is therefore exactly the one SQLAlchemy would use
for execution.
"""

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import bindparam, column, table
from sqlalchemy.sql import quoted_name

from db_porter.dialects import Dialect, SqlDialect, get_dialect
from db_porter.dump.values import format_value
from db_porter.errors import UnsupportedConflictConfigurationError
from db_porter.schema.models import ColumnDescriptor

logger = logging.getLogger(__name__)

CONFLICT_MODES = ("error", "ignore", "replace")

_PLACEHOLDER = re.compile(r":(r(\d+)c(\d+))\b")


def generate_bulk_insert(
    table_name: str,
    rows: Sequence[Mapping[str, Any]],
    dialect: "Dialect | str | SqlDialect",
    *,
    chunk_size: int = 100,
    conflict_mode: str = "error",
    primary_keys: list[str] | None = None,
    columns: list[ColumnDescriptor] | None = None,
) -> list[str]:
    """Render rows as chunked INSERT statements.

    Args:
        table_name: Target table
        rows: Row dicts in output order
        dialect: Target dialect
        chunk_size: Maximum rows per statement
        conflict_mode: 'error' (plain insert), 'ignore' (skip duplicates) or
            'replace' (upsert every non-key column)
        primary_keys: Conflict target for 'replace'
        columns: Column metadata; drives value encoding and column order.
            Defaults to the keys of the first row.

    Returns:
        ``ceil(len(rows) / chunk_size)`` statements, each terminated by ``;``

    Raises:
        ValueError: If chunk_size < 1 or conflict_mode is unknown
        UnsupportedConflictConfigurationError: If 'replace' is requested
            without primary keys

    Example:
        >>> generate_bulk_insert("tags", [{"id": 1, "name": "a"}], "mysql")
        ["INSERT INTO `tags` (`id`, `name`) VALUES (1, 'a');"]
    """
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    if conflict_mode not in CONFLICT_MODES:
        raise ValueError(
            f"Unknown conflict mode {conflict_mode!r}. "
            f"Expected one of: {', '.join(CONFLICT_MODES)}"
        )
    keys = list(primary_keys or [])
    if conflict_mode == "replace" and not keys:
        raise UnsupportedConflictConfigurationError(table_name)
    if not rows:
        return []

    fmt = get_dialect(dialect)
    if columns:
        names = [c.name for c in columns]
        by_name = {c.name: c for c in columns}
    else:
        names = list(rows[0].keys())
        by_name = {}

    # Conflict targets must exist on the table clause even if not inserted
    clause_names = names + [k for k in keys if k not in names]
    target = table(
        quoted_name(table_name, True),
        *[column(quoted_name(name, True)) for name in clause_names],
    )
    update_columns = [name for name in names if name not in keys]
    sa_dialect = fmt.sa_dialect()

    statements = []
    for start in range(0, len(rows), chunk_size):
        chunk = rows[start : start + chunk_size]
        stmt = fmt.insert_statement(target, conflict_mode, keys, update_columns)
        stmt = stmt.values(
            [
                {name: bindparam(f"r{r}c{c}") for c, name in enumerate(names)}
                for r in range(len(chunk))
            ]
        )
        sql = str(stmt.compile(dialect=sa_dialect))

        def literal(match: re.Match, chunk=chunk) -> str:
            r, c = int(match.group(2)), int(match.group(3))
            name = names[c]
            return format_value(chunk[r].get(name), by_name.get(name), fmt)

        statements.append(_PLACEHOLDER.sub(literal, sql) + ";")

    logger.debug(
        "Generated %d INSERT statement(s) for %s (%d rows, mode=%s)",
        len(statements),
        table_name,
        len(rows),
        conflict_mode,
    )
    return statements
