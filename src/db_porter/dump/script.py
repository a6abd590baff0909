"""Script envelope pieces: header, FK controls, transactions, sequence resets."""

from datetime import datetime, timezone

from db_porter.dialects import Dialect, SqlDialect, get_dialect
from db_porter.dump.models import DumpPlan
from db_porter.schema.introspector import is_auto_increment_key

BANNER = "-- " + "=" * 44


def section(title: str) -> list[str]:
    """Banner lines opening a script section."""
    return [BANNER, f"-- {title}", BANNER, ""]


def generate_header(
    dialect: "Dialect | str | SqlDialect",
    table_count: int,
    generated_at: datetime | None = None,
) -> str:
    """Header comment block with target, date and a usage hint.

    Example:
        >>> print(generate_header("mysql", 2, datetime(2025, 1, 1, tzinfo=timezone.utc)))
        -- SQL Dump generated by db-porter
        -- Date: 2025-01-01T00:00:00+00:00
        -- Target: MYSQL
        -- Tables: 2
        --
        -- Statements run inside a single transaction.
        -- Usage: mysql mydb < dump.sql
        <BLANKLINE>
    """
    fmt = get_dialect(dialect)
    generated_at = generated_at or datetime.now(timezone.utc)
    lines = [
        "-- SQL Dump generated by db-porter",
        f"-- Date: {generated_at.isoformat()}",
        f"-- Target: {fmt.name.value.upper()}",
        f"-- Tables: {table_count}",
        "--",
        "-- Statements run inside a single transaction.",
        f"-- Usage: {fmt.usage_hint}",
        "",
    ]
    return "\n".join(lines)


def foreign_key_control(dialect: "Dialect | str | SqlDialect", enable: bool) -> str:
    fmt = get_dialect(dialect)
    return fmt.enable_foreign_keys if enable else fmt.disable_foreign_keys


def transaction_control(dialect: "Dialect | str | SqlDialect", begin: bool) -> str:
    fmt = get_dialect(dialect)
    return fmt.begin_transaction if begin else fmt.commit


def generate_sequence_resets(plan: DumpPlan) -> list[str]:
    """``setval`` statements for every SERIAL column of the plan.

    Empty for targets without explicit sequences.
    """
    fmt = get_dialect(plan.target)
    statements = []
    for table in plan.tables:
        for column in table.description.columns:
            if not is_auto_increment_key(table.description, column):
                continue
            statement = fmt.sequence_reset(table.name, column.name)
            if statement:
                statements.append(statement)
    return statements
