"""Dump orchestration: plan the tables, then emit one transactional script.

Script layout:
    header
    FK checks off
    BEGIN
    CREATE TABLE ... (dependency order)
    CREATE VIEW ...
    CREATE INDEX ...
    INSERT ... (chunked, dependency order)
    sequence resets (PostgreSQL)
    COMMIT
    FK checks on

Usage:
    >>> from sqlalchemy import create_engine
    >>> from db_porter import DumpOptions, generate_dump
    >>> engine = create_engine("sqlite:///tasks.db")
    >>> with engine.connect() as conn:
    ...     sql = generate_dump(conn, "postgresql", DumpOptions(conflict_mode="ignore"))
"""

import logging

from sqlalchemy.engine import Connection

from db_porter.dialects import Dialect, SqlDialect, get_dialect
from db_porter.dump.bulk_insert import generate_bulk_insert
from db_porter.dump.models import DumpOptions, DumpPlan, TablePlan
from db_porter.dump.script import (
    foreign_key_control,
    generate_header,
    generate_sequence_resets,
    section,
    transaction_control,
)
from db_porter.errors import ObjectNotFoundError
from db_porter.schema.builder import build_create_index, build_create_table, build_create_view
from db_porter.schema.dependencies import build_dependency_graph, topological_order
from db_porter.schema.introspector import SchemaIntrospector, get_introspector
from db_porter.schema.models import IndexDescription, TableDescription

logger = logging.getLogger(__name__)

# Index name suffixes of FK-backing indexes created by the engine itself
_FK_INDEX_SUFFIXES = ("_foreign", "_fkey")


# ------------------------------------------------------------------
# Planning
# ------------------------------------------------------------------


def _build_plan(
    introspector: SchemaIntrospector, target: SqlDialect, options: DumpOptions
) -> DumpPlan:
    available = introspector.list_tables()
    if options.tables:
        known = set(available)
        for name in options.tables:
            if name not in known:
                raise ObjectNotFoundError("table", name, "not in source database")
        tables = list(dict.fromkeys(options.tables))
    else:
        tables = available

    descriptions = {name: introspector.describe_table(name) for name in tables}
    graph = build_dependency_graph(descriptions.values(), tables)
    order = topological_order(tables, graph)

    plan = DumpPlan(
        target=target.name,
        tables=[
            TablePlan(
                name=name,
                row_count=introspector.count_rows(name),
                description=descriptions[name],
            )
            for name in order
        ],
        conflict_mode=options.conflict_mode,
        chunk_size=options.chunk_size,
    )
    logger.debug(
        "Planned dump of %d tables (%d rows) for %s: %s",
        len(plan.tables),
        plan.total_rows,
        target.name,
        ", ".join(plan.table_names),
    )
    return plan


def plan_dump(
    conn: Connection,
    target: "Dialect | str",
    options: DumpOptions | None = None,
) -> DumpPlan:
    """Describe, order and count the tables of a dump.

    Args:
        conn: Open connection to the source database (not closed)
        target: Dialect the script will be written for
        options: Dump options (defaults apply when None)

    Returns:
        DumpPlan with tables in dependency order

    Raises:
        ObjectNotFoundError: If a requested table does not exist
        UnsupportedDialectError: If source or target is not supported
    """
    options = options or DumpOptions()
    return _build_plan(get_introspector(conn), get_dialect(target), options)


# ------------------------------------------------------------------
# Sections
# ------------------------------------------------------------------


def _schema_lines(plan: DumpPlan, fmt: SqlDialect) -> list[str]:
    lines = section("Schema (CREATE TABLE statements)")
    for table in plan.tables:
        lines.append(f"-- Table: {table.name}")
        lines.append(build_create_table(table.description, fmt))
        lines.append("")
    return lines


def _view_lines(introspector: SchemaIntrospector, fmt: SqlDialect) -> list[str]:
    views = introspector.list_views()
    if not views:
        return []
    lines = section("Views")
    for name in views:
        try:
            view = introspector.get_view(name)
            statement = build_create_view(view, introspector.dialect, fmt)
        except ObjectNotFoundError as e:
            logger.warning("Could not create view %s: %s", name, e)
            lines.append(f"-- Warning: Could not create view {name}: {e}")
            lines.append("")
            continue
        lines.append(f"-- View: {name}")
        lines.append(statement)
        lines.append("")
    return lines


def _is_dumped_index(index: IndexDescription, description: TableDescription) -> bool:
    """False for indexes the CREATE TABLE statement already implies."""
    if index.name.endswith(_FK_INDEX_SUFFIXES):
        return False
    fk_names = {fk.constraint_name for fk in description.foreign_keys if fk.constraint_name}
    if index.name in fk_names:
        return False
    # Non-partial unique indexes became UNIQUE clauses
    return not (index.is_unique and index.where is None)


def _index_lines(
    introspector: SchemaIntrospector, plan: DumpPlan, fmt: SqlDialect
) -> list[str]:
    body: list[str] = []
    for table in plan.tables:
        for index in introspector.list_indexes(table.name):
            if not _is_dumped_index(index, table.description):
                continue
            try:
                statement = build_create_index(index, table.description.columns, fmt)
            except ObjectNotFoundError as e:
                logger.warning("Could not create index %s: %s", index.name, e)
                body.append(f"-- Warning: Could not create index {index.name}: {e}")
                body.append("")
                continue
            body.append(f"-- Index: {index.name} on {table.name}")
            body.append(statement)
            body.append("")
    if not body:
        return []
    return section("Indexes") + body


def _data_lines(
    introspector: SchemaIntrospector, plan: DumpPlan, fmt: SqlDialect
) -> list[str]:
    lines = section("Data (INSERT statements)")
    for table in plan.tables:
        description = table.description
        primary_keys = description.primary_key_columns
        lines.append(f"-- Data for table: {table.name}")

        rows = introspector.fetch_rows(table.name, order_by=primary_keys or None)
        inserts = generate_bulk_insert(
            table.name,
            rows,
            fmt,
            chunk_size=plan.chunk_size,
            conflict_mode=plan.conflict_mode,
            primary_keys=primary_keys,
            columns=description.columns,
        )
        if not inserts:
            lines.append(f"-- No data in table {table.name}")
            lines.append("")
            continue

        if plan.conflict_mode == "replace":
            lines.append(f"-- Primary key(s): {', '.join(primary_keys)}")
        lines.extend(inserts)
        lines.append("")
    return lines


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def generate_dump(
    conn: Connection,
    target: "Dialect | str",
    options: DumpOptions | None = None,
) -> str:
    """Generate a complete SQL dump script for the target dialect.

    Args:
        conn: Open connection to the source database (borrowed, not closed)
        target: Dialect the script is written for
        options: Dump options (defaults apply when None)

    Returns:
        The SQL script text

    Raises:
        ObjectNotFoundError: If a table cannot be described
        UnsupportedConflictConfigurationError: If 'replace' is requested for
            a table without a primary key
        UnsupportedDialectError: If source or target is not supported
        sqlalchemy.exc.DBAPIError: On catalog or data query failures
    """
    options = options or DumpOptions()
    fmt = get_dialect(target)
    introspector = get_introspector(conn)
    plan = _build_plan(introspector, fmt, options)

    lines: list[str] = []
    if options.include_header:
        lines.append(generate_header(fmt, len(plan.tables)))

    lines += [foreign_key_control(fmt, enable=False), ""]
    lines += [transaction_control(fmt, begin=True), ""]

    if options.include_schema:
        lines += _schema_lines(plan, fmt)
        lines += _view_lines(introspector, fmt)
        lines += _index_lines(introspector, plan, fmt)

    if plan.chunk_size > 0:
        lines += _data_lines(introspector, plan, fmt)

    resets = generate_sequence_resets(plan)
    if resets:
        lines.append("-- Reset sequences")
        lines += resets
        lines.append("")

    lines += [transaction_control(fmt, begin=False), ""]
    lines.append(foreign_key_control(fmt, enable=True))

    script = "\n".join(lines) + "\n"
    logger.debug("Generated %s dump: %d characters", fmt.name, len(script))
    return script
