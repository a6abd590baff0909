"""Live schema introspection for SQLite, MySQL and PostgreSQL.

This module queries a borrowed SQLAlchemy connection and produces the
dialect-neutral models in ``db_porter.schema.models``:
- Tables, columns, native types, nullability, defaults
- Primary keys and unique constraints (single and composite)
- Foreign keys (single and composite, with ON DELETE/ON UPDATE rules)
- Secondary indexes, views, row counts and rows

Three strategies share one interface:
- ``GenericIntrospector``: SQLAlchemy ``Inspector`` (used for MySQL)
- ``SQLiteIntrospector``: ``sqlite_master`` and the table-valued pragmas
- ``PostgreSQLIntrospector``: information_schema plus ``pg_constraint``
  joins aggregated by constraint name

``get_introspector(conn)`` picks the strategy from ``conn.dialect.name``.
Catalog errors are not caught: they surface as SQLAlchemy ``DBAPIError``.
"""

import logging
import re
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Inspector
from sqlalchemy.exc import CompileError, NoSuchTableError
from sqlalchemy.types import Enum as SAEnum
from sqlalchemy.types import Numeric as SANumeric

from db_porter.dialects import Dialect, get_dialect, resolve_dialect
from db_porter.dialects.types import base_type, is_decimal_type, is_integer_type
from db_porter.errors import ObjectNotFoundError
from db_porter.schema.models import (
    ColumnDescriptor,
    CompositeUniqueConstraint,
    ForeignKeyDescriptor,
    IndexDescription,
    TableDescription,
    ViewDescription,
)

logger = logging.getLogger(__name__)

# Everything up to and including the AS that starts a view's SELECT body
_VIEW_HEADER = re.compile(r"^\s*CREATE\b.*?\bVIEW\b.*?\bAS\b\s*", re.IGNORECASE | re.DOTALL)
_PARTIAL_INDEX = re.compile(r"\bWHERE\b(.+)$", re.IGNORECASE | re.DOTALL)
_TYPE_ARGS = re.compile(r"\(\s*(\d+)\s*(?:,\s*(\d+)\s*)?\)")

# Referential action codes used by pg_constraint.confdeltype/confupdtype
_PG_FK_ACTIONS = {
    "a": "NO ACTION",
    "r": "RESTRICT",
    "c": "CASCADE",
    "n": "SET NULL",
    "d": "SET DEFAULT",
}


def _normalize_rule(rule: str | None) -> str:
    """Normalize an ON DELETE/ON UPDATE rule name."""
    if not rule:
        return "NO ACTION"
    return " ".join(rule.upper().split())


def strip_view_header(definition: str) -> str:
    """Return the SELECT body of a view definition.

    Example:
        >>> strip_view_header("CREATE VIEW v_tasks AS SELECT * FROM tasks;")
        'SELECT * FROM tasks'
    """
    body = _VIEW_HEADER.sub("", definition.strip(), count=1)
    return body.strip().rstrip(";").strip()


class SchemaIntrospector(ABC):
    """Base introspector.

    Subclasses implement the catalog queries; ``describe_table`` merges
    their results and enforces that a described table exists.

    Usage:
        with engine.connect() as conn:
            introspector = get_introspector(conn)
            for table in introspector.list_tables():
                description = introspector.describe_table(table)
    """

    # Tables never dumped (engine bookkeeping)
    EXCLUDED_TABLES: set[str] = set()

    dialect: Dialect

    def __init__(self, conn: Connection, excluded_tables: set[str] | None = None):
        """Initialize with a borrowed connection.

        Args:
            conn: Open SQLAlchemy connection; never closed by the introspector
            excluded_tables: Extra table names to leave out of ``list_tables``
        """
        self._conn = conn
        self.excluded_tables = set(self.EXCLUDED_TABLES) | set(excluded_tables or ())

    def quote(self, name: str) -> str:
        """Quote an identifier for the source connection."""
        return get_dialect(self.dialect).quote(name)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def list_tables(self) -> list[str]:
        """All user tables, sorted by name."""
        tables = self._get_tables()
        return sorted(t for t in tables if t not in self.excluded_tables)

    def list_views(self) -> list[str]:
        return sorted(self._get_views())

    def describe_table(self, table: str) -> TableDescription:
        """Describe one table.

        Args:
            table: Table name

        Returns:
            TableDescription with columns, foreign keys, composite uniques
            and composite primary key

        Raises:
            ObjectNotFoundError: If the catalog reports no columns
        """
        columns = self._get_columns(table)
        if not columns:
            raise ObjectNotFoundError("table", table, "catalog returned no columns")

        foreign_keys = self._get_foreign_keys(table)
        primary_key, uniques = self._get_key_constraints(table)

        # Unique indexes count as unique constraints unless they are partial
        for index in self._get_indexes(table):
            if index.is_unique and index.where is None and index.columns:
                uniques.append(
                    CompositeUniqueConstraint(columns=index.columns, name=index.name)
                )

        description = self._merge(table, columns, foreign_keys, primary_key, uniques)
        logger.debug(
            "Described %s: %d columns, %d foreign keys, %d composite uniques",
            table,
            len(description.columns),
            len(description.foreign_keys),
            len(description.composite_uniques),
        )
        return description

    def list_indexes(self, table: str) -> list[IndexDescription]:
        """Secondary indexes of a table (no primary key or constraint indexes)."""
        return self._get_indexes(table)

    def get_view(self, name: str) -> ViewDescription:
        """Fetch a view's SELECT body.

        Raises:
            ObjectNotFoundError: If the view has no retrievable definition
        """
        definition = self._get_view_definition(name)
        if not definition or not definition.strip():
            raise ObjectNotFoundError("view", name, "no definition in catalog")
        return ViewDescription(name=name, select_sql=strip_view_header(definition))

    def count_rows(self, table: str) -> int:
        result = self._conn.execute(text(f"SELECT COUNT(*) FROM {self.quote(table)}"))
        return int(result.scalar() or 0)

    def fetch_rows(
        self, table: str, order_by: list[str] | None = None
    ) -> list[dict[str, Any]]:
        """Read every row of a table as a dict.

        Args:
            table: Table name
            order_by: Columns to sort by (primary key) for reproducible output
        """
        query = f"SELECT * FROM {self.quote(table)}"
        if order_by:
            query += " ORDER BY " + ", ".join(self.quote(c) for c in order_by)
        result = self._conn.execute(text(query))
        return [dict(row._mapping) for row in result]

    # ------------------------------------------------------------------
    # Strategy hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def _get_tables(self) -> list[str]:
        ...

    @abstractmethod
    def _get_views(self) -> list[str]:
        ...

    @abstractmethod
    def _get_view_definition(self, name: str) -> str | None:
        ...

    @abstractmethod
    def _get_columns(self, table: str) -> list[ColumnDescriptor]:
        ...

    @abstractmethod
    def _get_foreign_keys(self, table: str) -> list[ForeignKeyDescriptor]:
        ...

    @abstractmethod
    def _get_key_constraints(
        self, table: str
    ) -> tuple[list[str], list[CompositeUniqueConstraint]]:
        """Return (primary key columns, unique constraints)."""
        ...

    @abstractmethod
    def _get_indexes(self, table: str) -> list[IndexDescription]:
        ...

    # ------------------------------------------------------------------
    # Merge
    # ------------------------------------------------------------------

    def _merge(
        self,
        table: str,
        columns: list[ColumnDescriptor],
        foreign_keys: list[ForeignKeyDescriptor],
        primary_key: list[str],
        uniques: list[CompositeUniqueConstraint],
    ) -> TableDescription:
        """Fold key information into the column list.

        Single-column uniques become ``is_unique`` flags; multi-column
        uniques and primary keys become table-level constraints.
        """
        by_name = {col.name: col for col in columns}

        if not primary_key:
            primary_key = [c.name for c in columns if c.is_primary_key]
        for name in primary_key:
            if name in by_name:
                by_name[name].is_primary_key = True

        composite_uniques: list[CompositeUniqueConstraint] = []
        seen: set[tuple[str, ...]] = set()
        for unique in uniques:
            key = tuple(unique.columns)
            if not key or key in seen or list(key) == primary_key:
                continue
            seen.add(key)
            if len(key) == 1:
                if key[0] in by_name:
                    by_name[key[0]].is_unique = True
            else:
                composite_uniques.append(unique)

        for fk in foreign_keys:
            if len(fk.columns) == 1 and fk.columns[0] in by_name:
                col = by_name[fk.columns[0]]
                col.foreign_key_table = fk.referenced_table
                col.foreign_key_column = fk.referenced_columns[0]

        return TableDescription(
            name=table,
            columns=columns,
            foreign_keys=foreign_keys,
            composite_uniques=composite_uniques,
            composite_primary_key=list(primary_key) if len(primary_key) > 1 else None,
        )


# ============================================================================
# Generic (SQLAlchemy Inspector) strategy
# ============================================================================


class GenericIntrospector(SchemaIntrospector):
    """Introspection through SQLAlchemy's dialect-aware ``Inspector``.

    The Inspector reports composite keys correctly for MySQL, which parses
    ``SHOW CREATE TABLE``; it is the MySQL strategy and the fallback shape
    for the other two.
    """

    EXCLUDED_TABLES: set[str] = set()

    def __init__(self, conn: Connection, excluded_tables: set[str] | None = None):
        super().__init__(conn, excluded_tables)
        self.dialect = resolve_dialect(conn.dialect.name)
        self._inspector: Inspector | None = None

    @property
    def inspector(self) -> Inspector:
        if self._inspector is None:
            self._inspector = inspect(self._conn)
        return self._inspector

    def _get_tables(self) -> list[str]:
        return self.inspector.get_table_names()

    def _get_views(self) -> list[str]:
        return self.inspector.get_view_names()

    def _get_view_definition(self, name: str) -> str | None:
        try:
            return self.inspector.get_view_definition(name)
        except NoSuchTableError:
            return None

    def _describe_type(self, sa_type: Any) -> dict[str, Any]:
        """Spell a reflected SQLAlchemy type the way the source engine does."""
        if isinstance(sa_type, SAEnum):
            return {"logical_type": "enum", "enum_values": list(sa_type.enums)}
        try:
            spelled = sa_type.compile(dialect=self._conn.dialect)
        except (CompileError, NotImplementedError):
            # Untyped column (NullType)
            spelled = "text"
        info: dict[str, Any] = {"logical_type": base_type(spelled)}
        length = getattr(sa_type, "length", None) or getattr(sa_type, "display_width", None)
        if isinstance(length, int):
            info["max_length"] = length
        if isinstance(sa_type, SANumeric) and is_decimal_type(spelled):
            info["precision"] = sa_type.precision
            info["scale"] = sa_type.scale
        return info

    def _get_columns(self, table: str) -> list[ColumnDescriptor]:
        try:
            reflected = self.inspector.get_columns(table)
        except NoSuchTableError:
            return []
        pk = set(self.inspector.get_pk_constraint(table).get("constrained_columns") or [])

        columns = []
        for position, col in enumerate(reflected, start=1):
            info = self._describe_type(col["type"])
            default = col.get("default")
            columns.append(
                ColumnDescriptor(
                    name=col["name"],
                    nullable=bool(col.get("nullable", True)),
                    default_raw=str(default) if default is not None else None,
                    is_primary_key=col["name"] in pk,
                    is_generated=col.get("autoincrement") is True,
                    ordinal_position=position,
                    **info,
                )
            )
        return columns

    def _get_foreign_keys(self, table: str) -> list[ForeignKeyDescriptor]:
        foreign_keys = []
        for fk in self.inspector.get_foreign_keys(table):
            options = fk.get("options") or {}
            foreign_keys.append(
                ForeignKeyDescriptor(
                    owning_table=table,
                    columns=list(fk["constrained_columns"]),
                    referenced_table=fk["referred_table"],
                    referenced_columns=list(fk["referred_columns"]),
                    on_delete=_normalize_rule(options.get("ondelete")),
                    on_update=_normalize_rule(options.get("onupdate")),
                    constraint_name=fk.get("name"),
                )
            )
        return foreign_keys

    def _get_key_constraints(
        self, table: str
    ) -> tuple[list[str], list[CompositeUniqueConstraint]]:
        primary_key = list(
            self.inspector.get_pk_constraint(table).get("constrained_columns") or []
        )
        uniques = [
            CompositeUniqueConstraint(columns=list(uc["column_names"]), name=uc.get("name"))
            for uc in self.inspector.get_unique_constraints(table)
        ]
        return primary_key, uniques

    def _get_indexes(self, table: str) -> list[IndexDescription]:
        indexes = []
        for index in self.inspector.get_indexes(table):
            if index.get("duplicates_constraint"):
                continue
            names = index.get("column_names") or []
            if not names or any(name is None for name in names):
                logger.warning(
                    "Skipping expression index %s on %s", index.get("name"), table
                )
                continue
            options = index.get("dialect_options") or {}
            # Predicates are SQL clauses, which refuse truth testing
            where = options.get("postgresql_where")
            if where is None:
                where = options.get("sqlite_where")
            indexes.append(
                IndexDescription(
                    name=index["name"],
                    table=table,
                    columns=list(names),
                    is_unique=bool(index.get("unique")),
                    where=str(where) if where is not None else None,
                )
            )
        return indexes


# ============================================================================
# SQLite (pragma) strategy
# ============================================================================


class SQLiteIntrospector(SchemaIntrospector):
    """Introspection via ``sqlite_master`` and the table-valued pragmas.

    ``pragma_index_list`` exposes the origin of every index ('pk', 'u' for
    UNIQUE constraints, 'c' for CREATE INDEX), which is how composite keys
    are told apart from independent single-column uniques.
    """

    dialect = Dialect.SQLITE

    def _get_tables(self) -> list[str]:
        query = """
            SELECT name
            FROM sqlite_master
            WHERE type = 'table'
              AND name NOT LIKE 'sqlite_%'
            ORDER BY name
        """
        return [row[0] for row in self._conn.execute(text(query))]

    def _get_views(self) -> list[str]:
        query = "SELECT name FROM sqlite_master WHERE type = 'view' ORDER BY name"
        return [row[0] for row in self._conn.execute(text(query))]

    def _get_view_definition(self, name: str) -> str | None:
        query = "SELECT sql FROM sqlite_master WHERE type = 'view' AND name = :name"
        return self._conn.execute(text(query), {"name": name}).scalar()

    def _get_columns(self, table: str) -> list[ColumnDescriptor]:
        query = """
            SELECT cid, name, type, "notnull", dflt_value, pk
            FROM pragma_table_info(:table)
            ORDER BY cid
        """
        rows = self._conn.execute(text(query), {"table": table}).fetchall()
        pk_count = sum(1 for row in rows if row[5])

        columns = []
        for cid, name, declared, notnull, default, pk in rows:
            declared = (declared or "").strip()
            logical = base_type(declared) if declared else "text"
            col = ColumnDescriptor(
                name=name,
                logical_type=logical,
                nullable=not notnull,
                default_raw=default,
                is_primary_key=bool(pk),
                # INTEGER PRIMARY KEY is an alias of the rowid
                is_generated=bool(pk) and pk_count == 1 and declared.upper() == "INTEGER",
                ordinal_position=cid + 1,
            )
            match = _TYPE_ARGS.search(declared)
            if match:
                if is_decimal_type(logical):
                    col.precision = int(match.group(1))
                    col.scale = int(match.group(2) or 0)
                else:
                    col.max_length = int(match.group(1))
            columns.append(col)
        return columns

    def _primary_key(self, table: str) -> list[str]:
        query = """
            SELECT name
            FROM pragma_table_info(:table)
            WHERE pk > 0
            ORDER BY pk
        """
        return [row[0] for row in self._conn.execute(text(query), {"table": table})]

    def _get_foreign_keys(self, table: str) -> list[ForeignKeyDescriptor]:
        query = """
            SELECT id, seq, "table", "from", "to", on_update, on_delete
            FROM pragma_foreign_key_list(:table)
            ORDER BY id, seq
        """
        grouped: dict[int, dict[str, Any]] = {}
        for fk_id, _seq, ref_table, from_col, to_col, on_update, on_delete in self._conn.execute(
            text(query), {"table": table}
        ):
            entry = grouped.setdefault(
                fk_id,
                {
                    "referenced_table": ref_table,
                    "columns": [],
                    "referenced_columns": [],
                    "on_update": _normalize_rule(on_update),
                    "on_delete": _normalize_rule(on_delete),
                },
            )
            entry["columns"].append(from_col)
            entry["referenced_columns"].append(to_col)

        foreign_keys = []
        for entry in grouped.values():
            # REFERENCES parent without a column list targets the parent's PK
            if any(col is None for col in entry["referenced_columns"]):
                entry["referenced_columns"] = self._primary_key(entry["referenced_table"])
            foreign_keys.append(ForeignKeyDescriptor(owning_table=table, **entry))
        return foreign_keys

    def _index_columns(self, index_name: str) -> list[str | None]:
        query = "SELECT name FROM pragma_index_info(:index) ORDER BY seqno"
        return [row[0] for row in self._conn.execute(text(query), {"index": index_name})]

    def _get_key_constraints(
        self, table: str
    ) -> tuple[list[str], list[CompositeUniqueConstraint]]:
        query = """
            SELECT name, origin
            FROM pragma_index_list(:table)
            WHERE "unique" = 1
              AND origin IN ('pk', 'u')
              AND partial = 0
            ORDER BY seq DESC
        """
        primary_key = self._primary_key(table)
        uniques = []
        for name, origin in self._conn.execute(text(query), {"table": table}):
            columns = self._index_columns(name)
            if origin == "pk" or None in columns:
                continue
            uniques.append(CompositeUniqueConstraint(columns=columns))
        return primary_key, uniques

    def _get_indexes(self, table: str) -> list[IndexDescription]:
        query = """
            SELECT il.name, il."unique", m.sql
            FROM pragma_index_list(:table) AS il
            JOIN sqlite_master AS m ON m.type = 'index' AND m.name = il.name
            WHERE il.origin = 'c'
            ORDER BY il.name
        """
        indexes = []
        for name, unique, sql in self._conn.execute(text(query), {"table": table}):
            columns = self._index_columns(name)
            if not columns or None in columns:
                logger.warning("Skipping expression index %s on %s", name, table)
                continue
            match = _PARTIAL_INDEX.search(sql or "")
            indexes.append(
                IndexDescription(
                    name=name,
                    table=table,
                    columns=columns,
                    is_unique=bool(unique),
                    where=match.group(1).strip().rstrip(";").strip() if match else None,
                )
            )
        return indexes


# ============================================================================
# PostgreSQL (constraint catalog) strategy
# ============================================================================


class PostgreSQLIntrospector(SchemaIntrospector):
    """Introspection via information_schema and ``pg_catalog``.

    Multi-column keys are read from ``pg_constraint``: the key arrays are
    unnested with their ordinality, joined to ``pg_attribute`` and
    re-aggregated per constraint name, which keeps composite keys intact
    and in declaration order.
    """

    dialect = Dialect.POSTGRESQL

    # Tables to exclude from introspection (extension bookkeeping)
    EXCLUDED_TABLES = {
        "pg_stat_statements",
        "spatial_ref_sys",
    }

    def __init__(
        self,
        conn: Connection,
        excluded_tables: set[str] | None = None,
        schema_name: str = "public",
    ):
        super().__init__(conn, excluded_tables)
        self.schema_name = schema_name

    def _get_tables(self) -> list[str]:
        query = """
            SELECT tablename
            FROM pg_tables
            WHERE schemaname = :schema
            ORDER BY tablename
        """
        return [
            row[0] for row in self._conn.execute(text(query), {"schema": self.schema_name})
        ]

    def _get_views(self) -> list[str]:
        query = """
            SELECT viewname
            FROM pg_views
            WHERE schemaname = :schema
            ORDER BY viewname
        """
        return [
            row[0] for row in self._conn.execute(text(query), {"schema": self.schema_name})
        ]

    def _get_view_definition(self, name: str) -> str | None:
        query = """
            SELECT definition
            FROM pg_views
            WHERE schemaname = :schema
              AND viewname = :name
        """
        return self._conn.execute(
            text(query), {"schema": self.schema_name, "name": name}
        ).scalar()

    def _normalize_data_type(self, data_type: str, udt_name: str, typtype: str | None) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose information_schema types to the short names the
        dialect formatters understand.
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "time with time zone": "timetz",
            "time without time zone": "time",
        }
        if data_type == "ARRAY":
            return f"{udt_name.lstrip('_')}[]"
        if data_type == "USER-DEFINED":
            return "enum" if typtype == "e" else udt_name.lower()
        return type_map.get(data_type.lower(), data_type.lower())

    def _get_columns(self, table: str) -> list[ColumnDescriptor]:
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.udt_name,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.is_nullable,
                c.column_default,
                c.is_identity,
                c.ordinal_position,
                t.typtype
            FROM information_schema.columns c
            LEFT JOIN pg_namespace tn ON tn.nspname = c.udt_schema
            LEFT JOIN pg_type t ON t.typnamespace = tn.oid AND t.typname = c.udt_name
            WHERE c.table_schema = :schema
              AND c.table_name = :table
            ORDER BY c.ordinal_position
        """
        result = self._conn.execute(text(query), {"schema": self.schema_name, "table": table})
        columns = []
        for row in result:
            (
                name,
                data_type,
                udt_name,
                max_length,
                precision,
                scale,
                is_nullable,
                default,
                is_identity,
                position,
                typtype,
            ) = row
            logical = self._normalize_data_type(data_type, udt_name, typtype)
            default = str(default) if default is not None else None
            columns.append(
                ColumnDescriptor(
                    name=name,
                    logical_type=logical,
                    max_length=max_length,
                    precision=precision if is_decimal_type(logical) else None,
                    scale=scale if is_decimal_type(logical) else None,
                    nullable=(is_nullable == "YES"),
                    default_raw=default,
                    is_generated=(
                        is_identity == "YES"
                        or (default is not None and default.startswith("nextval("))
                    ),
                    ordinal_position=position,
                )
            )
        return columns

    def _get_key_constraints(
        self, table: str
    ) -> tuple[list[str], list[CompositeUniqueConstraint]]:
        query = """
            SELECT
                con.conname,
                con.contype,
                array_agg(a.attname ORDER BY k.ordinality) AS columns
            FROM pg_constraint con
            JOIN pg_class rel ON rel.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = rel.relnamespace
            JOIN LATERAL unnest(con.conkey) WITH ORDINALITY AS k(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
            WHERE n.nspname = :schema
              AND rel.relname = :table
              AND con.contype IN ('p', 'u')
            GROUP BY con.conname, con.contype
            ORDER BY con.contype, con.conname
        """
        primary_key: list[str] = []
        uniques = []
        result = self._conn.execute(text(query), {"schema": self.schema_name, "table": table})
        for name, contype, columns in result:
            if contype == "p":
                primary_key = list(columns)
            else:
                uniques.append(CompositeUniqueConstraint(columns=list(columns), name=name))
        return primary_key, uniques

    def _get_foreign_keys(self, table: str) -> list[ForeignKeyDescriptor]:
        query = """
            SELECT
                con.conname,
                ref.relname AS referenced_table,
                array_agg(a.attname ORDER BY k.ordinality) AS columns,
                array_agg(ra.attname ORDER BY k.ordinality) AS referenced_columns,
                con.confdeltype,
                con.confupdtype
            FROM pg_constraint con
            JOIN pg_class rel ON rel.oid = con.conrelid
            JOIN pg_namespace n ON n.oid = rel.relnamespace
            JOIN pg_class ref ON ref.oid = con.confrelid
            JOIN LATERAL unnest(con.conkey, con.confkey)
                WITH ORDINALITY AS k(attnum, refnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = con.conrelid AND a.attnum = k.attnum
            JOIN pg_attribute ra ON ra.attrelid = con.confrelid AND ra.attnum = k.refnum
            WHERE n.nspname = :schema
              AND rel.relname = :table
              AND con.contype = 'f'
            GROUP BY con.conname, ref.relname, con.confdeltype, con.confupdtype
            ORDER BY con.conname
        """
        result = self._conn.execute(text(query), {"schema": self.schema_name, "table": table})
        return [
            ForeignKeyDescriptor(
                owning_table=table,
                columns=list(columns),
                referenced_table=ref_table,
                referenced_columns=list(ref_columns),
                on_delete=_PG_FK_ACTIONS.get(on_delete, "NO ACTION"),
                on_update=_PG_FK_ACTIONS.get(on_update, "NO ACTION"),
                constraint_name=name,
            )
            for name, ref_table, columns, ref_columns, on_delete, on_update in result
        ]

    def _get_indexes(self, table: str) -> list[IndexDescription]:
        """Get indexes for a table (excluding primary key and constraint indexes).

        Only key columns are returned; INCLUDE columns of covering indexes
        follow the first ``indnkeyatts`` entries of ``indkey``.
        """
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique,
                pg_get_expr(ix.indpred, ix.indrelid) AS predicate
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = :schema
              AND t.relname = :table
              AND x.ordinality <= ix.indnkeyatts
              AND NOT ix.indisprimary
              AND ix.indexprs IS NULL
              AND NOT EXISTS (
                  SELECT 1 FROM pg_constraint c
                  WHERE c.conindid = ix.indexrelid
                    AND c.contype IN ('p', 'u', 'x')
              )
            GROUP BY i.relname, ix.indisunique, pg_get_expr(ix.indpred, ix.indrelid)
            ORDER BY i.relname
        """
        result = self._conn.execute(text(query), {"schema": self.schema_name, "table": table})
        return [
            IndexDescription(
                name=name,
                table=table,
                columns=list(columns),
                is_unique=bool(is_unique),
                where=predicate,
            )
            for name, columns, is_unique, predicate in result
        ]


# ============================================================================
# Factory
# ============================================================================


def get_introspector(
    conn: Connection, excluded_tables: set[str] | None = None
) -> SchemaIntrospector:
    """Pick the introspection strategy for a connection's dialect.

    Raises:
        UnsupportedDialectError: If the connection is not SQLite, MySQL or PostgreSQL
    """
    dialect = resolve_dialect(conn.dialect.name)
    if dialect == Dialect.SQLITE:
        return SQLiteIntrospector(conn, excluded_tables)
    if dialect == Dialect.POSTGRESQL:
        return PostgreSQLIntrospector(conn, excluded_tables)
    return GenericIntrospector(conn, excluded_tables)


def describe_table(conn: Connection, table: str) -> TableDescription:
    """Describe one table of the connected database."""
    return get_introspector(conn).describe_table(table)


def is_auto_increment_key(description: TableDescription, column: ColumnDescriptor) -> bool:
    """True for a generated, single integer primary key column."""
    return (
        column.is_generated
        and column.is_primary_key
        and len(description.primary_key_columns) == 1
        and is_integer_type(column.logical_type)
    )
