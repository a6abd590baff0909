"""db-porter: cross-dialect schema and data dumps for SQLite, MySQL and PostgreSQL.

Introspects a live database through a SQLAlchemy connection and emits one
SQL script that recreates its tables, views, indexes and rows on any of
the three engines.

Usage:
    from db_porter import generate_dump, DumpOptions
    from db_porter import build_create_table, generate_bulk_insert, format_value
    from db_porter import load_db_config, get_engine, dump_profile
"""

__version__ = "0.1.0"

# Config
from db_porter.config.loader import load_db_config
from db_porter.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults

# Dialects
from db_porter.dialects import (
    Dialect,
    SqlDialect,
    convert_data_type,
    get_dialect,
    quote_identifier,
    resolve_dialect,
)

# Dump
from db_porter.dump.bulk_insert import generate_bulk_insert
from db_porter.dump.models import DumpOptions, DumpPlan, TablePlan
from db_porter.dump.orchestrator import generate_dump, plan_dump
from db_porter.dump.values import format_value

# Errors
from db_porter.errors import (
    DumpError,
    ObjectNotFoundError,
    ProfileNotFoundError,
    UnsupportedConflictConfigurationError,
    UnsupportedDialectError,
)

# Factory
from db_porter.factory import dump_profile, get_engine, resolve_url

# Schema
from db_porter.schema.builder import build_create_index, build_create_table, build_create_view
from db_porter.schema.dependencies import build_dependency_graph, topological_order
from db_porter.schema.introspector import describe_table, get_introspector
from db_porter.schema.models import (
    ColumnDescriptor,
    CompositeUniqueConstraint,
    ForeignKeyDescriptor,
    IndexDescription,
    TableDescription,
    ViewDescription,
)

__all__ = [
    # Dump
    "generate_dump",
    "plan_dump",
    "generate_bulk_insert",
    "format_value",
    "DumpOptions",
    "DumpPlan",
    "TablePlan",
    # Schema
    "build_create_table",
    "build_create_view",
    "build_create_index",
    "build_dependency_graph",
    "topological_order",
    "describe_table",
    "get_introspector",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "CompositeUniqueConstraint",
    "TableDescription",
    "ViewDescription",
    "IndexDescription",
    # Dialects
    "Dialect",
    "SqlDialect",
    "get_dialect",
    "resolve_dialect",
    "quote_identifier",
    "convert_data_type",
    # Errors
    "DumpError",
    "UnsupportedDialectError",
    "ObjectNotFoundError",
    "UnsupportedConflictConfigurationError",
    "ProfileNotFoundError",
    # Config
    "load_db_config",
    "DatabaseConfig",
    "DatabaseProfile",
    "DumpDefaults",
    # Factory
    "get_engine",
    "dump_profile",
    "resolve_url",
]
