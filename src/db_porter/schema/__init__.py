"""Schema introspection, DDL building and dependency ordering.

Usage:
    from db_porter.schema import get_introspector, describe_table
    from db_porter.schema import build_create_table, build_create_view, build_create_index
    from db_porter.schema import build_dependency_graph, topological_order
"""

from db_porter.schema.builder import build_create_index, build_create_table, build_create_view
from db_porter.schema.dependencies import build_dependency_graph, topological_order
from db_porter.schema.introspector import (
    GenericIntrospector,
    PostgreSQLIntrospector,
    SchemaIntrospector,
    SQLiteIntrospector,
    describe_table,
    get_introspector,
)
from db_porter.schema.models import (
    ColumnDescriptor,
    CompositeUniqueConstraint,
    ForeignKeyDescriptor,
    IndexDescription,
    TableDescription,
    ViewDescription,
)

__all__ = [
    "build_create_table",
    "build_create_view",
    "build_create_index",
    "build_dependency_graph",
    "topological_order",
    "SchemaIntrospector",
    "GenericIntrospector",
    "SQLiteIntrospector",
    "PostgreSQLIntrospector",
    "get_introspector",
    "describe_table",
    "ColumnDescriptor",
    "ForeignKeyDescriptor",
    "CompositeUniqueConstraint",
    "TableDescription",
    "ViewDescription",
    "IndexDescription",
]
