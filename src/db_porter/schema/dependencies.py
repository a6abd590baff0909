"""Foreign key dependency graph and table ordering.

Parent tables must be created and loaded before their children. The graph
maps each table to the set of tables it references; ``topological_order``
turns it into a creation order and tolerates cycles.
"""

import logging
from collections.abc import Iterable

from db_porter.schema.models import TableDescription

logger = logging.getLogger(__name__)

# table -> tables it references
TableDependencyGraph = dict[str, set[str]]


def build_dependency_graph(
    descriptions: Iterable[TableDescription], tables: Iterable[str]
) -> TableDependencyGraph:
    """Build the FK dependency graph restricted to ``tables``.

    Args:
        descriptions: Introspected tables (their foreign keys supply the edges)
        tables: Tables in the current dump set

    Returns:
        Graph with one entry per table in ``tables``; self-references and
        references to tables outside the set are dropped.
    """
    in_set = set(tables)
    graph: TableDependencyGraph = {name: set() for name in in_set}
    for description in descriptions:
        if description.name not in in_set:
            continue
        for fk in description.foreign_keys:
            parent = fk.referenced_table
            if parent != description.name and parent in in_set:
                graph[description.name].add(parent)
    return graph


def topological_order(tables: list[str], edges: TableDependencyGraph) -> list[str]:
    """Topological sort of tables based on FK dependencies.

    Returns tables in forward order: parent tables first, child tables last.
    A table already on the current visit path is skipped, so cycles are
    broken instead of raising. Output is deterministic for a fixed input
    order.

    Args:
        tables: Table names in their preferred order.
        edges: FK dependency graph (table -> set of referenced tables).

    Returns:
        Every table in ``tables`` exactly once.
    """
    # Filter dependencies to only include relevant tables
    relevant = {t: edges.get(t, set()) & set(tables) for t in tables}

    sorted_tables: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()  # For cycle detection

    def visit(table: str) -> None:
        if table in visited:
            return
        if table in visiting:
            logger.debug("Circular foreign key dependency involving %s", table)
            return
        visiting.add(table)
        for dep in sorted(relevant.get(table, set())):
            if dep != table:
                visit(dep)
        visiting.discard(table)
        visited.add(table)
        sorted_tables.append(table)

    for table in tables:
        visit(table)

    return sorted_tables
