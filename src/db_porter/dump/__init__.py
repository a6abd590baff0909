"""Value encoding, bulk INSERT generation and dump orchestration.

Usage:
    from db_porter.dump import generate_dump, plan_dump, DumpOptions
    from db_porter.dump import generate_bulk_insert, format_value
"""

from db_porter.dump.bulk_insert import generate_bulk_insert
from db_porter.dump.models import DumpOptions, DumpPlan, TablePlan
from db_porter.dump.orchestrator import generate_dump, plan_dump
from db_porter.dump.values import format_value

__all__ = [
    "generate_dump",
    "plan_dump",
    "generate_bulk_insert",
    "format_value",
    "DumpOptions",
    "DumpPlan",
    "TablePlan",
]
