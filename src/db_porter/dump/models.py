"""Pydantic models for dump options and dump plans."""

from typing import Literal

from pydantic import BaseModel, Field

from db_porter.dialects import Dialect
from db_porter.schema.models import TableDescription

ConflictMode = Literal["error", "ignore", "replace"]


# ============================================================================
# Options
# ============================================================================


class DumpOptions(BaseModel):
    """Caller options for one dump.

    ``chunk_size=0`` produces a schema-only dump.

    Example:
        >>> DumpOptions(chunk_size=0).include_schema
        True
    """

    tables: list[str] | None = None  # None = all non-system tables
    include_header: bool = True
    include_schema: bool = True
    chunk_size: int = Field(default=100, ge=0)
    conflict_mode: ConflictMode = "error"


# ============================================================================
# Plan
# ============================================================================


class TablePlan(BaseModel):
    """One table of a dump, in dependency order."""

    name: str
    row_count: int = 0
    description: TableDescription


class DumpPlan(BaseModel):
    """Ordered tables plus the settings the orchestrator executes with."""

    target: Dialect
    tables: list[TablePlan] = Field(default_factory=list)
    conflict_mode: ConflictMode = "error"
    chunk_size: int = 100

    @property
    def table_names(self) -> list[str]:
        return [t.name for t in self.tables]

    @property
    def total_rows(self) -> int:
        """Rows across all planned tables."""
        return sum(t.row_count for t in self.tables)
