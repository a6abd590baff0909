"""Pydantic models describing an introspected schema.

These are dialect-neutral: ``logical_type`` keeps the source engine's own
spelling (lower-cased, length stripped) and the target spelling is decided
later by the dialect formatter.

- Table models: ColumnDescriptor, ForeignKeyDescriptor,
  CompositeUniqueConstraint, TableDescription
- Other objects: ViewDescription, IndexDescription
"""

from pydantic import BaseModel, Field


# ============================================================================
# Table Models
# ============================================================================


class ColumnDescriptor(BaseModel):
    """A single column as reported by the catalog.

    Example:
        >>> col = ColumnDescriptor(name="id", logical_type="integer", is_primary_key=True)
        >>> col.nullable
        True
    """

    name: str
    logical_type: str
    max_length: int | None = None
    precision: int | None = None
    scale: int | None = None
    nullable: bool = True
    default_raw: str | None = None
    is_primary_key: bool = False
    is_unique: bool = False
    is_generated: bool = False
    foreign_key_table: str | None = None
    foreign_key_column: str | None = None
    ordinal_position: int = 0
    enum_values: list[str] | None = None  # MySQL inline ENUM('a','b')


class ForeignKeyDescriptor(BaseModel):
    """A (possibly composite) foreign key owned by ``owning_table``."""

    owning_table: str
    columns: list[str]
    referenced_table: str
    referenced_columns: list[str]
    on_delete: str = "NO ACTION"
    on_update: str = "NO ACTION"
    constraint_name: str | None = None


class CompositeUniqueConstraint(BaseModel):
    """A UNIQUE constraint spanning two or more columns."""

    columns: list[str]
    name: str | None = None


class TableDescription(BaseModel):
    """Everything needed to recreate one table.

    ``composite_primary_key`` is only set when the primary key spans more
    than one column; single-column keys are carried on the column itself.
    """

    name: str
    columns: list[ColumnDescriptor] = Field(default_factory=list)
    foreign_keys: list[ForeignKeyDescriptor] = Field(default_factory=list)
    composite_uniques: list[CompositeUniqueConstraint] = Field(default_factory=list)
    composite_primary_key: list[str] | None = None

    @property
    def primary_key_columns(self) -> list[str]:
        """Primary key column names in catalog order."""
        if self.composite_primary_key:
            return list(self.composite_primary_key)
        pk = [c for c in self.columns if c.is_primary_key]
        pk.sort(key=lambda c: c.ordinal_position)
        return [c.name for c in pk]

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnDescriptor | None:
        """Look up a column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None

    def is_key_column(self, name: str) -> bool:
        """True if the column takes part in any key or unique constraint."""
        col = self.column(name)
        if col is not None and (
            col.is_primary_key or col.is_unique or col.foreign_key_table
        ):
            return True
        if self.composite_primary_key and name in self.composite_primary_key:
            return True
        if any(name in fk.columns for fk in self.foreign_keys):
            return True
        return any(name in uc.columns for uc in self.composite_uniques)


# ============================================================================
# View and Index Models
# ============================================================================


class ViewDescription(BaseModel):
    """A view and its native SELECT body (without ``CREATE VIEW ... AS``)."""

    name: str
    select_sql: str


class IndexDescription(BaseModel):
    """A secondary (non-primary) index."""

    name: str
    table: str
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    where: str | None = None  # Partial index predicate
