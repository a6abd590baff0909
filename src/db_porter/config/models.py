"""Pydantic models for db.toml configuration."""

from typing import Literal

from pydantic import BaseModel, Field

from db_porter.dialects import Dialect, resolve_dialect


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    provider: str = "postgres"  # Defaults to postgres

    @property
    def dialect(self) -> Dialect:
        """Dialect of the profile's provider (e.g. 'pg' -> postgresql).

        Raises:
            UnsupportedDialectError: If the provider is not supported
        """
        return resolve_dialect(self.provider)


class DumpDefaults(BaseModel):
    """Defaults for dump options from the [dump] table of db.toml."""

    chunk_size: int = Field(default=100, ge=0)
    conflict_mode: Literal["error", "ignore", "replace"] = "error"
    include_header: bool = True
    include_schema: bool = True


class DatabaseConfig(BaseModel):
    """Complete database configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    dump: DumpDefaults = Field(default_factory=DumpDefaults)
