"""TOML loader for db.toml."""

import tomllib
from pathlib import Path

from db_porter.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults


def load_db_config(config_path: Path | None = None) -> DatabaseConfig:
    """Load database configuration from TOML file.

    Args:
        config_path: Path to db.toml (default: ./db.toml in the working directory)

    Returns:
        DatabaseConfig with all profiles and dump defaults

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / "db.toml"

    if not config_path.exists():
        raise FileNotFoundError(
            f"Database config not found: {config_path}\n"
            f"Create db.toml with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        if not isinstance(profile_data, dict):
            raise ValueError(f"Profile '{name}' must be a table, got {profile_data!r}")
        profiles[name] = DatabaseProfile(**profile_data)

    # Parse dump defaults
    dump_settings = data.get("dump", {})

    return DatabaseConfig(
        profiles=profiles,
        dump=DumpDefaults(**dump_settings),
    )
