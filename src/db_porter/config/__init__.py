"""Configuration management: profiles, dump defaults, and TOML loading.

Usage:
    >>> from db_porter.config import load_db_config, DatabaseProfile, DatabaseConfig
"""

from db_porter.config.loader import load_db_config
from db_porter.config.models import DatabaseConfig, DatabaseProfile, DumpDefaults

__all__ = ["load_db_config", "DatabaseConfig", "DatabaseProfile", "DumpDefaults"]
