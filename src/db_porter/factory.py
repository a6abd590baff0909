"""Profile-based engine factory.

Resolves a db.toml profile to a SQLAlchemy engine and runs dumps against
it. The dump engine itself never reads configuration; this module is the
caller-side wiring.

Usage:
    >>> from db_porter.factory import dump_profile
    >>> sql = dump_profile("local", "mysql")
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from db_porter.config.loader import load_db_config
from db_porter.config.models import DatabaseConfig, DatabaseProfile
from db_porter.dialects import Dialect
from db_porter.dump.models import DumpOptions
from db_porter.dump.orchestrator import generate_dump
from db_porter.errors import ProfileNotFoundError

logger = logging.getLogger(__name__)


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(env_prefix: str = "") -> str:
    """Get active profile name from the environment.

    Reads ``{env_prefix}DB_PROFILE`` (``DB_PROFILE`` by default).

    Args:
        env_prefix: Prefix for the environment variable, e.g. "MYAPP_"

    Returns:
        Profile name

    Raises:
        ProfileNotFoundError: If the variable is unset or empty
    """
    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Set {env_var}=<name> or pass a profile name explicitly."
    )


def get_active_profile(
    profile_name: str | None = None,
    config_path: Path | None = None,
    env_prefix: str = "",
) -> tuple[str, DatabaseProfile, DatabaseConfig]:
    """Get profile name, profile and full configuration.

    Raises:
        ProfileNotFoundError: If no profile is configured or it is not in db.toml
        FileNotFoundError: If db.toml doesn't exist
    """
    if profile_name is None:
        profile_name = get_active_profile_name(env_prefix)
    config = load_db_config(config_path)

    if profile_name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{profile_name}' not found in db.toml.\n"
            f"Available profiles: {available}"
        )

    return profile_name, config.profiles[profile_name], config


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Bare scheme names are pinned to the drivers db-porter installs:
    ``postgres://`` and ``postgresql://`` become ``postgresql+psycopg://``,
    ``mysql://`` becomes ``mysql+mysqlconnector://``.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))

    # Normalize URL scheme:
    # 1. postgres:// -> postgresql:// (Heroku, Railway, Supabase alias)
    # 2. postgresql:// -> postgresql+psycopg://
    # 3. mysql:// -> mysql+mysqlconnector://
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        url = "postgresql+psycopg://" + url[len("postgresql://"):]
    if url.startswith("mysql://"):
        url = "mysql+mysqlconnector://" + url[len("mysql://"):]
    return url


# ============================================================================
# Engine Factory
# ============================================================================


def get_engine(
    profile_name: str | None = None,
    config_path: Path | None = None,
    env_prefix: str = "",
) -> Engine:
    """Create a sync SQLAlchemy engine for a profile.

    The caller owns the engine and must ``dispose()`` it.

    Example:
        >>> engine = get_engine("local")
        >>> with engine.connect() as conn:
        ...     ...
        >>> engine.dispose()
    """
    name, profile, _ = get_active_profile(profile_name, config_path, env_prefix)
    logger.debug("Creating engine for profile %s (%s)", name, profile.dialect)
    return create_engine(resolve_url(profile))


def dump_profile(
    profile_name: str | None,
    target: "Dialect | str",
    options: DumpOptions | None = None,
    config_path: Path | None = None,
) -> str:
    """Dump a profile's database as a SQL script for ``target``.

    Options left as None are taken from the [dump] table of db.toml.

    Returns:
        The SQL script text
    """
    name, profile, config = get_active_profile(profile_name, config_path)
    if options is None:
        options = DumpOptions(**config.dump.model_dump())

    engine = create_engine(resolve_url(profile))
    try:
        with engine.connect() as conn:
            logger.debug("Dumping profile %s for %s", name, target)
            return generate_dump(conn, target, options)
    finally:
        engine.dispose()
