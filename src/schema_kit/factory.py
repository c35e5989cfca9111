"""Gateway factory.

Supports two configuration modes:
1. Profile mode (schema-kit.toml): named connection profiles
2. URL mode (``<PREFIX>DATABASE_URL`` environment variable): a single
   connection without a config file
"""

import logging
import os
from pathlib import Path
from typing import Any
from urllib.parse import quote

from schema_kit.adapters.mysql import AsyncMySQLAdapter
from schema_kit.config.loader import load_config
from schema_kit.config.models import DatabaseProfile, SchemaKitConfig
from schema_kit.errors import ProfileNotFoundError

logger = logging.getLogger(__name__)


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(
    profile_name: str | None = None,
    env_prefix: str = "",
    config: SchemaKitConfig | None = None,
) -> str:
    """Resolve which profile to use.

    Priority:
    1. ``profile_name`` argument (e.g. ``--profile`` on the CLI)
    2. ``{env_prefix}DB_PROFILE`` environment variable
    3. ``default_profile`` from the config file
    4. Raise ProfileNotFoundError

    Args:
        profile_name: Explicit profile name.
        env_prefix: Prefix for the environment variable lookup
            (e.g. ``"APP_"`` reads ``APP_DB_PROFILE``).
        config: Loaded configuration, consulted for ``default_profile``.

    Raises:
        ProfileNotFoundError: If no profile is configured.
    """
    if profile_name:
        return profile_name

    env_var = f"{env_prefix}DB_PROFILE"
    env_profile = os.environ.get(env_var)
    if env_profile:
        return env_profile

    if config is not None and config.default_profile:
        return config.default_profile

    raise ProfileNotFoundError(
        "No database profile configured.\n"
        f"Pass --profile <name>, set {env_var}=<name>, "
        "or set default_profile in schema-kit.toml"
    )


def get_active_profile(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
) -> tuple[str, DatabaseProfile]:
    """Get active profile name and configuration.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ProfileNotFoundError: If no profile is configured or the resolved
            name is not in the config.
    """
    config = load_config(config_path)
    name = get_active_profile_name(profile_name, env_prefix, config)

    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in config.\n"
            f"Available profiles: {', '.join(config.profiles.keys())}"
        )

    return name, config.profiles[name]


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Gateway Factory
# ============================================================================


def get_gateway(
    profile_name: str | None = None,
    env_prefix: str = "",
    config_path: Path | None = None,
    database_url: str | None = None,
    **engine_kwargs: Any,
) -> AsyncMySQLAdapter:
    """Create a MySQL gateway from a URL, a profile, or the environment.

    Resolution:
    1. ``database_url`` argument
    2. Profile from schema-kit.toml (see ``get_active_profile_name``)
    3. ``{env_prefix}DATABASE_URL`` environment variable, when no config
       file exists

    Raises:
        ProfileNotFoundError: If no connection can be resolved.

    Example:
        >>> async with get_gateway(profile_name="local") as gateway:
        ...     schema = await SchemaExtractor(gateway).extract_full_schema()
    """
    if database_url:
        return AsyncMySQLAdapter(database_url, **engine_kwargs)

    try:
        name, profile = get_active_profile(profile_name, env_prefix, config_path)
    except FileNotFoundError:
        env_url = os.environ.get(f"{env_prefix}DATABASE_URL")
        if env_url:
            logger.debug("No config file, using %sDATABASE_URL", env_prefix)
            return AsyncMySQLAdapter(env_url, **engine_kwargs)
        raise ProfileNotFoundError(
            "No database configuration found.\n"
            "Either:\n"
            "  1. Create schema-kit.toml with a [profiles.<name>] table\n"
            f"  2. Set {env_prefix}DATABASE_URL"
        ) from None

    logger.debug("Using profile %s", name)
    return AsyncMySQLAdapter(resolve_url(profile), **engine_kwargs)
