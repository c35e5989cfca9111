"""TOML configuration loader for schema-kit."""

import tomllib
from pathlib import Path

from schema_kit.config.models import DatabaseProfile, SchemaKitConfig, SchemaSettings

CONFIG_FILENAME = "schema-kit.toml"


def load_config(config_path: Path | None = None) -> SchemaKitConfig:
    """Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file (default: ``./schema-kit.toml``)

    Returns:
        SchemaKitConfig with all profiles and schema settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config not found: {config_path}\n"
            f"Create {CONFIG_FILENAME} with at least one [profiles.<name>] table."
        )

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse profiles
    profiles = {}
    for name, profile_data in data.get("profiles", {}).items():
        profiles[name] = DatabaseProfile(**profile_data)

    default_profile = data.get("default_profile")
    if default_profile is not None and default_profile not in profiles:
        raise ValueError(
            f"default_profile '{default_profile}' is not a configured profile. "
            f"Available: {', '.join(profiles) or '(none)'}"
        )

    return SchemaKitConfig(
        profiles=profiles,
        default_profile=default_profile,
        schema_settings=SchemaSettings(**data.get("schema", {})),
    )
