"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from schema_kit.config import load_config, DatabaseProfile, SchemaKitConfig
"""

from schema_kit.config.loader import load_config
from schema_kit.config.models import DatabaseProfile, SchemaKitConfig, SchemaSettings

__all__ = ["load_config", "SchemaKitConfig", "DatabaseProfile", "SchemaSettings"]
