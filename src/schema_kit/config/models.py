"""Pydantic models for schema-kit configuration."""

from pydantic import BaseModel, Field

from schema_kit.schema.extractor import DEFAULT_SYSTEM_TABLE_PREFIXES


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from schema-kit.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


class SchemaSettings(BaseModel):
    """The ``[schema]`` table of schema-kit.toml."""

    output_dir: str = "schema-exports"
    backup_dir: str = "schema-backups"
    system_table_prefixes: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SYSTEM_TABLE_PREFIXES)
    )


class SchemaKitConfig(BaseModel):
    """Complete configuration from schema-kit.toml."""

    profiles: dict[str, DatabaseProfile]
    default_profile: str | None = None
    schema_settings: SchemaSettings = Field(default_factory=SchemaSettings)
