"""schema-kit: MySQL schema extraction, export, comparison and import.

Extracts the full logical schema of a MySQL database (tables, views,
routines, triggers, events) into immutable snapshots, serializes them to
SQL, JSON, type declarations or Markdown, diffs two snapshots, and replays
a snapshot against a target database.

Usage:
    from schema_kit import AsyncMySQLAdapter, SchemaExtractor, SchemaImporter
    from schema_kit import compare_schemas, export_schema, load_schema_from_file
    from schema_kit import get_gateway, load_config
"""

__version__ = "0.1.0"

# Adapters
from schema_kit.adapters.base import ExecuteResult, MetadataGateway
from schema_kit.adapters.mysql import AsyncMySQLAdapter

# Config
from schema_kit.config.loader import load_config
from schema_kit.config.models import DatabaseProfile, SchemaKitConfig

# Errors
from schema_kit.errors import (
    MalformedSchemaError,
    ObjectCreationError,
    PreconditionError,
    ProfileNotFoundError,
    SchemaKitError,
    UnsafeIdentifierError,
    UnsupportedFormatError,
)

# Factory
from schema_kit.factory import get_active_profile_name, get_gateway, resolve_url

# Schema
from schema_kit.schema.comparator import compare_schemas, validate_columns
from schema_kit.schema.exporters import SchemaExporter, export_schema
from schema_kit.schema.extractor import SchemaExtractor
from schema_kit.schema.importer import SchemaImporter
from schema_kit.schema.models import (
    CloneOptions,
    CreateDatabaseOptions,
    DatabaseSchema,
    ExportFormat,
    ExtractionOptions,
    ImportOptions,
    ImportResult,
    SchemaComparison,
    ValidationReport,
)
from schema_kit.schema.storage import (
    create_schema_backup,
    load_schema_from_file,
    load_schema_from_json,
    save_schema_to_file,
)

__all__ = [
    # Adapters
    "MetadataGateway",
    "ExecuteResult",
    "AsyncMySQLAdapter",
    # Config
    "load_config",
    "DatabaseProfile",
    "SchemaKitConfig",
    # Errors
    "SchemaKitError",
    "MalformedSchemaError",
    "ObjectCreationError",
    "PreconditionError",
    "ProfileNotFoundError",
    "UnsafeIdentifierError",
    "UnsupportedFormatError",
    # Factory
    "get_gateway",
    "get_active_profile_name",
    "resolve_url",
    # Schema
    "SchemaExtractor",
    "SchemaExporter",
    "SchemaImporter",
    "export_schema",
    "compare_schemas",
    "validate_columns",
    "load_schema_from_file",
    "load_schema_from_json",
    "save_schema_to_file",
    "create_schema_backup",
    "DatabaseSchema",
    "ExportFormat",
    "ExtractionOptions",
    "ImportOptions",
    "CloneOptions",
    "CreateDatabaseOptions",
    "ImportResult",
    "SchemaComparison",
    "ValidationReport",
]
