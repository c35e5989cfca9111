"""Schema extraction, export, comparison and import.

Provides live extraction (``SchemaExtractor``), pure exporters
(``export_schema``), snapshot comparison (``compare_schemas``,
``validate_columns``), replay (``SchemaImporter``) and snapshot storage.

Usage:
    from schema_kit.schema import SchemaExtractor, SchemaImporter
    from schema_kit.schema import compare_schemas, export_schema
"""

from schema_kit.schema.analysis import (
    find_tables_with_column,
    primary_key_columns,
    schema_statistics,
    summarize_changes,
    table_relationships,
)
from schema_kit.schema.comparator import check_table, compare_schemas, validate_columns
from schema_kit.schema.exporters import (
    SchemaExporter,
    export_json,
    export_markdown,
    export_python,
    export_schema,
    export_sql,
    export_typescript,
)
from schema_kit.schema.extractor import SchemaExtractor, prefer_then_fallback
from schema_kit.schema.importer import SchemaImporter
from schema_kit.schema.models import (
    CloneOptions,
    ColumnMismatch,
    ColumnSchema,
    ColumnValidationResult,
    CreateDatabaseOptions,
    DatabaseSchema,
    EventSchema,
    ExpectedColumn,
    ExportFormat,
    ExtractionOptions,
    ForeignKeySchema,
    FunctionSchema,
    ImportFailure,
    ImportOptions,
    ImportResult,
    IndexSchema,
    KeyRole,
    ProcedureSchema,
    SchemaComparison,
    TableChange,
    TableDrift,
    TableSchema,
    TriggerSchema,
    ValidationReport,
    ViewSchema,
)
from schema_kit.schema.storage import (
    create_schema_backup,
    load_schema_from_file,
    load_schema_from_json,
    save_schema_to_file,
)

__all__ = [
    "SchemaExtractor",
    "prefer_then_fallback",
    "SchemaExporter",
    "export_schema",
    "export_sql",
    "export_json",
    "export_typescript",
    "export_python",
    "export_markdown",
    "compare_schemas",
    "validate_columns",
    "check_table",
    "SchemaImporter",
    "load_schema_from_file",
    "load_schema_from_json",
    "save_schema_to_file",
    "create_schema_backup",
    "schema_statistics",
    "find_tables_with_column",
    "table_relationships",
    "primary_key_columns",
    "summarize_changes",
    "ColumnSchema",
    "IndexSchema",
    "ForeignKeySchema",
    "TableSchema",
    "ViewSchema",
    "ProcedureSchema",
    "FunctionSchema",
    "TriggerSchema",
    "EventSchema",
    "DatabaseSchema",
    "KeyRole",
    "ExportFormat",
    "SchemaComparison",
    "TableChange",
    "ExpectedColumn",
    "ColumnMismatch",
    "TableDrift",
    "ColumnValidationResult",
    "ImportFailure",
    "ImportResult",
    "ValidationReport",
    "ExtractionOptions",
    "ImportOptions",
    "CloneOptions",
    "CreateDatabaseOptions",
]
