"""Pydantic models for schema snapshots, comparisons and imports.

This module contains the schema-domain models:
- Snapshot models: ColumnSchema, IndexSchema, ForeignKeySchema, TableSchema,
  ViewSchema, ProcedureSchema, FunctionSchema, TriggerSchema, EventSchema,
  DatabaseSchema
- Comparison models: TableChange, SchemaComparison, ExpectedColumn,
  ColumnMismatch, TableDrift, ColumnValidationResult
- Import models: ImportFailure, ImportResult, ValidationReport
- Option models: ExtractionOptions, ImportOptions, CloneOptions,
  CreateDatabaseOptions

Snapshot models are frozen: a snapshot is never mutated in place, derived
snapshots are built with ``model_copy(update=...)``.  Every model rejects
unknown fields, which is what makes a corrupt interchange document fail
loudly on load.

Configuration models (DatabaseProfile, SchemaKitConfig) live in
schema_kit.config.models.
"""

import re
from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator


class _Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class _Options(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class KeyRole(str, Enum):
    """Column key role as reported by ``information_schema.COLUMNS``."""

    PRIMARY = "PRI"
    UNIQUE = "UNI"
    INDEXED = "MUL"
    NONE = ""


class ExportFormat(str, Enum):
    """Serialization formats understood by the exporters."""

    SQL = "sql"
    JSON = "json"
    TYPESCRIPT = "typescript"
    PYTHON = "python"
    MARKDOWN = "markdown"


# ============================================================================
# Snapshot Models
# ============================================================================


class ColumnSchema(_Snapshot):
    """Schema for a table column.

    ``default`` distinguishes an explicit ``"NULL"`` default from no
    default at all (``None``).

    Example:
        >>> col = ColumnSchema(name="id", type="int(11)", nullable=False)
        >>> col.key
        <KeyRole.NONE: ''>
    """

    name: str
    type: str
    nullable: bool = True
    default: str | None = None
    extra: str = ""  # auto_increment, on update current_timestamp(), ...
    comment: str = ""
    character_set: str | None = None
    collation: str | None = None
    key: KeyRole = KeyRole.NONE


class IndexSchema(_Snapshot):
    """One (index, column) row.  Composite indexes share ``name``."""

    name: str
    table_name: str
    column_name: str | None  # None for functional key parts
    non_unique: bool = True
    index_type: str = "BTREE"
    seq_in_index: int = 1
    collation: str | None = None
    cardinality: int | None = None
    comment: str = ""


class ForeignKeySchema(_Snapshot):
    """Schema for one column of a foreign key constraint."""

    constraint_name: str
    table_name: str
    column_name: str
    referenced_table_name: str
    referenced_column_name: str
    update_rule: str = "RESTRICT"  # CASCADE, RESTRICT, SET NULL, NO ACTION
    delete_rule: str = "RESTRICT"


class TableSchema(_Snapshot):
    """Schema for a base table.

    ``create_statement`` is the verbatim ``SHOW CREATE TABLE`` output and,
    when present, is the authoritative source for replay.
    """

    name: str
    columns: list[ColumnSchema] = Field(default_factory=list)
    indexes: list[IndexSchema] = Field(default_factory=list)
    foreign_keys: list[ForeignKeySchema] = Field(default_factory=list)
    engine: str = "InnoDB"
    collation: str = "utf8mb4_unicode_ci"
    comment: str = ""
    create_statement: str | None = None

    @model_validator(mode="after")
    def _check_column_references(self) -> "TableSchema":
        # MySQL column names are case-insensitive
        known = {col.name.lower() for col in self.columns}
        for fk in self.foreign_keys:
            if fk.column_name.lower() not in known:
                raise ValueError(
                    f"Foreign key '{fk.constraint_name}' on table '{self.name}' "
                    f"references unknown column '{fk.column_name}'"
                )
        for idx in self.indexes:
            if idx.column_name is not None and idx.column_name.lower() not in known:
                raise ValueError(
                    f"Index '{idx.name}' on table '{self.name}' "
                    f"references unknown column '{idx.column_name}'"
                )
        return self

    def column(self, name: str) -> ColumnSchema | None:
        """Find a column by name."""
        for col in self.columns:
            if col.name == name:
                return col
        return None


class ViewSchema(_Snapshot):
    """Schema for a view."""

    name: str
    definition: str
    check_option: str = "NONE"
    is_updatable: bool = False
    definer: str = ""
    security_type: str = "DEFINER"
    character_set_client: str | None = None
    collation_connection: str | None = None


class RoutineSchema(_Snapshot):
    """Fields shared by stored procedures and functions."""

    name: str
    definition: str = ""
    definer: str = ""
    created: datetime | None = None
    modified: datetime | None = None
    sql_data_access: str = "CONTAINS SQL"
    is_deterministic: bool = False
    security_type: str = "DEFINER"
    parameter_list: str | None = None
    comment: str = ""


class ProcedureSchema(RoutineSchema):
    """Schema for a stored procedure."""

    routine_type: Literal["PROCEDURE"] = "PROCEDURE"


class FunctionSchema(RoutineSchema):
    """Schema for a stored function."""

    routine_type: Literal["FUNCTION"] = "FUNCTION"
    returns: str = ""


class TriggerSchema(_Snapshot):
    """Schema for a trigger."""

    name: str
    table_name: str
    event: Literal["INSERT", "UPDATE", "DELETE"]
    timing: Literal["BEFORE", "AFTER"]
    statement: str
    definer: str = ""
    created: datetime | None = None
    sql_mode: str = ""
    character_set_client: str | None = None
    collation_connection: str | None = None
    database_collation: str | None = None


class EventSchema(_Snapshot):
    """Schema for a scheduled event."""

    name: str
    definer: str = ""
    time_zone: str = "SYSTEM"
    type: Literal["ONE TIME", "RECURRING"]
    execute_at: datetime | None = None
    interval_value: str | None = None
    interval_field: str | None = None
    status: Literal["ENABLED", "DISABLED", "SLAVESIDE_DISABLED"] = "ENABLED"
    on_completion: Literal["PRESERVE", "NOT PRESERVE"] = "NOT PRESERVE"
    definition: str
    comment: str = ""


class DatabaseSchema(_Snapshot):
    """Complete database snapshot -- the aggregate root.

    Object names are unique within each kind collection.
    """

    database_name: str
    tables: list[TableSchema] = Field(default_factory=list)
    views: list[ViewSchema] = Field(default_factory=list)
    procedures: list[ProcedureSchema] = Field(default_factory=list)
    functions: list[FunctionSchema] = Field(default_factory=list)
    triggers: list[TriggerSchema] = Field(default_factory=list)
    events: list[EventSchema] = Field(default_factory=list)
    character_set: str = "utf8mb4"
    collation: str = "utf8mb4_unicode_ci"
    extracted_at: datetime
    version: str | None = None

    @model_validator(mode="after")
    def _check_unique_names(self) -> "DatabaseSchema":
        collections = {
            "table": self.tables,
            "view": self.views,
            "procedure": self.procedures,
            "function": self.functions,
            "trigger": self.triggers,
            "event": self.events,
        }
        for kind, items in collections.items():
            seen: set[str] = set()
            for item in items:
                if item.name in seen:
                    raise ValueError(f"Duplicate {kind} name: '{item.name}'")
                seen.add(item.name)
        return self

    def table(self, name: str) -> TableSchema | None:
        """Find a table by name."""
        for table in self.tables:
            if table.name == name:
                return table
        return None


# ============================================================================
# Comparison Models
# ============================================================================


class TableChange(BaseModel):
    """Column-level differences for a table present in both snapshots."""

    table_name: str
    added_columns: list[str] = Field(default_factory=list)
    removed_columns: list[str] = Field(default_factory=list)
    modified_columns: list[str] = Field(default_factory=list)


class SchemaComparison(BaseModel):
    """Result of ``compare_schemas(old, new)``.  Derived, never persisted.

    Example:
        >>> SchemaComparison().has_changes
        False
    """

    added_tables: list[str] = Field(default_factory=list)
    removed_tables: list[str] = Field(default_factory=list)
    modified_tables: list[TableChange] = Field(default_factory=list)
    added_views: list[str] = Field(default_factory=list)
    removed_views: list[str] = Field(default_factory=list)
    modified_views: list[str] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """True if any category reports a difference."""
        return bool(
            self.added_tables
            or self.removed_tables
            or self.modified_tables
            or self.added_views
            or self.removed_views
            or self.modified_views
        )

    def format_report(self) -> str:
        """Format the comparison as a human-readable report."""
        if not self.has_changes:
            return "No schema changes"

        lines = ["Schema changes:"]

        if self.added_tables:
            lines.append(f"\n  Added tables ({len(self.added_tables)}):")
            for name in self.added_tables:
                lines.append(f"    + {name}")

        if self.removed_tables:
            lines.append(f"\n  Removed tables ({len(self.removed_tables)}):")
            for name in self.removed_tables:
                lines.append(f"    - {name}")

        if self.modified_tables:
            lines.append(f"\n  Modified tables ({len(self.modified_tables)}):")
            for change in self.modified_tables:
                lines.append(f"    ~ {change.table_name}")
                for col in change.added_columns:
                    lines.append(f"        + {col}")
                for col in change.removed_columns:
                    lines.append(f"        - {col}")
                for col in change.modified_columns:
                    lines.append(f"        ~ {col}")

        for label, names in (
            ("Added views", self.added_views),
            ("Removed views", self.removed_views),
            ("Modified views", self.modified_views),
        ):
            if names:
                lines.append(f"\n  {label}: {', '.join(names)}")

        return "\n".join(lines)


class ExpectedColumn(BaseModel):
    """A column the caller expects a table to have.

    ``type`` and ``nullable`` are only checked when given.  Types compare
    case-insensitively against the raw ``COLUMN_TYPE`` (``varchar(255)``).
    """

    model_config = ConfigDict(frozen=True)

    name: str
    type: str | None = None
    nullable: bool | None = None


class ColumnMismatch(BaseModel):
    """A column present on both sides whose type or nullability differs."""

    column: str
    expected_type: str | None = None
    actual_type: str
    expected_nullable: bool | None = None
    actual_nullable: bool


class TableDrift(BaseModel):
    """Differences between one snapshot table and its expected columns."""

    table_name: str
    missing_columns: list[str] = Field(default_factory=list)
    extra_columns: list[str] = Field(default_factory=list)
    mismatched_columns: list[ColumnMismatch] = Field(default_factory=list)

    @property
    def has_drift(self) -> bool:
        return bool(self.missing_columns or self.extra_columns or self.mismatched_columns)


class ColumnValidationResult(BaseModel):
    """Result of ``validate_columns(schema, expected)``.

    ``drifted_tables`` only lists tables with at least one difference.

    Example:
        >>> result = ColumnValidationResult(valid=True)
        >>> result.error_count
        0
    """

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    drifted_tables: list[TableDrift] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Missing tables plus every missing, extra or mismatched column."""
        return len(self.missing_tables) + sum(
            len(t.missing_columns) + len(t.extra_columns) + len(t.mismatched_columns)
            for t in self.drifted_tables
        )


# ============================================================================
# Import Models
# ============================================================================


class ImportFailure(BaseModel):
    """A single object that failed to apply (``kind:name`` + message)."""

    object_name: str
    error: str


class ImportResult(BaseModel):
    """Result of applying a snapshot.

    ``success`` is derived: it is true exactly when ``errors`` is empty.
    """

    tables_created: list[str] = Field(default_factory=list)
    views_created: list[str] = Field(default_factory=list)
    functions_created: list[str] = Field(default_factory=list)
    procedures_created: list[str] = Field(default_factory=list)
    triggers_created: list[str] = Field(default_factory=list)
    events_created: list[str] = Field(default_factory=list)
    errors: list[ImportFailure] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def success(self) -> bool:
        return not self.errors


class ValidationReport(BaseModel):
    """Outcome of ``SchemaImporter.validate_schema``."""

    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def format_report(self) -> str:
        """Format the report as human-readable text."""
        if self.valid and not self.warnings:
            return "Schema valid"

        lines = ["Schema valid (with warnings):" if self.valid else "Schema invalid:"]
        for error in self.errors:
            lines.append(f"  x {error}")
        for warning in self.warnings:
            lines.append(f"  ! {warning}")
        return "\n".join(lines)


# ============================================================================
# Option Models
# ============================================================================


class ExtractionOptions(_Options):
    """Options for ``SchemaExtractor.extract_full_schema``.

    ``table_filter`` is either an explicit list of table names or a regular
    expression (compiled pattern or pattern string).
    """

    include_tables: bool = True
    include_views: bool = True
    include_procedures: bool = True
    include_functions: bool = True
    include_triggers: bool = True
    include_events: bool = True
    table_filter: list[str] | re.Pattern[str] | None = None
    exclude_system_tables: bool = True


class ImportOptions(_Options):
    """Options for ``SchemaImporter.apply_schema``."""

    drop_existing: bool = False
    create_tables: bool = True
    create_views: bool = True
    create_functions: bool = True
    create_procedures: bool = True
    create_triggers: bool = True
    create_events: bool = True
    skip_errors: bool = False
    dry_run: bool = False
    target_database: str | None = None  # rewrites view references when set


class CloneOptions(ImportOptions):
    """Options for ``SchemaImporter.clone_schema``."""

    create_database: bool = True  # create target when it does not exist
    drop_database: bool = False  # drop target first when it exists


class CreateDatabaseOptions(ImportOptions):
    """Options for ``SchemaImporter.create_database``."""

    drop_if_exists: bool = False
