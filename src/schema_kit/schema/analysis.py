"""Read-only queries over a snapshot.

Pure helpers, no I/O:
- ``schema_statistics``: counts and per-engine breakdown
- ``find_tables_with_column``: tables sharing a column name
- ``table_relationships``: the foreign-key graph as edges
- ``primary_key_columns``: primary key of one table
- ``summarize_changes``: one-line summary of a ``SchemaComparison``
"""

from collections import Counter

from pydantic import BaseModel, Field

from schema_kit.schema.models import DatabaseSchema, KeyRole, SchemaComparison


class SchemaStatistics(BaseModel):
    """Aggregate counts for the tables of a snapshot."""

    total_tables: int = 0
    total_columns: int = 0
    total_indexes: int = 0
    total_foreign_keys: int = 0
    tables_by_engine: dict[str, int] = Field(default_factory=dict)
    average_columns_per_table: float = 0.0


class Relationship(BaseModel):
    """One foreign-key edge, child column to parent column."""

    from_table: str
    to_table: str
    on_column: str
    referenced_column: str


class ChangeSummary(BaseModel):
    has_changes: bool
    summary: str
    details: SchemaComparison


def schema_statistics(schema: DatabaseSchema) -> SchemaStatistics:
    total_tables = len(schema.tables)
    total_columns = sum(len(t.columns) for t in schema.tables)
    return SchemaStatistics(
        total_tables=total_tables,
        total_columns=total_columns,
        total_indexes=sum(len(t.indexes) for t in schema.tables),
        total_foreign_keys=sum(len(t.foreign_keys) for t in schema.tables),
        tables_by_engine=dict(Counter(t.engine for t in schema.tables)),
        average_columns_per_table=total_columns / total_tables if total_tables else 0.0,
    )


def find_tables_with_column(schema: DatabaseSchema, column_name: str) -> list[str]:
    """Names of tables that have a column called ``column_name``."""
    return [
        table.name
        for table in schema.tables
        if any(col.name == column_name for col in table.columns)
    ]


def table_relationships(schema: DatabaseSchema) -> list[Relationship]:
    return [
        Relationship(
            from_table=table.name,
            to_table=fk.referenced_table_name,
            on_column=fk.column_name,
            referenced_column=fk.referenced_column_name,
        )
        for table in schema.tables
        for fk in table.foreign_keys
    ]


def primary_key_columns(schema: DatabaseSchema, table_name: str) -> list[str]:
    """Primary key columns of ``table_name``; empty if the table is unknown."""
    table = schema.table(table_name)
    if table is None:
        return []
    return [col.name for col in table.columns if col.key == KeyRole.PRIMARY]


def summarize_changes(comparison: SchemaComparison) -> ChangeSummary:
    """Summarize a comparison, e.g. ``"2 tables added, 1 views modified"``."""
    if not comparison.has_changes:
        return ChangeSummary(
            has_changes=False, summary="No changes detected", details=comparison
        )

    counts = [
        (len(comparison.added_tables), "tables added"),
        (len(comparison.removed_tables), "tables removed"),
        (len(comparison.modified_tables), "tables modified"),
        (len(comparison.added_views), "views added"),
        (len(comparison.removed_views), "views removed"),
        (len(comparison.modified_views), "views modified"),
    ]
    summary = ", ".join(f"{n} {label}" for n, label in counts if n)
    return ChangeSummary(has_changes=True, summary=summary, details=comparison)
