"""Schema comparison.

Pure functions, no I/O:
- ``compare_schemas(old, new)``: structural diff of two snapshots
- ``validate_columns(schema, expected)``: drift check of snapshot tables
  against expected columns (missing, extra, type and nullability)
- ``check_table(table, expected)``: the same check for a single table

Usage:
    from schema_kit.schema.comparator import compare_schemas, validate_columns

    comparison = compare_schemas(old_schema, new_schema)
    if comparison.has_changes:
        print(comparison.format_report())

    schema = await SchemaExtractor(gateway).extract_full_schema()
    result = validate_columns(
        schema,
        {"users": ["id", ExpectedColumn(name="email", type="varchar(255)", nullable=False)]},
    )
"""

from collections.abc import Mapping, Sequence

from schema_kit.schema.models import (
    ColumnMismatch,
    ColumnValidationResult,
    DatabaseSchema,
    ExpectedColumn,
    SchemaComparison,
    TableChange,
    TableDrift,
    TableSchema,
)


def compare_schemas(old: DatabaseSchema, new: DatabaseSchema) -> SchemaComparison:
    """Diff two snapshots.

    Tables and columns are matched by name.  A column counts as modified
    when any of its fields differ.  Views are matched by name and compared
    by their exact ``definition`` string.

    Added names appear in ``new`` order, removed names in ``old`` order.

    Examples:
        >>> compare_schemas(schema, schema).has_changes
        False
    """
    old_tables = {t.name: t for t in old.tables}
    new_tables = {t.name: t for t in new.tables}

    added_tables = [name for name in new_tables if name not in old_tables]
    removed_tables = [name for name in old_tables if name not in new_tables]

    modified_tables: list[TableChange] = []
    for name, new_table in new_tables.items():
        old_table = old_tables.get(name)
        if old_table is None:
            continue
        change = _compare_columns(old_table, new_table)
        if change is not None:
            modified_tables.append(change)

    old_views = {v.name: v for v in old.views}
    new_views = {v.name: v for v in new.views}

    added_views = [name for name in new_views if name not in old_views]
    removed_views = [name for name in old_views if name not in new_views]
    modified_views = [
        name
        for name, view in old_views.items()
        if name in new_views and new_views[name].definition != view.definition
    ]

    return SchemaComparison(
        added_tables=added_tables,
        removed_tables=removed_tables,
        modified_tables=modified_tables,
        added_views=added_views,
        removed_views=removed_views,
        modified_views=modified_views,
    )


def _compare_columns(old: TableSchema, new: TableSchema) -> TableChange | None:
    old_columns = {c.name: c for c in old.columns}
    new_columns = {c.name: c for c in new.columns}

    added: list[str] = []
    modified: list[str] = []
    for name, column in new_columns.items():
        previous = old_columns.get(name)
        if previous is None:
            added.append(name)
        elif previous != column:
            modified.append(name)

    removed = [name for name in old_columns if name not in new_columns]

    if not (added or removed or modified):
        return None
    return TableChange(
        table_name=new.name,
        added_columns=added,
        removed_columns=removed,
        modified_columns=modified,
    )


def check_table(
    table: TableSchema, expected: Sequence[ExpectedColumn | str]
) -> TableDrift:
    """Compare one table's columns with the columns a caller expects.

    Plain strings are treated as name-only expectations.  Missing columns
    keep the caller's order, extra columns keep the table's ordinal order.
    """
    wanted = [ExpectedColumn(name=c) if isinstance(c, str) else c for c in expected]
    actual = {c.name: c for c in table.columns}
    wanted_names = {c.name for c in wanted}

    drift = TableDrift(table_name=table.name)
    for exp in wanted:
        col = actual.get(exp.name)
        if col is None:
            drift.missing_columns.append(exp.name)
            continue
        type_differs = exp.type is not None and exp.type.lower() != col.type.lower()
        null_differs = exp.nullable is not None and exp.nullable != col.nullable
        if type_differs or null_differs:
            drift.mismatched_columns.append(
                ColumnMismatch(
                    column=exp.name,
                    expected_type=exp.type,
                    actual_type=col.type,
                    expected_nullable=exp.nullable,
                    actual_nullable=col.nullable,
                )
            )

    drift.extra_columns = [c.name for c in table.columns if c.name not in wanted_names]
    return drift


def validate_columns(
    schema: DatabaseSchema,
    expected: Mapping[str, Sequence[ExpectedColumn | str]],
) -> ColumnValidationResult:
    """Check a snapshot's tables against expected column definitions.

    Only tables named in ``expected`` are checked; other snapshot tables
    are ignored.  A table is valid when it has exactly the expected
    columns and every given type and nullability matches.

    Examples:
        >>> validate_columns(schema, {"users": ["id", "email", "is_active"]}).valid
        True
        >>> validate_columns(schema, {"audit_log": ["id"]}).missing_tables
        ['audit_log']
    """
    missing_tables: list[str] = []
    drifted: list[TableDrift] = []

    for table_name, columns in expected.items():
        table = schema.table(table_name)
        if table is None:
            missing_tables.append(table_name)
            continue
        drift = check_table(table, columns)
        if drift.has_drift:
            drifted.append(drift)

    return ColumnValidationResult(
        valid=not missing_tables and not drifted,
        missing_tables=missing_tables,
        drifted_tables=drifted,
    )
