"""Snapshot exporters: SQL script, JSON, type declarations, Markdown.

All exporters are pure functions over a ``DatabaseSchema``.
``SchemaExporter`` wraps them for callers that want a fresh extraction when
no snapshot is supplied.

Usage:
    from schema_kit.schema.exporters import export_schema
    from schema_kit.schema.models import ExportFormat

    script = export_schema(schema, ExportFormat.SQL)
    docs = export_schema(schema, "markdown")
"""

import keyword
import logging
import re

from schema_kit.errors import UnsupportedFormatError
from schema_kit.schema.extractor import SchemaExtractor
from schema_kit.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    ExportFormat,
    TableSchema,
)
from schema_kit.schema.sql import (
    drop_statement,
    render_event,
    render_routine,
    render_trigger,
    render_view,
    table_create_sql,
)

logger = logging.getLogger(__name__)

_SECTION_RULE = "-- --------------------------------------------------------"

# ============================================================================
# Type Mapping
# ============================================================================

BOOLEAN = "boolean"
INTEGER = "integer"
FLOAT = "float"
DECIMAL = "decimal"
DATETIME = "datetime"
JSON = "json"
BYTES = "bytes"
ENUM = "enum"
STRING = "string"

_INTEGER_TYPES = {"tinyint", "smallint", "mediumint", "int", "integer", "bigint"}
_FLOAT_TYPES = {"float", "double", "real"}
_DECIMAL_TYPES = {"decimal", "dec", "numeric", "fixed"}
_DATETIME_TYPES = {"date", "datetime", "timestamp", "time"}

_ENUM_VALUE_RE = re.compile(r"'((?:[^']|'')*)'")

TYPESCRIPT_TYPES = {
    BOOLEAN: "boolean",
    INTEGER: "number",
    FLOAT: "number",
    DECIMAL: "number",
    DATETIME: "Date | string",
    JSON: "any",
    BYTES: "Buffer",
    STRING: "string",
}

PYTHON_TYPES = {
    BOOLEAN: "bool",
    INTEGER: "int",
    FLOAT: "float",
    DECIMAL: "Decimal",
    DATETIME: "datetime | str",
    JSON: "Any",
    BYTES: "bytes",
    STRING: "str",
}


def classify_column_type(column_type: str) -> tuple[str, list[str]]:
    """Map a raw MySQL column type to a logical type.

    Returns:
        ``(kind, enum_values)``; ``enum_values`` is empty unless ``kind`` is
        ``ENUM``.

    Examples:
        >>> classify_column_type("tinyint(1)")
        ('boolean', [])
        >>> classify_column_type("enum('a','b')")
        ('enum', ['a', 'b'])
    """
    raw = column_type.strip().lower()
    base = re.split(r"[\s(]", raw, maxsplit=1)[0]

    if raw.startswith("tinyint(1)") or "bool" in base:
        return BOOLEAN, []
    if base in _INTEGER_TYPES:
        return INTEGER, []
    if base in _FLOAT_TYPES:
        return FLOAT, []
    if base in _DECIMAL_TYPES:
        return DECIMAL, []
    if base in _DATETIME_TYPES:
        return DATETIME, []
    if base == "json":
        return JSON, []
    if "blob" in base or "binary" in base:
        return BYTES, []
    if base == "enum":
        values = [v.replace("''", "'") for v in _ENUM_VALUE_RE.findall(column_type)]
        return ENUM, values
    return STRING, []


def _literal_union(values: list[str]) -> str:
    return " | ".join("'" + v.replace("\\", "\\\\").replace("'", "\\'") + "'" for v in values)


def typescript_type(column_type: str) -> str:
    """TypeScript type for a raw MySQL column type."""
    kind, values = classify_column_type(column_type)
    if kind == ENUM:
        return _literal_union(values) if values else "string"
    return TYPESCRIPT_TYPES[kind]


def python_type(column_type: str) -> str:
    """Python annotation for a raw MySQL column type."""
    kind, values = classify_column_type(column_type)
    if kind == ENUM:
        return f"Literal[{', '.join(repr(v) for v in values)}]" if values else "str"
    return PYTHON_TYPES[kind]


def to_pascal_case(name: str) -> str:
    """``user_roles`` -> ``UserRoles``."""
    return "".join(word[:1].upper() + word[1:].lower() for word in name.split("_"))


# ============================================================================
# SQL
# ============================================================================


def export_sql(schema: DatabaseSchema) -> str:
    """Render a replayable DDL script.

    Foreign-key checks are disabled for the duration of the script.
    Functions, procedures, triggers and events are wrapped in
    ``DELIMITER $$`` blocks.
    """
    lines = [
        "-- MySQL Database Schema Export",
        f"-- Database: {schema.database_name}",
        f"-- Extracted: {schema.extracted_at.isoformat()}",
        f"-- MySQL Version: {schema.version or 'unknown'}",
        "",
        f"SET NAMES {schema.character_set};",
        "SET FOREIGN_KEY_CHECKS = 0;",
        "",
    ]

    def section(title: str) -> None:
        lines.extend([_SECTION_RULE, f"-- {title}", _SECTION_RULE, ""])

    def delimited(statement: str) -> None:
        lines.extend(["DELIMITER $$", f"{statement}$$", "DELIMITER ;", ""])

    if schema.tables:
        section("Tables")
        for table in schema.tables:
            lines.append(f"-- Table: {table.name}")
            lines.append(f"{drop_statement('TABLE', table.name)};")
            lines.append(f"{table_create_sql(table)};")
            lines.append("")

    if schema.views:
        section("Views")
        for view in schema.views:
            lines.append(f"-- View: {view.name}")
            lines.append(f"{drop_statement('VIEW', view.name)};")
            lines.append(f"{render_view(view)};")
            lines.append("")

    if schema.functions:
        section("Functions")
        for func in schema.functions:
            lines.append(f"-- Function: {func.name}")
            lines.append(f"{drop_statement('FUNCTION', func.name)};")
            delimited(render_routine(func))

    if schema.procedures:
        section("Stored Procedures")
        for proc in schema.procedures:
            lines.append(f"-- Procedure: {proc.name}")
            lines.append(f"{drop_statement('PROCEDURE', proc.name)};")
            delimited(render_routine(proc))

    if schema.triggers:
        section("Triggers")
        for trigger in schema.triggers:
            lines.append(f"-- Trigger: {trigger.name} on {trigger.table_name}")
            lines.append(f"{drop_statement('TRIGGER', trigger.name)};")
            delimited(render_trigger(trigger))

    if schema.events:
        section("Events")
        for event in schema.events:
            lines.append(f"-- Event: {event.name}")
            lines.append(f"{drop_statement('EVENT', event.name)};")
            delimited(render_event(event))

    lines.append("SET FOREIGN_KEY_CHECKS = 1;")
    return "\n".join(lines)


# ============================================================================
# JSON
# ============================================================================


def export_json(schema: DatabaseSchema, indent: int | None = 2) -> str:
    """Lossless JSON interchange document.

    ``load_schema_from_json(export_json(s)) == s``.
    """
    return schema.model_dump_json(indent=indent)


# ============================================================================
# Type Declarations
# ============================================================================


def export_typescript(schema: DatabaseSchema) -> str:
    """One TypeScript interface per table.  Nullable columns are optional."""
    lines = [
        "/**",
        " * Auto-generated TypeScript interfaces from MySQL database schema",
        f" * Database: {schema.database_name}",
        f" * Generated: {schema.extracted_at.isoformat()}",
        " */",
        "",
    ]

    for table in schema.tables:
        lines.append("/**")
        lines.append(f" * Table: {table.name}")
        if table.comment:
            lines.append(f" * {table.comment}")
        lines.append(" */")
        lines.append(f"export interface {to_pascal_case(table.name)} {{")
        for col in table.columns:
            optional = "?" if col.nullable else ""
            comment = f" // {col.comment}" if col.comment else ""
            lines.append(f"  {col.name}{optional}: {typescript_type(col.type)}{comment}")
        lines.append("}")
        lines.append("")

    return "\n".join(lines)


def _python_annotation(col: ColumnSchema) -> str:
    annotation = python_type(col.type)
    if col.nullable:
        return f"NotRequired[{annotation} | None]"
    return annotation


def _is_plain_field(name: str) -> bool:
    return name.isidentifier() and not keyword.iskeyword(name)


def _python_typed_dict(table: TableSchema) -> list[str]:
    class_name = to_pascal_case(table.name)
    doc = f"Table: {table.name}" + (f" ({table.comment})" if table.comment else "")

    if all(_is_plain_field(col.name) for col in table.columns):
        lines = [f"class {class_name}(TypedDict):", f'    """{doc}"""', ""]
        for col in table.columns:
            comment = f"  # {col.comment}" if col.comment else ""
            lines.append(f"    {col.name}: {_python_annotation(col)}{comment}")
        return lines

    # Column names that are not identifiers need the functional syntax
    lines = [f"# {doc}", f'{class_name} = TypedDict("{class_name}", {{']
    for col in table.columns:
        lines.append(f"    {col.name!r}: {_python_annotation(col)},")
    lines.append("})")
    return lines


def export_python(schema: DatabaseSchema) -> str:
    """One ``TypedDict`` per table.  Nullable columns are ``NotRequired``."""
    lines = [
        '"""Auto-generated TypedDicts from MySQL database schema.',
        "",
        f"Database: {schema.database_name}",
        f"Generated: {schema.extracted_at.isoformat()}",
        '"""',
        "",
        "from datetime import datetime",
        "from decimal import Decimal",
        "from typing import Any, Literal, NotRequired, TypedDict",
        "",
    ]

    for table in schema.tables:
        lines.append("")
        lines.extend(_python_typed_dict(table))
        lines.append("")

    return "\n".join(lines)


# ============================================================================
# Markdown
# ============================================================================


def _cell(value: str | None) -> str:
    if not value:
        return "-"
    return value.replace("|", "\\|").replace("\n", " ")


def export_markdown(schema: DatabaseSchema) -> str:
    """Human-readable documentation of the snapshot."""
    lines = [
        f"# Database Schema: {schema.database_name}",
        "",
        f"**Extracted:** {schema.extracted_at.isoformat()}",
        f"**MySQL Version:** {schema.version or 'unknown'}",
        f"**Character Set:** {schema.character_set}",
        f"**Collation:** {schema.collation}",
        "",
    ]

    if schema.tables:
        lines.append(f"## Tables ({len(schema.tables)})")
        lines.append("")
        for table in schema.tables:
            lines.extend(_markdown_table(table))

    if schema.views:
        lines.append(f"## Views ({len(schema.views)})")
        lines.append("")
        for view in schema.views:
            lines.append(f"### {view.name}")
            lines.append("")
            lines.append(f"**Updatable:** {'Yes' if view.is_updatable else 'No'}")
            lines.append("")

    if schema.functions:
        lines.append(f"## Functions ({len(schema.functions)})")
        lines.append("")
        for func in schema.functions:
            lines.append(f"### {func.name}")
            lines.append("")
            lines.append(f"**Returns:** {func.returns or 'unknown'}")
            if func.comment:
                lines.extend(["", f"> {func.comment}"])
            lines.append("")

    if schema.procedures:
        lines.append(f"## Stored Procedures ({len(schema.procedures)})")
        lines.append("")
        for proc in schema.procedures:
            lines.append(f"### {proc.name}")
            if proc.comment:
                lines.extend(["", f"> {proc.comment}"])
            lines.append("")

    if schema.triggers:
        lines.append(f"## Triggers ({len(schema.triggers)})")
        lines.append("")
        for trigger in schema.triggers:
            lines.append(f"### {trigger.name}")
            lines.append("")
            lines.append(
                f"**Table:** {trigger.table_name} | **Timing:** {trigger.timing} "
                f"| **Event:** {trigger.event}"
            )
            lines.append("")

    if schema.events:
        lines.append(f"## Events ({len(schema.events)})")
        lines.append("")
        for event in schema.events:
            if event.type == "ONE TIME":
                schedule = f"AT {event.execute_at.isoformat() if event.execute_at else '-'}"
            else:
                schedule = f"EVERY {event.interval_value} {event.interval_field}"
            lines.append(f"### {event.name}")
            lines.append("")
            lines.append(f"**Schedule:** {schedule} | **Status:** {event.status}")
            if event.comment:
                lines.extend(["", f"> {event.comment}"])
            lines.append("")

    return "\n".join(lines)


def _markdown_table(table: TableSchema) -> list[str]:
    lines = [f"### {table.name}"]
    if table.comment:
        lines.extend(["", f"> {table.comment}"])
    lines.extend(
        [
            "",
            f"**Engine:** {table.engine} | **Collation:** {table.collation}",
            "",
            "#### Columns",
            "",
            "| Name | Type | Nullable | Default | Key | Extra | Comment |",
            "|------|------|----------|---------|-----|-------|---------|",
        ]
    )
    for col in table.columns:
        lines.append(
            f"| {col.name} | {_cell(col.type)} | {'YES' if col.nullable else 'NO'} "
            f"| {_cell(col.default)} | {_cell(col.key.value)} | {_cell(col.extra)} "
            f"| {_cell(col.comment)} |"
        )
    lines.append("")

    if table.indexes:
        lines.extend(["#### Indexes", ""])
        members: dict[str, list[str]] = {}
        unique: dict[str, bool] = {}
        for idx in table.indexes:
            members.setdefault(idx.name, []).append(idx.column_name or "(expression)")
            unique[idx.name] = not idx.non_unique
        for name, columns in members.items():
            marker = " (UNIQUE)" if unique[name] else ""
            lines.append(f"- **{name}**{marker}: {', '.join(columns)}")
        lines.append("")

    if table.foreign_keys:
        lines.extend(["#### Foreign Keys", ""])
        for fk in table.foreign_keys:
            lines.append(
                f"- **{fk.constraint_name}**: {fk.column_name} → "
                f"{fk.referenced_table_name}.{fk.referenced_column_name} "
                f"(UPDATE: {fk.update_rule}, DELETE: {fk.delete_rule})"
            )
        lines.append("")

    return lines


# ============================================================================
# Dispatch
# ============================================================================

_EXPORTERS = {
    ExportFormat.SQL: export_sql,
    ExportFormat.JSON: export_json,
    ExportFormat.TYPESCRIPT: export_typescript,
    ExportFormat.PYTHON: export_python,
    ExportFormat.MARKDOWN: export_markdown,
}


def resolve_format(fmt: ExportFormat | str) -> ExportFormat:
    """Coerce a format name to ``ExportFormat``.

    Raises:
        UnsupportedFormatError: If ``fmt`` names no known format.
    """
    try:
        return ExportFormat(fmt)
    except ValueError:
        supported = ", ".join(f.value for f in ExportFormat)
        raise UnsupportedFormatError(
            f"Unsupported format: {fmt!r} (supported: {supported})"
        ) from None


def export_schema(schema: DatabaseSchema, fmt: ExportFormat | str) -> str:
    """Render ``schema`` in the requested format."""
    return _EXPORTERS[resolve_format(fmt)](schema)


class SchemaExporter:
    """Exports either a given snapshot or a freshly extracted one.

    Usage:
        exporter = SchemaExporter(SchemaExtractor(gateway))
        script = await exporter.export(ExportFormat.SQL)
    """

    def __init__(self, extractor: SchemaExtractor):
        self._extractor = extractor

    async def export(
        self, fmt: ExportFormat | str, schema: DatabaseSchema | None = None
    ) -> str:
        """Export ``schema``, extracting the full schema first when omitted."""
        fmt = resolve_format(fmt)
        if schema is None:
            logger.info("No snapshot supplied, extracting %s", self._extractor.database_name)
            schema = await self._extractor.extract_full_schema()
        return export_schema(schema, fmt)
