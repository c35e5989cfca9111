"""MySQL DDL rendering helpers.

Every identifier that ends up inside generated SQL goes through
``quote_identifier``, which only accepts names from a fixed character class.
The renderers here are shared by the SQL exporter and the importer so that
an exported script and an applied snapshot issue the same statements.

Usage:
    from schema_kit.schema.sql import quote_identifier, render_create_table

    quote_identifier("orders")          # '`orders`'
    render_create_table(table_schema)   # 'CREATE TABLE IF NOT EXISTS `orders` (...'
"""

import re
from collections import defaultdict

from schema_kit.errors import UnsafeIdentifierError
from schema_kit.schema.models import (
    ColumnSchema,
    EventSchema,
    FunctionSchema,
    KeyRole,
    ProcedureSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
)

# Letters, digits, underscore, dollar and dash; MySQL caps names at 64 chars
_IDENTIFIER_RE = re.compile(r"^[A-Za-z0-9_$\-]{1,64}$")

_INTERVAL_FIELD_RE = re.compile(r"^[A-Z_]+$")

_GUARDED_CREATE_RE = re.compile(
    r"^\s*CREATE\s+(TEMPORARY\s+)?TABLE\s+IF\s+NOT\s+EXISTS\b", re.IGNORECASE
)

# Defaults MySQL reports unquoted that must stay unquoted on replay
_DEFAULT_EXPRESSION_RE = re.compile(
    r"^(NULL|CURRENT_TIMESTAMP(\(\d*\))?|NOW\(\d*\)|CURRENT_DATE(\(\))?"
    r"|-?\d+(\.\d+)?|b'[01]+'|'.*'|\(.*\))$",
    re.IGNORECASE | re.DOTALL,
)

PLACEHOLDER_RETURN_TYPE = "TEXT"

_EVENT_STATUS = {
    "ENABLED": "ENABLE",
    "DISABLED": "DISABLE",
    "SLAVESIDE_DISABLED": "DISABLE ON SLAVE",
}


# ------------------------------------------------------------------
# Quoting
# ------------------------------------------------------------------


def quote_identifier(name: str) -> str:
    """Backtick-quote an identifier after checking it against the allowlist.

    Raises:
        UnsafeIdentifierError: If ``name`` is empty, too long, or contains
            characters outside ``[A-Za-z0-9_$-]``.

    Example:
        >>> quote_identifier("user_roles")
        '`user_roles`'
    """
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise UnsafeIdentifierError(f"Unsafe identifier: {name!r}")
    return f"`{name}`"


def quote_string(value: str) -> str:
    """Quote a string literal for MySQL (comments, timestamps)."""
    escaped = value.replace("\\", "\\\\").replace("'", "''")
    return f"'{escaped}'"


def drop_statement(kind: str, name: str) -> str:
    """``DROP <kind> IF EXISTS `name```."""
    return f"DROP {kind} IF EXISTS {quote_identifier(name)}"


def render_create_database(name: str, character_set: str, collation: str) -> str:
    """``CREATE DATABASE IF NOT EXISTS`` with an explicit charset/collation."""
    for value in (character_set, collation):
        if not re.fullmatch(r"\w{1,64}", value or ""):
            raise UnsafeIdentifierError(f"Unsafe character set or collation: {value!r}")
    return (
        f"CREATE DATABASE IF NOT EXISTS {quote_identifier(name)} "
        f"CHARACTER SET {character_set} COLLATE {collation}"
    )


def ensure_if_not_exists(create_statement: str) -> str:
    """Insert ``IF NOT EXISTS`` into a ``CREATE TABLE`` statement if absent."""
    if not create_statement or _GUARDED_CREATE_RE.match(create_statement):
        return create_statement
    return re.sub(
        r"CREATE\s+TABLE",
        "CREATE TABLE IF NOT EXISTS",
        create_statement,
        count=1,
        flags=re.IGNORECASE,
    )


def rewrite_database_references(definition: str, source: str, target: str) -> str:
    """Point ``source``-qualified table references at ``target``.

    Handles both the backtick-quoted form (```shop`.`orders```) and the bare
    dotted form (``shop.orders``).
    """
    if not source or not target or source == target:
        return definition
    definition = definition.replace(f"`{source}`.", f"`{target}`.")
    return re.sub(
        rf"(?<![\w`$]){re.escape(source)}\.",
        lambda _match: f"{target}.",
        definition,
    )


def _wrap_body(body: str) -> str:
    """Wrap a routine/trigger/event body in ``BEGIN ... END`` if needed."""
    stripped = body.strip()
    if stripped.upper().startswith("BEGIN"):
        return stripped
    if not stripped.endswith(";"):
        stripped += ";"
    return f"BEGIN\n{stripped}\nEND"


def _is_create_statement(definition: str) -> bool:
    return definition.strip().upper().startswith("CREATE")


# ------------------------------------------------------------------
# Tables
# ------------------------------------------------------------------


def _render_default(default: str) -> str:
    if _DEFAULT_EXPRESSION_RE.match(default.strip()):
        return default.strip()
    return quote_string(default)


def render_column(col: ColumnSchema) -> str:
    """Render one column definition line (without trailing comma)."""
    parts = [quote_identifier(col.name), col.type]

    if not col.nullable:
        parts.append("NOT NULL")

    if col.default is not None:
        parts.append(f"DEFAULT {_render_default(col.default)}")

    # DEFAULT_GENERATED only marks expression defaults in the catalog
    extra = re.sub(r"\bDEFAULT_GENERATED\b", "", col.extra, flags=re.IGNORECASE).strip()
    if extra:
        parts.append(extra)

    if col.comment:
        parts.append(f"COMMENT {quote_string(col.comment)}")

    return " ".join(parts)


def render_create_table(table: TableSchema) -> str:
    """Synthesize ``CREATE TABLE IF NOT EXISTS`` from the column/index/FK lists.

    Used when a snapshot carries no verbatim ``create_statement``.
    Primary key columns come from the ``PRIMARY`` index rows in
    ``seq_in_index`` order, or from the ``PRI`` key role when the snapshot
    has no such rows.  Other indexes are grouped by name in ``seq_in_index``
    order; composite foreign keys are grouped by constraint name.
    """
    lines = [f"  {render_column(col)}" for col in table.columns]

    primary = [
        idx.column_name
        for idx in sorted(table.indexes, key=lambda i: i.seq_in_index)
        if idx.name == "PRIMARY" and idx.column_name is not None
    ]
    if not primary:
        primary = [col.name for col in table.columns if col.key == KeyRole.PRIMARY]
    if primary:
        cols = ", ".join(quote_identifier(c) for c in primary)
        lines.append(f"  PRIMARY KEY ({cols})")

    index_columns: dict[str, list[str]] = defaultdict(list)
    index_unique: dict[str, bool] = {}
    for idx in sorted(table.indexes, key=lambda i: (i.name, i.seq_in_index)):
        if idx.name == "PRIMARY" or idx.column_name is None:
            continue
        index_columns[idx.name].append(idx.column_name)
        index_unique[idx.name] = not idx.non_unique

    for index_name, columns in index_columns.items():
        unique = "UNIQUE " if index_unique[index_name] else ""
        cols = ", ".join(quote_identifier(c) for c in columns)
        lines.append(f"  {unique}KEY {quote_identifier(index_name)} ({cols})")

    fk_groups: dict[str, list] = defaultdict(list)
    for fk in table.foreign_keys:
        fk_groups[fk.constraint_name].append(fk)

    for constraint_name, fks in fk_groups.items():
        local = ", ".join(quote_identifier(fk.column_name) for fk in fks)
        remote = ", ".join(quote_identifier(fk.referenced_column_name) for fk in fks)
        first = fks[0]
        lines.append(
            f"  CONSTRAINT {quote_identifier(constraint_name)} FOREIGN KEY ({local}) "
            f"REFERENCES {quote_identifier(first.referenced_table_name)} ({remote}) "
            f"ON UPDATE {first.update_rule} ON DELETE {first.delete_rule}"
        )

    charset = table.collation.split("_")[0]
    options = f"ENGINE={table.engine} DEFAULT CHARSET={charset} COLLATE={table.collation}"
    if table.comment:
        options += f" COMMENT={quote_string(table.comment)}"

    body = ",\n".join(lines)
    return (
        f"CREATE TABLE IF NOT EXISTS {quote_identifier(table.name)} (\n"
        f"{body}\n) {options}"
    )


def table_create_sql(table: TableSchema) -> str:
    """The stored create statement when present, else a synthesized one."""
    if table.create_statement:
        return table.create_statement
    return render_create_table(table)


# ------------------------------------------------------------------
# Views, routines, triggers, events
# ------------------------------------------------------------------


def render_view(view: ViewSchema, definition: str | None = None) -> str:
    """``CREATE VIEW`` from a stored view (``definition`` overrides the body)."""
    body = (definition if definition is not None else view.definition).strip()
    security = "SQL SECURITY INVOKER " if view.security_type == "INVOKER" else ""
    sql = f"CREATE {security}VIEW {quote_identifier(view.name)} AS {body}"
    if view.check_option in ("CASCADED", "LOCAL"):
        sql += f" WITH {view.check_option} CHECK OPTION"
    return sql


def render_routine(routine: FunctionSchema | ProcedureSchema) -> str:
    """Creation statement for a function or procedure.

    A stored definition that already is a ``CREATE`` statement (the
    ``SHOW CREATE`` output) is returned verbatim; a bare body is wrapped in
    a minimal ``CREATE ... BEGIN ... END``.  Functions without a known
    return type get ``PLACEHOLDER_RETURN_TYPE``.
    """
    if _is_create_statement(routine.definition):
        return routine.definition.strip()

    params = routine.parameter_list or ""
    deterministic = "DETERMINISTIC" if routine.is_deterministic else "NOT DETERMINISTIC"
    name = quote_identifier(routine.name)

    if isinstance(routine, FunctionSchema):
        returns = routine.returns or PLACEHOLDER_RETURN_TYPE
        header = f"CREATE FUNCTION {name}({params}) RETURNS {returns}"
    else:
        header = f"CREATE PROCEDURE {name}({params})"

    return f"{header}\n{deterministic}\n{_wrap_body(routine.definition)}"


def render_trigger(trigger: TriggerSchema) -> str:
    """``CREATE TRIGGER`` from stored timing/event/statement fields."""
    return (
        f"CREATE TRIGGER {quote_identifier(trigger.name)}\n"
        f"{trigger.timing} {trigger.event} ON {quote_identifier(trigger.table_name)}\n"
        f"FOR EACH ROW\n"
        f"{_wrap_body(trigger.statement)}"
    )


def render_event_schedule(event: EventSchema) -> str:
    """``AT '<timestamp>'`` for one-time events, ``EVERY <n> <field>`` otherwise.

    Raises:
        ValueError: If the event carries no usable schedule.
    """
    if event.type == "ONE TIME":
        if event.execute_at is None:
            raise ValueError(f"Event '{event.name}' is ONE TIME but has no execute_at")
        return f"AT {quote_string(event.execute_at.strftime('%Y-%m-%d %H:%M:%S'))}"

    field = (event.interval_field or "").upper()
    value = (event.interval_value or "").strip()
    if not value or not _INTERVAL_FIELD_RE.match(field):
        raise ValueError(f"Event '{event.name}' has an invalid interval schedule")
    if not value.isdigit():
        value = quote_string(value)
    return f"EVERY {value} {field}"


def render_event(event: EventSchema) -> str:
    """``CREATE EVENT`` from stored schedule/status/body fields."""
    sql = (
        f"CREATE EVENT {quote_identifier(event.name)}\n"
        f"ON SCHEDULE {render_event_schedule(event)}\n"
        f"ON COMPLETION {event.on_completion}\n"
        f"{_EVENT_STATUS[event.status]}\n"
    )
    if event.comment:
        sql += f"COMMENT {quote_string(event.comment)}\n"
    return sql + f"DO\n{_wrap_body(event.definition)}"
