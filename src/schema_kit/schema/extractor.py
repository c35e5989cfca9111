"""MySQL schema extraction via information_schema.

This module queries the live database to build a ``DatabaseSchema`` snapshot:
- Tables, columns, indexes, foreign keys and the verbatim create statement
- Views
- Stored procedures and functions (``SHOW CREATE`` preferred over the catalog body)
- Triggers
- Scheduled events
- Database default charset/collation and server version

Every catalog query is qualified by schema name, so extraction does not
depend on the session's current database.

Usage:
    from schema_kit.schema.extractor import SchemaExtractor

    extractor = SchemaExtractor(gateway)
    schema = await extractor.extract_full_schema()

    # Or a single kind
    tables = await extractor.extract_tables(table_filter=["users", "orders"])
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from schema_kit.adapters.base import MetadataGateway
from schema_kit.errors import PreconditionError
from schema_kit.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    EventSchema,
    ExtractionOptions,
    ForeignKeySchema,
    FunctionSchema,
    IndexSchema,
    KeyRole,
    ProcedureSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
)
from schema_kit.schema.sql import ensure_if_not_exists, quote_identifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SYSTEM_TABLE_PREFIXES = ("sys_", "mysql_", "performance_schema_")

DEFAULT_CHARACTER_SET = "utf8mb4"
DEFAULT_COLLATION = "utf8mb4_unicode_ci"


async def prefer_then_fallback(
    preferred: Callable[[], Awaitable[T | None]],
    fallback: T,
    label: str,
) -> T:
    """Return ``await preferred()`` unless it fails or yields nothing.

    Used for routine bodies: ``SHOW CREATE`` needs privileges the catalog
    does not, so a failure there degrades to the catalog value instead of
    failing the extraction.  Logs which source won.

    Args:
        preferred: Zero-argument coroutine factory for the preferred value.
        fallback: Value used when ``preferred`` raises or returns ``None``/empty.
        label: Object label for log messages (e.g. ``"function:slugify"``).
    """
    try:
        value = await preferred()
    except Exception as e:
        logger.warning("%s: preferred source failed (%s), using fallback", label, e)
        return fallback

    if not value:
        logger.debug("%s: preferred source empty, using fallback", label)
        return fallback

    logger.debug("%s: using preferred source", label)
    return value


async def _nothing() -> list:
    return []


def _text(value: Any) -> str:
    return "" if value is None else str(value)


class SchemaExtractor:
    """Extracts a MySQL database schema into snapshot models.

    Args:
        gateway: Connected ``MetadataGateway``.
        database_name: Database to extract.  Defaults to the gateway's
            active database.
        system_table_prefixes: Table name prefixes treated as system tables
            when ``exclude_system_tables`` is set.

    Usage:
        extractor = SchemaExtractor(gateway, database_name="shop")

        # Full snapshot (all kinds, fetched concurrently)
        schema = await extractor.extract_full_schema()
    """

    def __init__(
        self,
        gateway: MetadataGateway,
        database_name: str | None = None,
        system_table_prefixes: Sequence[str] = DEFAULT_SYSTEM_TABLE_PREFIXES,
    ):
        self._gateway = gateway
        self._database_name = database_name
        self._system_table_prefixes = tuple(system_table_prefixes)

    @property
    def database_name(self) -> str:
        """Database being extracted.

        Raises:
            PreconditionError: If neither the extractor nor the gateway names one.
        """
        name = self._database_name or self._gateway.database_name
        if not name:
            raise PreconditionError(
                "No database selected. Pass database_name or connect with a database URL."
            )
        return name

    # ------------------------------------------------------------------
    # Full Snapshot
    # ------------------------------------------------------------------

    async def extract_full_schema(
        self, options: ExtractionOptions | None = None
    ) -> DatabaseSchema:
        """Extract a complete snapshot.

        The kind fetches plus the database-info and version lookups run
        concurrently.  Any failure propagates; no partial snapshot is
        returned.

        Args:
            options: Which kinds to include and how to filter tables.

        Returns:
            ``DatabaseSchema`` stamped with the UTC extraction time.
        """
        options = options or ExtractionOptions()
        db = self.database_name

        (
            tables,
            views,
            procedures,
            functions,
            triggers,
            events,
            db_info,
            version,
        ) = await asyncio.gather(
            self.extract_tables(options.table_filter, options.exclude_system_tables)
            if options.include_tables
            else _nothing(),
            self.extract_views() if options.include_views else _nothing(),
            self.extract_procedures() if options.include_procedures else _nothing(),
            self.extract_functions() if options.include_functions else _nothing(),
            self.extract_triggers() if options.include_triggers else _nothing(),
            self.extract_events() if options.include_events else _nothing(),
            self._get_database_info(),
            self._get_version(),
        )

        logger.info(
            "Extracted schema %s: %d tables, %d views, %d procedures, "
            "%d functions, %d triggers, %d events",
            db,
            len(tables),
            len(views),
            len(procedures),
            len(functions),
            len(triggers),
            len(events),
        )

        return DatabaseSchema(
            database_name=db,
            tables=tables,
            views=views,
            procedures=procedures,
            functions=functions,
            triggers=triggers,
            events=events,
            character_set=db_info["character_set"],
            collation=db_info["collation"],
            extracted_at=datetime.now(timezone.utc),
            version=version,
        )

    # ------------------------------------------------------------------
    # Tables
    # ------------------------------------------------------------------

    async def extract_tables(
        self,
        table_filter: list[str] | re.Pattern[str] | str | None = None,
        exclude_system_tables: bool = False,
    ) -> list[TableSchema]:
        """Extract base tables ordered by name.

        Args:
            table_filter: Explicit list of table names, or a regular
                expression (compiled or string) searched against each name.
                Unknown names simply match nothing.
            exclude_system_tables: Skip tables whose name starts with one of
                the configured system prefixes.

        Returns:
            List of ``TableSchema`` with columns, indexes, foreign keys and
            the ``CREATE TABLE IF NOT EXISTS`` statement.
        """
        db = self.database_name
        query = """
            SELECT
                TABLE_NAME AS name,
                ENGINE AS engine,
                TABLE_COLLATION AS collation,
                TABLE_COMMENT AS comment
            FROM information_schema.TABLES
            WHERE TABLE_SCHEMA = :db
              AND TABLE_TYPE = 'BASE TABLE'
            ORDER BY TABLE_NAME
        """
        rows = await self._gateway.query(query, {"db": db})
        rows = [row for row in rows if self._matches(row["name"], table_filter)]

        if exclude_system_tables:
            rows = [
                row
                for row in rows
                if not row["name"].startswith(self._system_table_prefixes)
            ]

        tables = []
        for row in rows:
            tables.append(await self._extract_table(db, row))

        logger.debug("Extracted %d tables from %s", len(tables), db)
        return tables

    def _matches(
        self, name: str, table_filter: list[str] | re.Pattern[str] | str | None
    ) -> bool:
        if table_filter is None:
            return True
        if isinstance(table_filter, re.Pattern):
            return table_filter.search(name) is not None
        if isinstance(table_filter, str):
            return re.search(table_filter, name) is not None
        return name in table_filter

    async def _extract_table(self, db: str, row: dict[str, Any]) -> TableSchema:
        name = row["name"]
        columns = await self._get_columns(db, name)
        indexes = await self._get_indexes(db, name)
        foreign_keys = await self._get_foreign_keys(db, name)
        create_statement = await self._get_create_table(db, name)
        return TableSchema(
            name=name,
            columns=columns,
            indexes=indexes,
            foreign_keys=foreign_keys,
            engine=row.get("engine") or "InnoDB",
            collation=row.get("collation") or DEFAULT_COLLATION,
            comment=_text(row.get("comment")),
            create_statement=create_statement,
        )

    async def _get_columns(self, db: str, table: str) -> list[ColumnSchema]:
        """Get columns for a table in ordinal order."""
        query = """
            SELECT
                COLUMN_NAME AS name,
                COLUMN_TYPE AS type,
                IS_NULLABLE AS is_nullable,
                COLUMN_DEFAULT AS column_default,
                EXTRA AS extra,
                COLUMN_COMMENT AS comment,
                CHARACTER_SET_NAME AS character_set,
                COLLATION_NAME AS collation,
                COLUMN_KEY AS column_key
            FROM information_schema.COLUMNS
            WHERE TABLE_SCHEMA = :db
              AND TABLE_NAME = :table
            ORDER BY ORDINAL_POSITION
        """
        rows = await self._gateway.query(query, {"db": db, "table": table})
        return [
            ColumnSchema(
                name=row["name"],
                type=row["type"],
                nullable=row["is_nullable"] == "YES",
                default=None
                if row.get("column_default") is None
                else str(row["column_default"]),
                extra=_text(row.get("extra")),
                comment=_text(row.get("comment")),
                character_set=row.get("character_set"),
                collation=row.get("collation"),
                key=KeyRole(row.get("column_key") or ""),
            )
            for row in rows
        ]

    async def _get_indexes(self, db: str, table: str) -> list[IndexSchema]:
        """Get index rows for a table, one per (index, column)."""
        query = """
            SELECT
                INDEX_NAME AS name,
                COLUMN_NAME AS column_name,
                NON_UNIQUE AS non_unique,
                INDEX_TYPE AS index_type,
                SEQ_IN_INDEX AS seq_in_index,
                COLLATION AS collation,
                CARDINALITY AS cardinality,
                INDEX_COMMENT AS comment
            FROM information_schema.STATISTICS
            WHERE TABLE_SCHEMA = :db
              AND TABLE_NAME = :table
            ORDER BY INDEX_NAME, SEQ_IN_INDEX
        """
        rows = await self._gateway.query(query, {"db": db, "table": table})
        return [
            IndexSchema(
                name=row["name"],
                table_name=table,
                column_name=row.get("column_name"),
                non_unique=bool(int(row["non_unique"])),
                index_type=row.get("index_type") or "BTREE",
                seq_in_index=int(row["seq_in_index"]),
                collation=row.get("collation"),
                cardinality=None
                if row.get("cardinality") is None
                else int(row["cardinality"]),
                comment=_text(row.get("comment")),
            )
            for row in rows
        ]

    async def _get_foreign_keys(self, db: str, table: str) -> list[ForeignKeySchema]:
        """Get foreign key columns with their referential actions."""
        query = """
            SELECT
                kcu.CONSTRAINT_NAME AS constraint_name,
                kcu.COLUMN_NAME AS column_name,
                kcu.REFERENCED_TABLE_NAME AS referenced_table_name,
                kcu.REFERENCED_COLUMN_NAME AS referenced_column_name,
                COALESCE(rc.UPDATE_RULE, 'RESTRICT') AS update_rule,
                COALESCE(rc.DELETE_RULE, 'RESTRICT') AS delete_rule
            FROM information_schema.KEY_COLUMN_USAGE kcu
            LEFT JOIN information_schema.REFERENTIAL_CONSTRAINTS rc
              ON kcu.CONSTRAINT_SCHEMA = rc.CONSTRAINT_SCHEMA
             AND kcu.CONSTRAINT_NAME = rc.CONSTRAINT_NAME
            WHERE kcu.TABLE_SCHEMA = :db
              AND kcu.TABLE_NAME = :table
              AND kcu.REFERENCED_TABLE_NAME IS NOT NULL
            ORDER BY kcu.CONSTRAINT_NAME, kcu.ORDINAL_POSITION
        """
        rows = await self._gateway.query(query, {"db": db, "table": table})
        return [
            ForeignKeySchema(
                constraint_name=row["constraint_name"],
                table_name=table,
                column_name=row["column_name"],
                referenced_table_name=row["referenced_table_name"],
                referenced_column_name=row["referenced_column_name"],
                update_rule=row.get("update_rule") or "RESTRICT",
                delete_rule=row.get("delete_rule") or "RESTRICT",
            )
            for row in rows
        ]

    async def _get_create_table(self, db: str, table: str) -> str | None:
        rows = await self._gateway.query(
            f"SHOW CREATE TABLE {quote_identifier(db)}.{quote_identifier(table)}"
        )
        if not rows or not rows[0].get("Create Table"):
            return None
        return ensure_if_not_exists(rows[0]["Create Table"])

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    async def extract_views(self) -> list[ViewSchema]:
        """Extract views ordered by name."""
        query = """
            SELECT
                TABLE_NAME AS name,
                VIEW_DEFINITION AS definition,
                CHECK_OPTION AS check_option,
                IS_UPDATABLE AS is_updatable,
                DEFINER AS definer,
                SECURITY_TYPE AS security_type,
                CHARACTER_SET_CLIENT AS character_set_client,
                COLLATION_CONNECTION AS collation_connection
            FROM information_schema.VIEWS
            WHERE TABLE_SCHEMA = :db
            ORDER BY TABLE_NAME
        """
        rows = await self._gateway.query(query, {"db": self.database_name})
        views = [
            ViewSchema(
                name=row["name"],
                definition=_text(row.get("definition")),
                check_option=row.get("check_option") or "NONE",
                is_updatable=row.get("is_updatable") == "YES",
                definer=_text(row.get("definer")),
                security_type=row.get("security_type") or "DEFINER",
                character_set_client=row.get("character_set_client"),
                collation_connection=row.get("collation_connection"),
            )
            for row in rows
        ]
        logger.debug("Extracted %d views", len(views))
        return views

    # ------------------------------------------------------------------
    # Routines
    # ------------------------------------------------------------------

    async def extract_procedures(self) -> list[ProcedureSchema]:
        """Extract stored procedures ordered by name."""
        rows = await self._get_routine_rows("PROCEDURE")
        procedures = []
        for row in rows:
            definition = await self._routine_definition("PROCEDURE", row)
            procedures.append(
                ProcedureSchema(definition=definition, **self._routine_fields(row))
            )
        logger.debug("Extracted %d procedures", len(procedures))
        return procedures

    async def extract_functions(self) -> list[FunctionSchema]:
        """Extract stored functions ordered by name."""
        rows = await self._get_routine_rows("FUNCTION")
        functions = []
        for row in rows:
            definition = await self._routine_definition("FUNCTION", row)
            functions.append(
                FunctionSchema(
                    definition=definition,
                    returns=_text(row.get("returns")),
                    **self._routine_fields(row),
                )
            )
        logger.debug("Extracted %d functions", len(functions))
        return functions

    async def _get_routine_rows(self, routine_type: str) -> list[dict[str, Any]]:
        query = """
            SELECT
                ROUTINE_NAME AS name,
                ROUTINE_DEFINITION AS definition,
                DEFINER AS definer,
                CREATED AS created,
                LAST_ALTERED AS modified,
                SQL_DATA_ACCESS AS sql_data_access,
                IS_DETERMINISTIC AS is_deterministic,
                SECURITY_TYPE AS security_type,
                ROUTINE_COMMENT AS comment,
                DTD_IDENTIFIER AS returns
            FROM information_schema.ROUTINES
            WHERE ROUTINE_SCHEMA = :db
              AND ROUTINE_TYPE = :routine_type
            ORDER BY ROUTINE_NAME
        """
        return await self._gateway.query(
            query, {"db": self.database_name, "routine_type": routine_type}
        )

    def _routine_fields(self, row: dict[str, Any]) -> dict[str, Any]:
        return {
            "name": row["name"],
            "definer": _text(row.get("definer")),
            "created": row.get("created"),
            "modified": row.get("modified"),
            "sql_data_access": row.get("sql_data_access") or "CONTAINS SQL",
            "is_deterministic": row.get("is_deterministic") == "YES",
            "security_type": row.get("security_type") or "DEFINER",
            "comment": _text(row.get("comment")),
        }

    async def _routine_definition(self, routine_type: str, row: dict[str, Any]) -> str:
        """``SHOW CREATE`` output, falling back to the catalog body."""
        name = row["name"]
        key = f"Create {routine_type.title()}"

        async def show_create() -> str | None:
            rows = await self._gateway.query(
                f"SHOW CREATE {routine_type} "
                f"{quote_identifier(self.database_name)}.{quote_identifier(name)}"
            )
            return rows[0].get(key) if rows else None

        return await prefer_then_fallback(
            show_create,
            _text(row.get("definition")),
            f"{routine_type.lower()}:{name}",
        )

    # ------------------------------------------------------------------
    # Triggers and Events
    # ------------------------------------------------------------------

    async def extract_triggers(self) -> list[TriggerSchema]:
        """Extract triggers ordered by table, timing and event."""
        query = """
            SELECT
                TRIGGER_NAME AS name,
                EVENT_OBJECT_TABLE AS table_name,
                EVENT_MANIPULATION AS event,
                ACTION_TIMING AS timing,
                ACTION_STATEMENT AS statement,
                DEFINER AS definer,
                CREATED AS created,
                SQL_MODE AS sql_mode,
                CHARACTER_SET_CLIENT AS character_set_client,
                COLLATION_CONNECTION AS collation_connection,
                DATABASE_COLLATION AS database_collation
            FROM information_schema.TRIGGERS
            WHERE TRIGGER_SCHEMA = :db
            ORDER BY EVENT_OBJECT_TABLE, ACTION_TIMING, EVENT_MANIPULATION
        """
        rows = await self._gateway.query(query, {"db": self.database_name})
        triggers = [
            TriggerSchema(
                name=row["name"],
                table_name=row["table_name"],
                event=row["event"],
                timing=row["timing"],
                statement=_text(row.get("statement")),
                definer=_text(row.get("definer")),
                created=row.get("created"),
                sql_mode=_text(row.get("sql_mode")),
                character_set_client=row.get("character_set_client"),
                collation_connection=row.get("collation_connection"),
                database_collation=row.get("database_collation"),
            )
            for row in rows
        ]
        logger.debug("Extracted %d triggers", len(triggers))
        return triggers

    async def extract_events(self) -> list[EventSchema]:
        """Extract scheduled events ordered by name."""
        query = """
            SELECT
                EVENT_NAME AS name,
                DEFINER AS definer,
                TIME_ZONE AS time_zone,
                EVENT_TYPE AS type,
                EXECUTE_AT AS execute_at,
                INTERVAL_VALUE AS interval_value,
                INTERVAL_FIELD AS interval_field,
                STATUS AS status,
                ON_COMPLETION AS on_completion,
                EVENT_DEFINITION AS definition,
                EVENT_COMMENT AS comment
            FROM information_schema.EVENTS
            WHERE EVENT_SCHEMA = :db
            ORDER BY EVENT_NAME
        """
        rows = await self._gateway.query(query, {"db": self.database_name})
        events = [
            EventSchema(
                name=row["name"],
                definer=_text(row.get("definer")),
                time_zone=row.get("time_zone") or "SYSTEM",
                type=row["type"],
                execute_at=row.get("execute_at"),
                interval_value=None
                if row.get("interval_value") is None
                else str(row["interval_value"]),
                interval_field=row.get("interval_field"),
                status=row.get("status") or "ENABLED",
                on_completion=row.get("on_completion") or "NOT PRESERVE",
                definition=_text(row.get("definition")),
                comment=_text(row.get("comment")),
            )
            for row in rows
        ]
        logger.debug("Extracted %d events", len(events))
        return events

    # ------------------------------------------------------------------
    # Database Info
    # ------------------------------------------------------------------

    async def _get_database_info(self) -> dict[str, str]:
        """Default charset/collation of the database."""
        query = """
            SELECT
                DEFAULT_CHARACTER_SET_NAME AS character_set,
                DEFAULT_COLLATION_NAME AS collation
            FROM information_schema.SCHEMATA
            WHERE SCHEMA_NAME = :db
        """
        rows = await self._gateway.query(query, {"db": self.database_name})
        row = rows[0] if rows else {}
        return {
            "character_set": row.get("character_set") or DEFAULT_CHARACTER_SET,
            "collation": row.get("collation") or DEFAULT_COLLATION,
        }

    async def _get_version(self) -> str | None:
        rows = await self._gateway.query("SELECT VERSION() AS version")
        return rows[0]["version"] if rows else None
