"""Replay a snapshot against a target database.

Objects are created kind by kind in a fixed order: tables, views,
functions, procedures, triggers, events.  Foreign-key checks are switched
off for the duration of a (non dry-run) apply and always switched back on,
even when the apply aborts.

Every DDL statement goes through the ``MetadataGateway.execute()`` Protocol
method on the gateway's session connection.

Usage:
    from schema_kit.schema.importer import SchemaImporter
    from schema_kit.schema.models import ImportOptions

    importer = SchemaImporter(gateway)
    schema = importer.load_schema_from_file("schema-exports/shop.json")

    # Preview
    report = await importer.validate_schema(schema)

    # Apply, collecting failures instead of stopping at the first one
    result = await importer.apply_schema(schema, ImportOptions(skip_errors=True))
    if not result.success:
        for failure in result.errors:
            print(failure.object_name, failure.error)
"""

import logging
from collections.abc import Sequence
from pathlib import Path

from schema_kit.adapters.base import MetadataGateway
from schema_kit.errors import ObjectCreationError, PreconditionError
from schema_kit.schema.models import (
    CloneOptions,
    CreateDatabaseOptions,
    DatabaseSchema,
    EventSchema,
    FunctionSchema,
    ImportFailure,
    ImportOptions,
    ImportResult,
    ProcedureSchema,
    TableSchema,
    TriggerSchema,
    ValidationReport,
    ViewSchema,
)
from schema_kit.schema.sql import (
    PLACEHOLDER_RETURN_TYPE,
    drop_statement,
    quote_identifier,
    render_create_database,
    render_event,
    render_routine,
    render_trigger,
    render_view,
    rewrite_database_references,
    table_create_sql,
)
from schema_kit.schema.storage import load_schema_from_file, load_schema_from_json

logger = logging.getLogger(__name__)

SchemaObject = (
    TableSchema | ViewSchema | FunctionSchema | ProcedureSchema | TriggerSchema | EventSchema
)


class SchemaImporter:
    """Applies ``DatabaseSchema`` snapshots through a ``MetadataGateway``.

    Args:
        gateway: Connected gateway whose session receives the DDL.

    Usage:
        importer = SchemaImporter(gateway)

        # Into the gateway's current database
        result = await importer.apply_schema(schema)

        # Into another database, creating it when missing
        result = await importer.clone_schema(schema, "shop_staging")
    """

    def __init__(self, gateway: MetadataGateway):
        self._gateway = gateway

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @staticmethod
    def load_schema_from_file(path: str | Path) -> DatabaseSchema:
        """Load a snapshot from a JSON interchange file."""
        return load_schema_from_file(path)

    @staticmethod
    def load_schema_from_json(text: str | bytes) -> DatabaseSchema:
        """Load a snapshot from JSON interchange text."""
        return load_schema_from_json(text)

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    async def apply_schema(
        self, schema: DatabaseSchema, options: ImportOptions | None = None
    ) -> ImportResult:
        """Create every enabled object kind of ``schema``.

        Args:
            schema: Snapshot to replay.
            options: Kind toggles, ``drop_existing``, ``skip_errors``,
                ``dry_run`` and ``target_database``.

        Returns:
            ``ImportResult``; ``success`` is true when no object failed.

        Raises:
            ObjectCreationError: On the first failing object when
                ``skip_errors`` is false (never in dry-run).  The exception
                carries the partial result.
        """
        options = options or ImportOptions()
        result = ImportResult()

        kinds = [
            (options.create_tables, "table", schema.tables, result.tables_created),
            (options.create_views, "view", schema.views, result.views_created),
            (options.create_functions, "function", schema.functions, result.functions_created),
            (options.create_procedures, "procedure", schema.procedures, result.procedures_created),
            (options.create_triggers, "trigger", schema.triggers, result.triggers_created),
            (options.create_events, "event", schema.events, result.events_created),
        ]

        if not options.dry_run:
            await self._gateway.execute("SET FOREIGN_KEY_CHECKS = 0")

        try:
            for enabled, kind, objects, created in kinds:
                if not enabled:
                    continue
                for obj in objects:
                    await self._apply_object(kind, obj, schema, options, result, created)
        finally:
            if not options.dry_run:
                await self._gateway.execute("SET FOREIGN_KEY_CHECKS = 1")

        logger.info(
            "Applied schema %s: %d tables, %d views, %d functions, %d procedures, "
            "%d triggers, %d events, %d errors",
            schema.database_name,
            len(result.tables_created),
            len(result.views_created),
            len(result.functions_created),
            len(result.procedures_created),
            len(result.triggers_created),
            len(result.events_created),
            len(result.errors),
        )
        return result

    async def _apply_object(
        self,
        kind: str,
        obj: SchemaObject,
        schema: DatabaseSchema,
        options: ImportOptions,
        result: ImportResult,
        created: list[str],
    ) -> None:
        label = f"{kind}:{obj.name}"
        try:
            # Statements are rendered in dry-run too, which validates names and schedules
            statements = self._statements_for(kind, obj, schema, options, result)
            if options.dry_run:
                self._check_references(kind, obj, schema)
                logger.info("[DRY RUN] Would create %s: %s", kind, obj.name)
            else:
                for statement in statements:
                    await self._gateway.execute(statement)
                logger.info("Created %s: %s", kind, obj.name)
            created.append(obj.name)
        except Exception as e:
            logger.error("Failed to create %s: %s", label, e)
            result.errors.append(ImportFailure(object_name=label, error=str(e)))
            if not options.skip_errors and not options.dry_run:
                raise ObjectCreationError(label, str(e), result) from e

    def _statements_for(
        self,
        kind: str,
        obj: SchemaObject,
        schema: DatabaseSchema,
        options: ImportOptions,
        result: ImportResult,
    ) -> list[str]:
        """DDL statements that (re)create one object, in execution order."""
        statements: list[str] = []

        if kind == "table":
            if options.drop_existing:
                statements.append(drop_statement("TABLE", obj.name))
            statements.append(table_create_sql(obj))

        elif kind == "view":
            if options.drop_existing:
                statements.append(drop_statement("VIEW", obj.name))
            definition = obj.definition
            if options.target_database and options.target_database != schema.database_name:
                definition = rewrite_database_references(
                    definition, schema.database_name, options.target_database
                )
            statements.append(render_view(obj, definition))

        elif kind in ("function", "procedure"):
            # Routines have no IF NOT EXISTS form, so they are always dropped
            statements.append(drop_statement(kind.upper(), obj.name))
            if (
                kind == "function"
                and not obj.returns
                and not obj.definition.strip().upper().startswith("CREATE")
            ):
                result.warnings.append(
                    f"{kind}:{obj.name}: no return type recorded, using {PLACEHOLDER_RETURN_TYPE}"
                )
            statements.append(render_routine(obj))

        elif kind == "trigger":
            if options.drop_existing:
                statements.append(drop_statement("TRIGGER", obj.name))
            statements.append(render_trigger(obj))

        elif kind == "event":
            if options.drop_existing:
                statements.append(drop_statement("EVENT", obj.name))
            statements.append(render_event(obj))

        return statements

    def _check_references(
        self, kind: str, obj: SchemaObject, schema: DatabaseSchema
    ) -> None:
        """Dry-run shape check: foreign keys must point at snapshot tables.

        Raises:
            ValueError: If a foreign key references a table missing from
                the snapshot.
        """
        if kind != "table":
            return
        known = {table.name for table in schema.tables}
        for fk in obj.foreign_keys:
            if fk.referenced_table_name not in known:
                raise ValueError(
                    f"Foreign key '{fk.constraint_name}' references table "
                    f"'{fk.referenced_table_name}' which is not in the schema"
                )

    async def apply_tables(
        self, schema: DatabaseSchema, options: ImportOptions | None = None
    ) -> ImportResult:
        """Apply only the tables of ``schema``."""
        options = (options or ImportOptions()).model_copy(
            update={
                "create_tables": True,
                "create_views": False,
                "create_functions": False,
                "create_procedures": False,
                "create_triggers": False,
                "create_events": False,
            }
        )
        return await self.apply_schema(schema, options)

    async def apply_specific_tables(
        self,
        schema: DatabaseSchema,
        table_names: Sequence[str],
        options: ImportOptions | None = None,
    ) -> ImportResult:
        """Apply only the named tables (other object kinds are dropped)."""
        wanted = set(table_names)
        filtered = schema.model_copy(
            update={
                "tables": [t for t in schema.tables if t.name in wanted],
                "views": [],
                "procedures": [],
                "functions": [],
                "triggers": [],
                "events": [],
            }
        )
        return await self.apply_tables(filtered, options)

    async def validate_schema(self, schema: DatabaseSchema) -> ValidationReport:
        """Dry-run ``schema`` with ``skip_errors`` and report what would fail."""
        result = await self.apply_schema(
            schema, ImportOptions(dry_run=True, skip_errors=True)
        )
        return ValidationReport(
            valid=result.success,
            errors=[f"{e.object_name}: {e.error}" for e in result.errors],
            warnings=result.warnings,
        )

    # ------------------------------------------------------------------
    # Databases
    # ------------------------------------------------------------------

    async def database_exists(self, name: str) -> bool:
        """Check ``information_schema.SCHEMATA`` for ``name``."""
        rows = await self._gateway.query(
            "SELECT SCHEMA_NAME AS name FROM information_schema.SCHEMATA "
            "WHERE SCHEMA_NAME = :name",
            {"name": name},
        )
        return len(rows) > 0

    async def create_database_if_not_exists(
        self,
        name: str,
        character_set: str = "utf8mb4",
        collation: str = "utf8mb4_unicode_ci",
    ) -> None:
        await self._gateway.execute(render_create_database(name, character_set, collation))
        logger.info("Ensured database exists: %s", name)

    async def drop_database(self, name: str) -> None:
        await self._gateway.execute(drop_statement("DATABASE", name))
        logger.info("Dropped database: %s", name)

    async def clone_schema(
        self,
        schema: DatabaseSchema,
        target_database: str,
        options: CloneOptions | None = None,
    ) -> ImportResult:
        """Apply ``schema`` into ``target_database``.

        The target is created (with the snapshot's charset/collation) when
        missing, or dropped and recreated when ``drop_database`` is set.
        The session then switches to the target and view references to the
        source database are rewritten.

        Raises:
            PreconditionError: If the target must be created but
                ``create_database`` is false.  Raised before any DDL.
        """
        options = options or CloneOptions()
        quote_identifier(target_database)  # rejects unsafe names before any query

        exists = await self.database_exists(target_database)
        needs_create = not exists or options.drop_database
        if needs_create and not options.create_database:
            raise PreconditionError(
                f"Database {target_database} does not exist and create_database is false"
            )

        if exists and options.drop_database:
            await self.drop_database(target_database)
        if needs_create:
            await self.create_database_if_not_exists(
                target_database, schema.character_set, schema.collation
            )

        await self._gateway.use_database(target_database)
        logger.info("Cloning schema %s into %s", schema.database_name, target_database)

        return await self.apply_schema(
            schema, options.model_copy(update={"target_database": target_database})
        )

    async def create_database(
        self,
        name: str,
        schema: DatabaseSchema,
        options: CreateDatabaseOptions | None = None,
    ) -> ImportResult:
        """Create database ``name`` and clone ``schema`` into it."""
        options = options or CreateDatabaseOptions()

        if options.drop_if_exists:
            await self.drop_database(name)
        await self.create_database_if_not_exists(
            name, schema.character_set, schema.collation
        )

        clone_options = CloneOptions(
            **options.model_dump(exclude={"drop_if_exists"}),
            create_database=False,
            drop_database=False,
        )
        return await self.clone_schema(schema, name, clone_options)
