"""Metadata gateway protocol definition.

Defines the ``MetadataGateway`` Protocol that the extractor and importer
talk to.  All methods are ``async def`` -- the library is async-first.

Usage:
    from schema_kit.adapters.base import MetadataGateway

    async def count_tables(gateway: MetadataGateway) -> int:
        rows = await gateway.query(
            "SELECT COUNT(*) AS n FROM information_schema.TABLES "
            "WHERE TABLE_SCHEMA = :db",
            {"db": gateway.database_name},
        )
        return rows[0]["n"]
"""

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class ExecuteResult:
    """Outcome of a write/DDL statement."""

    affected_rows: int = 0
    insert_id: int | None = None


class MetadataGateway(Protocol):
    """Database session interface consumed by the extractor and importer.

    Values are always bound as parameters.  Identifiers (table, view,
    routine names) are never bound -- callers quote them through
    ``schema_kit.schema.sql.quote_identifier`` before interpolation.
    """

    @property
    def database_name(self) -> str | None:
        """Name of the currently active database (``None`` if unset)."""
        ...

    async def query(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Run a read statement and return rows as dicts.

        Args:
            sql: SQL text using ``:name`` placeholders for values.
            params: Optional dict of named parameters.

        Returns:
            List of dicts keyed by column label.  Empty list if no rows.

        Example:
            rows = await gateway.query(
                "SELECT TABLE_NAME AS name FROM information_schema.TABLES "
                "WHERE TABLE_SCHEMA = :db",
                {"db": "shop"},
            )
        """
        ...

    async def execute(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> ExecuteResult:
        """Execute a DDL or write statement on the session connection.

        Statements run on one pinned session so session-global settings
        (``SET FOREIGN_KEY_CHECKS``, ``USE``) apply to later statements.

        Args:
            sql: Raw SQL statement.  Without ``params`` it is sent verbatim.
            params: Optional dict of named parameters.

        Returns:
            ``ExecuteResult`` with ``affected_rows`` and ``insert_id``.
        """
        ...

    async def use_database(self, name: str) -> None:
        """Switch the session's active database."""
        ...

    async def close(self) -> None:
        """Close connections and release resources."""
        ...
