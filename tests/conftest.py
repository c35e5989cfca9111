"""Shared fixtures: a scripted in-memory gateway and a sample snapshot."""

import re
from datetime import datetime, timezone
from typing import Any

import pytest

from schema_kit.adapters.base import ExecuteResult
from schema_kit.schema.models import (
    ColumnSchema,
    DatabaseSchema,
    EventSchema,
    ForeignKeySchema,
    FunctionSchema,
    IndexSchema,
    KeyRole,
    ProcedureSchema,
    TableSchema,
    TriggerSchema,
    ViewSchema,
)


class FakeGateway:
    """In-memory ``MetadataGateway``.

    ``responses`` maps a SQL substring to the rows returned for any query
    containing it (first match wins, in insertion order).  A value that is
    an exception instance is raised instead.  Executed statements are
    recorded in ``executed``; statements containing a key of ``failures``
    raise that exception.
    ``CREATE DATABASE`` and ``DROP DATABASE`` statements update
    ``databases``, which answers ``information_schema.SCHEMATA`` lookups by
    name.
    """

    def __init__(
        self,
        responses: dict[str, Any] | None = None,
        database_name: str | None = "shop",
        failures: dict[str, Exception] | None = None,
        databases: set[str] | None = None,
    ):
        self.responses = responses or {}
        self.failures = failures or {}
        self.queries: list[tuple[str, dict[str, Any] | None]] = []
        self.executed: list[str] = []
        self._database_name = database_name
        self.databases = set(databases) if databases is not None else {database_name}
        self.closed = False

    @property
    def database_name(self) -> str | None:
        return self._database_name

    async def query(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        self.queries.append((sql, params))
        if "information_schema.SCHEMATA" in sql and params and "name" in params:
            return [{"name": params["name"]}] if params["name"] in self.databases else []
        for fragment, rows in self.responses.items():
            if fragment in sql:
                if isinstance(rows, Exception):
                    raise rows
                if callable(rows):
                    return rows(sql, params)
                return rows
        return []

    async def execute(
        self, sql: str, params: dict[str, Any] | None = None
    ) -> ExecuteResult:
        for fragment, error in self.failures.items():
            if fragment in sql:
                raise error
        self.executed.append(sql)
        created = re.match(r"CREATE DATABASE IF NOT EXISTS `([^`]+)`", sql)
        if created:
            self.databases.add(created.group(1))
        dropped = re.match(r"DROP DATABASE IF EXISTS `([^`]+)`", sql)
        if dropped:
            self.databases.discard(dropped.group(1))
        return ExecuteResult()

    async def use_database(self, name: str) -> None:
        self.executed.append(f"USE `{name}`")
        self._database_name = name

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> "FakeGateway":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()


def make_users_table(**overrides: Any) -> TableSchema:
    fields: dict[str, Any] = {
        "name": "users",
        "columns": [
            ColumnSchema(
                name="id",
                type="int(11)",
                nullable=False,
                extra="auto_increment",
                key=KeyRole.PRIMARY,
            ),
            ColumnSchema(
                name="email",
                type="varchar(255)",
                nullable=False,
                key=KeyRole.UNIQUE,
                comment="Login address",
            ),
            ColumnSchema(name="is_active", type="tinyint(1)", default="1"),
        ],
        "indexes": [
            IndexSchema(name="PRIMARY", table_name="users", column_name="id", non_unique=False),
            IndexSchema(
                name="email_unique", table_name="users", column_name="email", non_unique=False
            ),
        ],
    }
    fields.update(overrides)
    return TableSchema(**fields)


def make_orders_table(**overrides: Any) -> TableSchema:
    fields: dict[str, Any] = {
        "name": "orders",
        "columns": [
            ColumnSchema(name="id", type="int(11)", nullable=False, key=KeyRole.PRIMARY),
            ColumnSchema(name="user_id", type="int(11)", nullable=False, key=KeyRole.INDEXED),
            ColumnSchema(
                name="status", type="enum('new','paid','shipped')", default="new"
            ),
            ColumnSchema(name="total", type="decimal(10,2)", nullable=False, default="0.00"),
            ColumnSchema(
                name="created_at",
                type="timestamp",
                default="CURRENT_TIMESTAMP",
                extra="DEFAULT_GENERATED",
            ),
        ],
        "indexes": [
            IndexSchema(name="PRIMARY", table_name="orders", column_name="id", non_unique=False),
            IndexSchema(name="fk_orders_user", table_name="orders", column_name="user_id"),
        ],
        "foreign_keys": [
            ForeignKeySchema(
                constraint_name="fk_orders_user",
                table_name="orders",
                column_name="user_id",
                referenced_table_name="users",
                referenced_column_name="id",
                delete_rule="CASCADE",
            )
        ],
    }
    fields.update(overrides)
    return TableSchema(**fields)


def make_schema(**overrides: Any) -> DatabaseSchema:
    fields: dict[str, Any] = {
        "database_name": "shop",
        "tables": [make_users_table(), make_orders_table()],
        "views": [
            ViewSchema(
                name="active_users",
                definition="select `shop`.`users`.`id` AS `id` from `shop`.`users` "
                "where `shop`.`users`.`is_active` = 1",
            )
        ],
        "functions": [
            FunctionSchema(
                name="order_total",
                definition="RETURN (SELECT SUM(total) FROM orders WHERE user_id = uid)",
                parameter_list="uid INT",
                returns="decimal(10,2)",
                is_deterministic=False,
            )
        ],
        "procedures": [
            ProcedureSchema(
                name="archive_orders",
                definition="CREATE DEFINER=`root`@`%` PROCEDURE `archive_orders`()\n"
                "BEGIN\n  DELETE FROM orders WHERE status = 'shipped';\nEND",
            )
        ],
        "triggers": [
            TriggerSchema(
                name="orders_before_insert",
                table_name="orders",
                event="INSERT",
                timing="BEFORE",
                statement="SET NEW.total = ROUND(NEW.total, 2)",
            )
        ],
        "events": [
            EventSchema(
                name="purge_shipped",
                type="RECURRING",
                interval_value="1",
                interval_field="DAY",
                definition="CALL archive_orders()",
            )
        ],
        "extracted_at": datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc),
        "version": "8.0.36",
    }
    fields.update(overrides)
    return DatabaseSchema(**fields)


@pytest.fixture
def sample_schema() -> DatabaseSchema:
    return make_schema()
