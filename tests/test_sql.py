"""Tests for schema_kit.schema.sql DDL rendering."""

from datetime import datetime

import pytest

from conftest import make_orders_table, make_users_table
from schema_kit.errors import UnsafeIdentifierError
from schema_kit.schema.models import (
    ColumnSchema,
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
from schema_kit.schema.sql import (
    drop_statement,
    ensure_if_not_exists,
    quote_identifier,
    quote_string,
    render_column,
    render_create_database,
    render_create_table,
    render_event,
    render_event_schedule,
    render_routine,
    render_trigger,
    render_view,
    rewrite_database_references,
    table_create_sql,
)


# ============================================================================
# Quoting
# ============================================================================


class TestQuoteIdentifier:
    """Verify the identifier allowlist."""

    @pytest.mark.parametrize("name", ["users", "user_roles", "Order2024", "a$b", "my-table"])
    def test_accepts_safe_names(self, name: str) -> None:
        assert quote_identifier(name) == f"`{name}`"

    @pytest.mark.parametrize(
        "name",
        ["", "users`; DROP TABLE x", "has space", "semi;colon", "quote'", "x" * 65],
    )
    def test_rejects_unsafe_names(self, name: str) -> None:
        with pytest.raises(UnsafeIdentifierError):
            quote_identifier(name)

    def test_unsafe_identifier_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            quote_identifier("bad name")

    def test_quote_string_escapes(self) -> None:
        assert quote_string("it's") == "'it''s'"
        assert quote_string("a\\b") == "'a\\\\b'"

    def test_drop_statement(self) -> None:
        assert drop_statement("VIEW", "active_users") == "DROP VIEW IF EXISTS `active_users`"


class TestCreateDatabase:
    """Verify CREATE DATABASE rendering."""

    def test_renders_charset_and_collation(self) -> None:
        sql = render_create_database("shop_test", "utf8mb4", "utf8mb4_0900_ai_ci")
        assert sql == (
            "CREATE DATABASE IF NOT EXISTS `shop_test` "
            "CHARACTER SET utf8mb4 COLLATE utf8mb4_0900_ai_ci"
        )

    def test_rejects_unsafe_collation(self) -> None:
        with pytest.raises(UnsafeIdentifierError):
            render_create_database("shop", "utf8mb4", "utf8mb4; DROP")


# ============================================================================
# Tables
# ============================================================================


class TestEnsureIfNotExists:
    """Verify IF NOT EXISTS insertion into stored create statements."""

    def test_inserts_clause(self) -> None:
        assert ensure_if_not_exists("CREATE TABLE `t` (`a` int)") == (
            "CREATE TABLE IF NOT EXISTS `t` (`a` int)"
        )

    def test_leaves_existing_clause(self) -> None:
        sql = "CREATE TABLE IF NOT EXISTS `t` (`a` int)"
        assert ensure_if_not_exists(sql) == sql

    def test_phrase_in_comment_does_not_count(self) -> None:
        sql = "CREATE TABLE `t` (\n  `a` int COMMENT 'added IF NOT EXISTS upstream'\n)"
        assert ensure_if_not_exists(sql).startswith("CREATE TABLE IF NOT EXISTS `t` (")

    def test_leaves_lowercase_guard(self) -> None:
        sql = "create table if not exists `t` (`a` int)"
        assert ensure_if_not_exists(sql) == sql


class TestRenderColumn:
    """Verify single column definitions."""

    def test_not_null_with_extra(self) -> None:
        col = ColumnSchema(name="id", type="int(11)", nullable=False, extra="auto_increment")
        assert render_column(col) == "`id` int(11) NOT NULL auto_increment"

    def test_string_default_quoted(self) -> None:
        col = ColumnSchema(name="status", type="varchar(10)", default="new")
        assert render_column(col) == "`status` varchar(10) DEFAULT 'new'"

    def test_expression_default_unquoted(self) -> None:
        col = ColumnSchema(
            name="created_at",
            type="timestamp",
            default="CURRENT_TIMESTAMP",
            extra="DEFAULT_GENERATED on update CURRENT_TIMESTAMP",
        )
        assert render_column(col) == (
            "`created_at` timestamp DEFAULT CURRENT_TIMESTAMP on update CURRENT_TIMESTAMP"
        )

    def test_numeric_default_unquoted(self) -> None:
        col = ColumnSchema(name="total", type="decimal(10,2)", default="0.00")
        assert render_column(col) == "`total` decimal(10,2) DEFAULT 0.00"

    def test_comment(self) -> None:
        col = ColumnSchema(name="email", type="varchar(255)", comment="Login's address")
        assert render_column(col).endswith("COMMENT 'Login''s address'")


class TestRenderCreateTable:
    """Verify synthesized CREATE TABLE statements."""

    def test_primary_and_unique_keys(self) -> None:
        sql = render_create_table(make_users_table())
        assert sql.startswith("CREATE TABLE IF NOT EXISTS `users` (")
        assert "  PRIMARY KEY (`id`)" in sql
        assert "  UNIQUE KEY `email_unique` (`email`)" in sql
        assert "KEY `PRIMARY`" not in sql
        assert sql.endswith(
            ") ENGINE=InnoDB DEFAULT CHARSET=utf8mb4 COLLATE=utf8mb4_unicode_ci"
        )

    def test_foreign_key_constraint(self) -> None:
        sql = render_create_table(make_orders_table())
        assert (
            "CONSTRAINT `fk_orders_user` FOREIGN KEY (`user_id`) REFERENCES `users` (`id`) "
            "ON UPDATE RESTRICT ON DELETE CASCADE"
        ) in sql
        assert "  KEY `fk_orders_user` (`user_id`)" in sql

    def test_composite_index_in_sequence_order(self) -> None:
        table = TableSchema(
            name="t",
            columns=[ColumnSchema(name="a", type="int"), ColumnSchema(name="b", type="int")],
            indexes=[
                IndexSchema(name="idx_ab", table_name="t", column_name="b", seq_in_index=2),
                IndexSchema(name="idx_ab", table_name="t", column_name="a", seq_in_index=1),
            ],
        )
        assert "KEY `idx_ab` (`a`, `b`)" in render_create_table(table)

    def test_composite_foreign_key_grouped(self) -> None:
        table = TableSchema(
            name="line_items",
            columns=[
                ColumnSchema(name="order_id", type="int"),
                ColumnSchema(name="order_rev", type="int"),
            ],
            foreign_keys=[
                ForeignKeySchema(
                    constraint_name="fk_rev",
                    table_name="line_items",
                    column_name=col,
                    referenced_table_name="order_revisions",
                    referenced_column_name=ref,
                )
                for col, ref in (("order_id", "id"), ("order_rev", "rev"))
            ],
        )
        sql = render_create_table(table)
        assert "FOREIGN KEY (`order_id`, `order_rev`) REFERENCES `order_revisions` (`id`, `rev`)" in sql
        assert sql.count("CONSTRAINT") == 1

    def test_composite_primary_key(self) -> None:
        table = TableSchema(
            name="user_roles",
            columns=[
                ColumnSchema(name="user_id", type="int", key=KeyRole.PRIMARY),
                ColumnSchema(name="role_id", type="int", key=KeyRole.PRIMARY),
            ],
        )
        assert "PRIMARY KEY (`user_id`, `role_id`)" in render_create_table(table)

    def test_composite_primary_key_follows_index_order(self) -> None:
        table = TableSchema(
            name="user_roles",
            columns=[
                ColumnSchema(name="user_id", type="int", key=KeyRole.PRIMARY),
                ColumnSchema(name="role_id", type="int", key=KeyRole.PRIMARY),
            ],
            indexes=[
                IndexSchema(
                    name="PRIMARY",
                    table_name="user_roles",
                    column_name="user_id",
                    non_unique=False,
                    seq_in_index=2,
                ),
                IndexSchema(
                    name="PRIMARY",
                    table_name="user_roles",
                    column_name="role_id",
                    non_unique=False,
                    seq_in_index=1,
                ),
            ],
        )
        assert "PRIMARY KEY (`role_id`, `user_id`)" in render_create_table(table)

    def test_table_comment(self) -> None:
        table = make_users_table(comment="Registered accounts")
        assert render_create_table(table).endswith("COMMENT='Registered accounts'")

    def test_unsafe_column_name_rejected(self) -> None:
        table = TableSchema(name="t", columns=[ColumnSchema(name="bad name", type="int")])
        with pytest.raises(UnsafeIdentifierError):
            render_create_table(table)

    def test_stored_statement_preferred(self) -> None:
        table = make_users_table(create_statement="CREATE TABLE IF NOT EXISTS `users` (x int)")
        assert table_create_sql(table) == "CREATE TABLE IF NOT EXISTS `users` (x int)"

    def test_synthesized_without_stored_statement(self) -> None:
        table = make_users_table()
        assert table_create_sql(table) == render_create_table(table)


# ============================================================================
# Views, routines, triggers, events
# ============================================================================


class TestRewriteDatabaseReferences:
    """Verify source-to-target database rewriting in view bodies."""

    def test_backtick_form(self) -> None:
        body = "select `shop`.`users`.`id` from `shop`.`users`"
        assert rewrite_database_references(body, "shop", "shop_test") == (
            "select `shop_test`.`users`.`id` from `shop_test`.`users`"
        )

    def test_bare_form(self) -> None:
        assert rewrite_database_references("select * from shop.users", "shop", "staging") == (
            "select * from staging.users"
        )

    def test_does_not_touch_longer_names(self) -> None:
        body = "select * from myshop.users"
        assert rewrite_database_references(body, "shop", "staging") == body

    def test_same_database_unchanged(self) -> None:
        body = "select * from shop.users"
        assert rewrite_database_references(body, "shop", "shop") == body


class TestRenderView:
    """Verify CREATE VIEW rendering."""

    def test_basic(self) -> None:
        view = ViewSchema(name="v", definition="select 1 AS `one`")
        assert render_view(view) == "CREATE VIEW `v` AS select 1 AS `one`"

    def test_definition_override(self) -> None:
        view = ViewSchema(name="v", definition="select 1")
        assert render_view(view, "select 2") == "CREATE VIEW `v` AS select 2"

    def test_invoker_and_check_option(self) -> None:
        view = ViewSchema(
            name="v",
            definition="select * from t",
            security_type="INVOKER",
            check_option="CASCADED",
        )
        assert render_view(view) == (
            "CREATE SQL SECURITY INVOKER VIEW `v` AS select * from t "
            "WITH CASCADED CHECK OPTION"
        )


class TestRenderRoutine:
    """Verify function and procedure statements."""

    def test_verbatim_create_statement(self) -> None:
        proc = ProcedureSchema(
            name="p", definition="  CREATE PROCEDURE `p`()\nBEGIN\n  SELECT 1;\nEND  "
        )
        assert render_routine(proc) == "CREATE PROCEDURE `p`()\nBEGIN\n  SELECT 1;\nEND"

    def test_function_body_wrapped(self) -> None:
        func = FunctionSchema(
            name="double_it",
            definition="RETURN x * 2",
            parameter_list="x INT",
            returns="int",
            is_deterministic=True,
        )
        assert render_routine(func) == (
            "CREATE FUNCTION `double_it`(x INT) RETURNS int\n"
            "DETERMINISTIC\n"
            "BEGIN\nRETURN x * 2;\nEND"
        )

    def test_function_without_return_type_uses_placeholder(self) -> None:
        func = FunctionSchema(name="f", definition="BEGIN RETURN 'x'; END")
        sql = render_routine(func)
        assert "RETURNS TEXT" in sql
        assert "NOT DETERMINISTIC" in sql
        assert sql.endswith("BEGIN RETURN 'x'; END")

    def test_procedure_body_wrapped(self) -> None:
        proc = ProcedureSchema(name="cleanup", definition="DELETE FROM t;")
        assert render_routine(proc) == (
            "CREATE PROCEDURE `cleanup`()\nNOT DETERMINISTIC\nBEGIN\nDELETE FROM t;\nEND"
        )


class TestRenderTrigger:
    """Verify CREATE TRIGGER rendering."""

    def test_wraps_single_statement(self) -> None:
        trigger = TriggerSchema(
            name="trg",
            table_name="orders",
            event="UPDATE",
            timing="AFTER",
            statement="SET @x = 1",
        )
        assert render_trigger(trigger) == (
            "CREATE TRIGGER `trg`\nAFTER UPDATE ON `orders`\nFOR EACH ROW\n"
            "BEGIN\nSET @x = 1;\nEND"
        )

    def test_keeps_begin_block(self) -> None:
        trigger = TriggerSchema(
            name="trg",
            table_name="orders",
            event="INSERT",
            timing="BEFORE",
            statement="BEGIN\n  SET NEW.a = 1;\nEND",
        )
        assert render_trigger(trigger).endswith("FOR EACH ROW\nBEGIN\n  SET NEW.a = 1;\nEND")


class TestRenderEvent:
    """Verify event schedules and status keywords."""

    def test_recurring_schedule(self) -> None:
        event = EventSchema(
            name="e", type="RECURRING", interval_value="1", interval_field="DAY", definition="DO 1"
        )
        assert render_event_schedule(event) == "EVERY 1 DAY"

    def test_compound_interval_value_quoted(self) -> None:
        event = EventSchema(
            name="e",
            type="RECURRING",
            interval_value="1:30",
            interval_field="HOUR_MINUTE",
            definition="DO 1",
        )
        assert render_event_schedule(event) == "EVERY '1:30' HOUR_MINUTE"

    def test_one_time_schedule(self) -> None:
        event = EventSchema(
            name="e",
            type="ONE TIME",
            execute_at=datetime(2024, 6, 1, 3, 0, 0),
            definition="DO 1",
        )
        assert render_event_schedule(event) == "AT '2024-06-01 03:00:00'"

    def test_one_time_without_timestamp_rejected(self) -> None:
        event = EventSchema(name="e", type="ONE TIME", definition="DO 1")
        with pytest.raises(ValueError, match="no execute_at"):
            render_event_schedule(event)

    def test_invalid_interval_field_rejected(self) -> None:
        event = EventSchema(
            name="e",
            type="RECURRING",
            interval_value="1",
            interval_field="DAY; DROP",
            definition="DO 1",
        )
        with pytest.raises(ValueError, match="invalid interval"):
            render_event_schedule(event)

    @pytest.mark.parametrize(
        ("status", "keyword"),
        [
            ("ENABLED", "\nENABLE\n"),
            ("DISABLED", "\nDISABLE\n"),
            ("SLAVESIDE_DISABLED", "\nDISABLE ON SLAVE\n"),
        ],
    )
    def test_status_keyword(self, status: str, keyword: str) -> None:
        event = EventSchema(
            name="e",
            type="RECURRING",
            interval_value="5",
            interval_field="MINUTE",
            status=status,
            definition="DELETE FROM sessions",
        )
        assert keyword in render_event(event)

    def test_full_statement(self) -> None:
        event = EventSchema(
            name="purge",
            type="RECURRING",
            interval_value="1",
            interval_field="DAY",
            on_completion="PRESERVE",
            comment="nightly",
            definition="DELETE FROM sessions",
        )
        assert render_event(event) == (
            "CREATE EVENT `purge`\n"
            "ON SCHEDULE EVERY 1 DAY\n"
            "ON COMPLETION PRESERVE\n"
            "ENABLE\n"
            "COMMENT 'nightly'\n"
            "DO\nBEGIN\nDELETE FROM sessions;\nEND"
        )
