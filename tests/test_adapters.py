"""Tests for the MetadataGateway protocol and AsyncMySQLAdapter."""

import ast
import asyncio
import dataclasses
import inspect
import pathlib
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiomysql.cursors import Cursor
from pymysql.converters import escape_item

from schema_kit.adapters import AsyncMySQLAdapter, ExecuteResult, MetadataGateway
from schema_kit.adapters.mysql import create_async_engine_pooled, normalize_mysql_url
from schema_kit.errors import UnsafeIdentifierError

SRC_ROOT = pathlib.Path(__file__).resolve().parent.parent / "src" / "schema_kit"
BASE_PATH = SRC_ROOT / "adapters" / "base.py"


# ============================================================================
# Test: Protocol
# ============================================================================


class TestMetadataGatewayProtocol:
    """Verify every MetadataGateway method is async."""

    @pytest.mark.parametrize("method", ["query", "execute", "use_database", "close"])
    def test_methods_are_async_in_ast(self, method: str) -> None:
        tree = ast.parse(BASE_PATH.read_text())
        protocol = next(
            node
            for node in ast.walk(tree)
            if isinstance(node, ast.ClassDef) and node.name == "MetadataGateway"
        )
        async_names = {
            node.name for node in protocol.body if isinstance(node, ast.AsyncFunctionDef)
        }
        assert method in async_names

    def test_adapter_methods_are_coroutines(self) -> None:
        for name in ("query", "execute", "use_database", "close", "test_connection"):
            assert inspect.iscoroutinefunction(getattr(AsyncMySQLAdapter, name))

    def test_execute_result_defaults(self) -> None:
        result = ExecuteResult()
        assert result.affected_rows == 0
        assert result.insert_id is None

    def test_execute_result_is_frozen_dataclass(self) -> None:
        assert dataclasses.is_dataclass(ExecuteResult)
        with pytest.raises(dataclasses.FrozenInstanceError):
            ExecuteResult().affected_rows = 3

    def test_protocol_exported(self) -> None:
        assert MetadataGateway is not None


# ============================================================================
# Test: URL handling and engine creation
# ============================================================================


class TestNormalizeUrl:
    """Verify URLs are moved onto the aiomysql driver."""

    @pytest.mark.parametrize(
        "url",
        [
            "mysql://root:pw@localhost:3306/shop",
            "mariadb://root:pw@localhost:3306/shop",
            "mysql+pymysql://root:pw@localhost:3306/shop",
        ],
    )
    def test_schemes_normalized(self, url: str) -> None:
        assert normalize_mysql_url(url) == "mysql+aiomysql://root:pw@localhost:3306/shop"

    def test_already_normalized(self) -> None:
        url = "mysql+aiomysql://root@localhost/shop"
        assert normalize_mysql_url(url) == url


class TestCreateAsyncEnginePooled:
    """Verify create_async_engine_pooled settings."""

    def test_passes_pool_settings(self) -> None:
        with patch("schema_kit.adapters.mysql.create_async_engine") as mock_create:
            mock_create.return_value = MagicMock()
            create_async_engine_pooled("mysql+aiomysql://root@localhost/shop")
            _, kwargs = mock_create.call_args
            assert kwargs["pool_size"] == 5
            assert kwargs["max_overflow"] == 10
            assert kwargs["pool_pre_ping"] is True
            assert kwargs["pool_recycle"] == 300
            assert kwargs["isolation_level"] == "AUTOCOMMIT"

    def test_caller_kwargs_override_defaults(self) -> None:
        with patch("schema_kit.adapters.mysql.create_async_engine") as mock_create:
            mock_create.return_value = MagicMock()
            create_async_engine_pooled("mysql+aiomysql://root@localhost/shop", pool_size=20)
            _, kwargs = mock_create.call_args
            assert kwargs["pool_size"] == 20


# ============================================================================
# Test: AsyncMySQLAdapter
# ============================================================================


def _adapter(database_url: str = "mysql://root@localhost/shop") -> AsyncMySQLAdapter:
    with patch("schema_kit.adapters.mysql.create_async_engine") as mock_create:
        mock_create.return_value = MagicMock()
        return AsyncMySQLAdapter(database_url)


def _session() -> AsyncMock:
    session = AsyncMock()
    result = MagicMock(rowcount=1, lastrowid=0)
    session.exec_driver_sql = AsyncMock(return_value=result)
    session.execute = AsyncMock(return_value=result)
    return session


class TestAsyncMySQLAdapter:
    """Verify session handling of AsyncMySQLAdapter."""

    def test_database_name_from_url(self) -> None:
        assert _adapter().database_name == "shop"

    def test_no_database_in_url(self) -> None:
        assert _adapter("mysql://root@localhost:3306").database_name is None

    async def test_execute_without_params_goes_to_driver(self) -> None:
        adapter = _adapter()
        session = _session()
        adapter._session = session

        result = await adapter.execute("CREATE TRIGGER t BEFORE INSERT ON x FOR EACH ROW SET @a := 1")

        session.exec_driver_sql.assert_awaited_once()
        session.execute.assert_not_called()
        assert result.affected_rows == 1
        assert result.insert_id is None

    async def test_execute_with_params_binds(self) -> None:
        adapter = _adapter()
        session = _session()
        adapter._session = session

        await adapter.execute("DELETE FROM t WHERE id = :id", {"id": 3})

        session.execute.assert_awaited_once()
        assert session.execute.call_args.args[1] == {"id": 3}

    async def test_use_database_switches_name(self) -> None:
        adapter = _adapter()
        session = _session()
        adapter._session = session

        await adapter.use_database("shop_test")

        session.exec_driver_sql.assert_awaited_once()
        assert session.exec_driver_sql.call_args.args[0] == "USE `shop_test`"
        assert adapter.database_name == "shop_test"

    async def test_use_database_rejects_unsafe_name(self) -> None:
        adapter = _adapter()
        adapter._session = _session()
        with pytest.raises(UnsafeIdentifierError):
            await adapter.use_database("shop; DROP DATABASE shop")

    async def test_session_opened_on_current_database(self) -> None:
        adapter = _adapter()
        session = _session()
        adapter._engine.connect = AsyncMock(return_value=session)

        await adapter.execute("SET FOREIGN_KEY_CHECKS = 0")

        calls = [c.args[0] for c in session.exec_driver_sql.call_args_list]
        assert calls == ["USE `shop`", "SET FOREIGN_KEY_CHECKS = 0"]

    async def test_close_releases_session_and_pool(self) -> None:
        adapter = _adapter()
        session = _session()
        adapter._session = session
        adapter._engine.dispose = AsyncMock()

        async with adapter:
            pass

        session.close.assert_awaited_once()
        adapter._engine.dispose.assert_awaited_once()
        assert adapter._session is None

    def test_binary_values_decoded(self) -> None:
        adapter = _adapter()
        row = adapter._serialize_row({"definition": b"select 1", "n": 2})
        assert row == {"definition": "select 1", "n": 2}


# ============================================================================
# Test: statements through the real SQLAlchemy/aiomysql stack
# ============================================================================


class _RecordingCursor(Cursor):
    """aiomysql cursor that records the final query text instead of sending it."""

    async def _query(self, q):
        self.connection.sent.append(q)
        low = q.lower()
        rows = ()
        if "version()" in low:
            rows = (("8.0.36",),)
        elif "isolation" in low:
            rows = (("REPEATABLE-READ",),)
        self._rows = rows
        self._rownumber = 0
        self._rowcount = len(rows)
        ncols = len(rows[0]) if rows else 1
        if low.startswith(("select", "show")):
            self._description = tuple(
                (f"c{i}", 253, None, None, None, None, True) for i in range(ncols)
            )
        else:
            self._description = None
        self._lastrowid = 0


class _FakeAiomysqlConnection:
    charset = "utf8mb4"
    encoding = "utf8"
    server_status = 0

    def __init__(self, sent: list[str]):
        self.sent = sent

    @property
    def loop(self):
        return asyncio.get_event_loop()

    def cursor(self, *args, **kwargs):
        return _RecordingCursor(self)

    def get_server_info(self):
        return "8.0.36"

    def character_set_name(self):
        return "utf8mb4"

    async def autocommit(self, value):
        pass

    async def ping(self, reconnect=True):
        pass

    async def rollback(self):
        pass

    async def ensure_closed(self):
        pass

    def close(self):
        pass

    def escape(self, obj, mapping=None):
        return escape_item(obj, "utf8mb4", mapping=mapping)

    def literal(self, obj):
        return self.escape(obj)


@pytest.fixture
def sent_queries() -> list[str]:
    return []


@pytest.fixture
def recording_adapter(sent_queries: list[str]) -> AsyncMySQLAdapter:
    async def connect(*args, **kwargs):
        return _FakeAiomysqlConnection(sent_queries)

    return AsyncMySQLAdapter("mysql://root:pw@localhost/shop", async_creator=connect)


class TestVerbatimExecution:
    """Verify DDL reaches the driver byte-for-byte."""

    @pytest.mark.parametrize(
        "ddl",
        [
            "CREATE DEFINER=`root`@`%` PROCEDURE `archive_orders`()\nBEGIN\n  SELECT 1;\nEND",
            "CREATE VIEW `v` AS select `id` from `users` where `email` like '%@example.com'",
            "CREATE FUNCTION `f`() RETURNS text RETURN DATE_FORMAT(NOW(), '%Y-%m-%d')",
            "CREATE TABLE IF NOT EXISTS `t` (`id` int) COMMENT='100% done'",
        ],
    )
    async def test_percent_signs_sent_unchanged(
        self, recording_adapter: AsyncMySQLAdapter, sent_queries: list[str], ddl: str
    ) -> None:
        try:
            await recording_adapter.execute(ddl)
        finally:
            await recording_adapter.close()
        assert ddl in sent_queries

    async def test_session_selects_database_first(
        self, recording_adapter: AsyncMySQLAdapter, sent_queries: list[str]
    ) -> None:
        try:
            await recording_adapter.execute("SET FOREIGN_KEY_CHECKS = 0")
        finally:
            await recording_adapter.close()
        position = sent_queries.index("USE `shop`")
        assert sent_queries[position + 1] == "SET FOREIGN_KEY_CHECKS = 0"
