"""Database adapters package.

Provides the ``MetadataGateway`` Protocol and the async MySQL adapter
implementation.

Usage:
    from schema_kit.adapters import MetadataGateway, AsyncMySQLAdapter
"""

from schema_kit.adapters.base import ExecuteResult, MetadataGateway
from schema_kit.adapters.mysql import AsyncMySQLAdapter

__all__ = [
    "ExecuteResult",
    "MetadataGateway",
    "AsyncMySQLAdapter",
]
