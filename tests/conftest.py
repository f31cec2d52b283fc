"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from stock_tracker.config import AppConfig, QuoteProviderConfig, StorageConfig
from stock_tracker.data.fetcher import QuoteSource
from stock_tracker.database.store import InMemoryStore
from stock_tracker.realtime.connection import Connection, ConnectionClosed


class FakeConnection(Connection):
    """In-process connection that records what it is sent."""

    def __init__(
        self,
        connection_id: Optional[str] = None,
        incoming: Optional[list[str]] = None,
        open: bool = True,
    ):
        super().__init__(connection_id)
        self.open = open
        self.sent: list[dict[str, Any]] = []
        self.incoming = list(incoming or [])

    @property
    def is_open(self) -> bool:
        return self.open

    async def send_json(self, message: dict[str, Any]) -> bool:
        if not self.open:
            return False
        self.sent.append(message)
        return True

    async def receive_text(self) -> str:
        if not self.incoming:
            self.open = False
            raise ConnectionClosed("no more messages")
        return self.incoming.pop(0)


@pytest.fixture
def fixed_now():
    """A time aligned to the start of a five-minute window."""
    return datetime(2024, 1, 2, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def quote_source(memory_store, fixed_now):
    """Quote source without an API key, so always synthetic."""
    return QuoteSource(QuoteProviderConfig(), store=memory_store, now=lambda: fixed_now)


@pytest.fixture
def make_connection():
    """Factory for fake client connections."""

    def _make(connection_id=None, incoming=None, open=True):
        return FakeConnection(connection_id=connection_id, incoming=incoming, open=open)

    return _make


@pytest.fixture
def memory_config():
    """Application config using in-memory storage and no API key."""
    return AppConfig(storage=StorageConfig(backend="memory"))


@pytest.fixture
def sample_global_quote():
    """Sample Alpha Vantage GLOBAL_QUOTE response."""
    return {
        "Global Quote": {
            "01. symbol": "IBM",
            "02. open": "172.0000",
            "03. high": "176.1000",
            "04. low": "171.5000",
            "05. price": "175.5000",
            "06. volume": "4213311",
            "07. latest trading day": "2024-01-02",
            "08. previous close": "173.2500",
            "09. change": "2.2500",
            "10. change percent": "1.2987%",
        }
    }
