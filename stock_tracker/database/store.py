"""
Watchlist and history storage backends.

``SQLiteStore`` is the durable backend and ``InMemoryStore`` the fallback.
``FallbackStore`` switches from the first to the second on the first
database error and never switches back.
"""

import logging
import sqlite3
from abc import ABC, abstractmethod
from typing import Callable, TypeVar

from stock_tracker.config import StorageConfig
from .connection import Database
from .models import HistorySample
from .repository import WatchlistRepository, HistoryRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StockStore(ABC):
    """Capabilities the application needs from storage."""

    name: str = "store"

    @abstractmethod
    def add_to_watchlist(self, user_id: int, symbol: str) -> None:
        """Add a symbol to a user's watchlist. Adding twice is a no-op."""

    @abstractmethod
    def remove_from_watchlist(self, user_id: int, symbol: str) -> None:
        """Remove a symbol from a user's watchlist. Missing symbols are ignored."""

    @abstractmethod
    def get_watchlist(self, user_id: int) -> list[str]:
        """List the symbols a user is tracking."""

    @abstractmethod
    def append_history(self, sample: HistorySample) -> None:
        """Record a quote sample."""

    @abstractmethod
    def get_history(self, symbol: str, limit: int = 30) -> list[HistorySample]:
        """Return the most recent ``limit`` samples, oldest first."""

    def close(self) -> None:
        pass


class InMemoryStore(StockStore):
    """Process-local store. Contents are lost on restart."""

    name = "memory"

    def __init__(self):
        self._watchlists: dict[int, dict[str, None]] = {}
        self._history: dict[str, list[HistorySample]] = {}
        self._next_history_id = 1

    def add_to_watchlist(self, user_id: int, symbol: str) -> None:
        # dict keeps insertion order, unlike set
        self._watchlists.setdefault(user_id, {})[symbol] = None

    def remove_from_watchlist(self, user_id: int, symbol: str) -> None:
        self._watchlists.get(user_id, {}).pop(symbol, None)

    def get_watchlist(self, user_id: int) -> list[str]:
        return list(self._watchlists.get(user_id, {}))

    def append_history(self, sample: HistorySample) -> None:
        sample.id = self._next_history_id
        self._next_history_id += 1
        self._history.setdefault(sample.symbol, []).append(sample)

    def get_history(self, symbol: str, limit: int = 30) -> list[HistorySample]:
        if limit <= 0:
            return []
        return list(self._history.get(symbol, [])[-limit:])


class SQLiteStore(StockStore):
    """Durable store backed by SQLite."""

    name = "sqlite"

    def __init__(self, db: Database):
        self.db = db
        self.watchlist_repo = WatchlistRepository(db)
        self.history_repo = HistoryRepository(db)

    @classmethod
    def open(cls, path: str) -> "SQLiteStore":
        """Open (and create if needed) the database at ``path``."""
        db = Database(path)
        try:
            db.initialize()
        except sqlite3.Error:
            db.close()
            raise
        return cls(db)

    def add_to_watchlist(self, user_id: int, symbol: str) -> None:
        self.watchlist_repo.add(user_id, symbol)

    def remove_from_watchlist(self, user_id: int, symbol: str) -> None:
        self.watchlist_repo.remove(user_id, symbol)

    def get_watchlist(self, user_id: int) -> list[str]:
        return [entry.symbol for entry in self.watchlist_repo.get_user_watchlist(user_id)]

    def append_history(self, sample: HistorySample) -> None:
        self.history_repo.create(sample)

    def get_history(self, symbol: str, limit: int = 30) -> list[HistorySample]:
        return self.history_repo.get_recent(symbol, limit)

    def close(self) -> None:
        self.db.close()


class FallbackStore(StockStore):
    """
    Routes calls to a durable store until it fails, then to a fallback.

    The switch is permanent for the life of the process. The failing call is
    retried once against the fallback so callers always see success.
    """

    def __init__(self, primary: StockStore, fallback: StockStore):
        self.primary = primary
        self.fallback = fallback
        self.using_fallback = False

    @property
    def name(self) -> str:
        return self.fallback.name if self.using_fallback else self.primary.name

    def _call(self, operation: str, action: Callable[[StockStore], T]) -> T:
        if not self.using_fallback:
            try:
                return action(self.primary)
            except sqlite3.Error as e:
                logger.warning(
                    f"Storage error during {operation}, "
                    f"switching to {self.fallback.name} storage: {e}"
                )
                self.using_fallback = True
        return action(self.fallback)

    def add_to_watchlist(self, user_id: int, symbol: str) -> None:
        self._call("add_to_watchlist", lambda s: s.add_to_watchlist(user_id, symbol))

    def remove_from_watchlist(self, user_id: int, symbol: str) -> None:
        self._call(
            "remove_from_watchlist", lambda s: s.remove_from_watchlist(user_id, symbol)
        )

    def get_watchlist(self, user_id: int) -> list[str]:
        return self._call("get_watchlist", lambda s: s.get_watchlist(user_id))

    def append_history(self, sample: HistorySample) -> None:
        self._call("append_history", lambda s: s.append_history(sample))

    def get_history(self, symbol: str, limit: int = 30) -> list[HistorySample]:
        return self._call("get_history", lambda s: s.get_history(symbol, limit))

    def close(self) -> None:
        self.primary.close()
        self.fallback.close()


def create_store(config: StorageConfig) -> StockStore:
    """
    Create the store selected by configuration.

    Args:
        config: Storage configuration

    Returns:
        InMemoryStore for the "memory" backend, otherwise a FallbackStore
        wrapping SQLite. If the database cannot be opened at all, the
        in-memory store is returned directly.
    """
    if config.backend == "memory":
        logger.info("Using in-memory storage (configured)")
        return InMemoryStore()

    try:
        primary = SQLiteStore.open(config.path)
    except (sqlite3.Error, OSError) as e:
        logger.warning(f"Failed to open database at {config.path}, using in-memory storage: {e}")
        return InMemoryStore()

    logger.info(f"Using SQLite storage at {config.path}")
    return FallbackStore(primary, InMemoryStore())
