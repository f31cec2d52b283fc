"""
Subscription registry: which connections want which symbols.
"""

import logging
from typing import Hashable

logger = logging.getLogger(__name__)


class SubscriptionRegistry:
    """
    In-memory index from symbol to subscribed connections.

    Every operation is idempotent. Symbols are stored uppercase and a symbol
    disappears from the index once its last subscriber leaves.
    """

    def __init__(self):
        self._subscribers: dict[str, set[Hashable]] = {}
        self._symbols_by_conn: dict[Hashable, set[str]] = {}

    def subscribe(self, symbol: str, conn: Hashable) -> bool:
        """
        Subscribe a connection to a symbol.

        Returns:
            True if the subscription is new
        """
        symbol = symbol.upper()
        subscribers = self._subscribers.setdefault(symbol, set())
        if conn in subscribers:
            return False

        subscribers.add(conn)
        self._symbols_by_conn.setdefault(conn, set()).add(symbol)
        logger.debug(f"{conn!r} subscribed to {symbol}")
        return True

    def unsubscribe(self, symbol: str, conn: Hashable) -> bool:
        """
        Unsubscribe a connection from a symbol.

        Returns:
            True if the connection was subscribed
        """
        symbol = symbol.upper()
        subscribers = self._subscribers.get(symbol)
        if not subscribers or conn not in subscribers:
            return False

        subscribers.discard(conn)
        if not subscribers:
            del self._subscribers[symbol]

        symbols = self._symbols_by_conn.get(conn)
        if symbols is not None:
            symbols.discard(symbol)
            if not symbols:
                del self._symbols_by_conn[conn]

        logger.debug(f"{conn!r} unsubscribed from {symbol}")
        return True

    def remove_connection(self, conn: Hashable) -> list[str]:
        """
        Drop a connection from every symbol.

        Returns:
            Symbols the connection was removed from
        """
        symbols = sorted(self._symbols_by_conn.get(conn, ()))
        for symbol in symbols:
            self.unsubscribe(symbol, conn)
        return symbols

    def subscribers_of(self, symbol: str) -> set:
        """Snapshot of the connections subscribed to a symbol."""
        return set(self._subscribers.get(symbol.upper(), ()))

    def symbols(self) -> list[str]:
        """Symbols with at least one subscriber."""
        return sorted(self._subscribers)

    def symbols_for(self, conn: Hashable) -> set[str]:
        return set(self._symbols_by_conn.get(conn, ()))

    def clear(self) -> None:
        self._subscribers.clear()
        self._symbols_by_conn.clear()

    def __len__(self) -> int:
        return len(self._subscribers)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._subscribers
