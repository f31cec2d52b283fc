"""
Repository classes for CRUD operations.
"""

from datetime import datetime

from .connection import Database
from .models import WatchlistEntry, HistorySample


class WatchlistRepository:
    """CRUD operations for user watchlists."""

    def __init__(self, db: Database):
        self.db = db

    def add(self, user_id: int, symbol: str) -> bool:
        """
        Add symbol to user's watchlist.

        Returns:
            True if a row was inserted, False if it was already present
        """
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT OR IGNORE INTO watchlist (user_id, symbol)
            VALUES (?, ?)
            """,
            (user_id, symbol),
        )
        self.db.connection.commit()
        return cursor.rowcount > 0

    def remove(self, user_id: int, symbol: str) -> bool:
        """Remove symbol from user's watchlist."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            DELETE FROM watchlist
            WHERE user_id = ? AND symbol = ?
            """,
            (user_id, symbol),
        )
        self.db.connection.commit()
        return cursor.rowcount > 0

    def get_user_watchlist(self, user_id: int) -> list[WatchlistEntry]:
        """Get all entries in user's watchlist, oldest first."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM watchlist
            WHERE user_id = ?
            ORDER BY id
            """,
            (user_id,),
        )
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def _row_to_entry(self, row) -> WatchlistEntry:
        """Convert database row to WatchlistEntry."""
        return WatchlistEntry(
            id=row["id"],
            user_id=row["user_id"],
            symbol=row["symbol"],
            added_at=row["added_at"],
        )


class HistoryRepository:
    """Append and query recorded quote samples."""

    def __init__(self, db: Database):
        self.db = db

    def create(self, sample: HistorySample) -> HistorySample:
        """Append a new sample."""
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            INSERT INTO historical_data
            (symbol, price, change_amount, change_percent, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                sample.symbol,
                sample.price,
                sample.change_amount,
                sample.change_percent,
                sample.timestamp.isoformat(),
            ),
        )
        self.db.connection.commit()
        sample.id = cursor.lastrowid
        return sample

    def get_recent(self, symbol: str, limit: int = 30) -> list[HistorySample]:
        """
        Get the most recent samples for a symbol.

        Args:
            symbol: Stock symbol
            limit: Maximum number of samples

        Returns:
            Up to ``limit`` samples in chronological order
        """
        cursor = self.db.connection.cursor()
        cursor.execute(
            """
            SELECT * FROM historical_data
            WHERE symbol = ?
            ORDER BY timestamp DESC, id DESC
            LIMIT ?
            """,
            (symbol, limit),
        )
        samples = [self._row_to_sample(row) for row in cursor.fetchall()]
        samples.reverse()
        return samples

    def _row_to_sample(self, row) -> HistorySample:
        """Convert database row to HistorySample."""
        return HistorySample(
            id=row["id"],
            symbol=row["symbol"],
            price=row["price"],
            change_amount=row["change_amount"],
            change_percent=row["change_percent"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )
