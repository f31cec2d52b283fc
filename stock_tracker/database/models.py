"""
Data models for stored watchlists and quote history.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional


@dataclass
class WatchlistEntry:
    """A symbol tracked by a user."""

    user_id: int
    symbol: str
    id: Optional[int] = None
    added_at: Optional[datetime] = None


@dataclass
class HistorySample:
    """One recorded quote observation."""

    symbol: str
    price: float
    change_amount: float
    change_percent: float
    timestamp: datetime
    id: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "symbol": self.symbol,
            "price": self.price,
            "change_amount": self.change_amount,
            "change_percent": self.change_percent,
            "timestamp": self.timestamp.isoformat(),
        }
