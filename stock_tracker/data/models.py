"""
Quote data model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

SOURCE_LIVE = "live"
SOURCE_SYNTHETIC = "synthetic"


@dataclass
class Quote:
    """A single price observation for a symbol."""

    symbol: str
    price: float
    change: float
    change_percent: float
    timestamp: datetime
    source: str = SOURCE_SYNTHETIC
    raw: Optional[dict[str, Any]] = field(default=None, repr=False)

    @property
    def is_live(self) -> bool:
        return self.source == SOURCE_LIVE

    def to_dict(self) -> dict[str, Any]:
        """Payload used in realtime STOCK_UPDATE messages."""
        return {
            "symbol": self.symbol,
            "price": self.price,
            "change": self.change,
            "changePercent": self.change_percent,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_global_quote(self) -> dict[str, Any]:
        """
        Render the quote in the provider's GLOBAL_QUOTE shape.

        Live quotes return the provider's own fields untouched.
        """
        if self.raw:
            return {"Global Quote": dict(self.raw)}

        return {
            "Global Quote": {
                "01. symbol": self.symbol,
                "05. price": f"{self.price:.2f}",
                "09. change": f"{self.change:.2f}",
                "10. change percent": f"{self.change_percent:.2f}%",
            }
        }
