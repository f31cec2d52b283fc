"""
Deterministic synthetic quotes.

Used whenever the live provider is unavailable. Values depend only on the
symbol and the current five-minute window, so every caller inside the same
window sees the same numbers.
"""

import math
from datetime import datetime, timezone
from typing import Optional

from .models import Quote, SOURCE_SYNTHETIC

BUCKET_MS = 5 * 60 * 1000
MIN_BASE_PRICE = 50
BASE_PRICE_SPAN = 950
MAX_FLUCTUATION = 0.02


def symbol_hash(symbol: str) -> int:
    """Fold the symbol's characters into a signed 32-bit hash."""
    h = 0
    for char in symbol:
        h = ((h << 5) - h + ord(char)) & 0xFFFFFFFF
        if h >= 0x80000000:
            h -= 0x100000000
    return h


def base_price(symbol: str) -> int:
    """Stable base price in [50, 1000)."""
    return MIN_BASE_PRICE + abs(symbol_hash(symbol)) % BASE_PRICE_SPAN


def time_bucket(now: datetime) -> int:
    """Index of the five-minute window containing ``now``."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    epoch_ms = int(now.timestamp() * 1000)
    return epoch_ms // BUCKET_MS


def fluctuation(now: datetime) -> float:
    """Relative move for the window, at most +/-2%."""
    return math.sin(time_bucket(now)) * MAX_FLUCTUATION


def synthetic_quote(symbol: str, now: Optional[datetime] = None) -> Quote:
    """
    Generate a synthetic quote.

    Args:
        symbol: Stock symbol (normalized to uppercase)
        now: Observation time, defaults to the current UTC time

    Returns:
        Quote with source "synthetic"
    """
    if now is None:
        now = datetime.now(timezone.utc)

    symbol = symbol.upper()
    base = base_price(symbol)
    move = fluctuation(now)

    return Quote(
        symbol=symbol,
        price=base * (1 + move),
        change=base * move,
        change_percent=move * 100,
        timestamp=now,
        source=SOURCE_SYNTHETIC,
    )
