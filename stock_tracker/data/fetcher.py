"""
Alpha Vantage quote source with synthetic fallback.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional

import requests

from stock_tracker.config import QuoteProviderConfig
from stock_tracker.database.models import HistorySample
from stock_tracker.database.store import StockStore
from .models import Quote, SOURCE_LIVE
from .synthetic import synthetic_quote

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProviderError(Exception):
    """Raised when the provider response cannot be used."""

    pass


class QuoteSource:
    """
    Resolves current quotes for symbols.

    Never raises for provider problems: a missing API key, network errors,
    rate-limit notices and malformed payloads all fall back to synthetic data.
    Every resolved quote is recorded in the history store.
    """

    def __init__(
        self,
        config: QuoteProviderConfig,
        store: Optional[StockStore] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        """
        Initialize quote source.

        Args:
            config: Provider configuration (API key, URL, timeout)
            store: Store receiving a history sample for every quote
            now: Clock used for timestamps and synthetic buckets
        """
        self.config = config
        self.store = store
        self.now = now

    @property
    def has_api_key(self) -> bool:
        return bool(self.config.api_key)

    async def fetch_quote(self, symbol: str) -> Quote:
        """
        Fetch the current quote for a symbol.

        Args:
            symbol: Stock symbol (e.g., "AAPL")

        Returns:
            Live quote when the provider answers properly, otherwise synthetic
        """
        symbol = symbol.strip().upper()

        if not self.has_api_key:
            logger.debug(f"No API key configured, using synthetic data for {symbol}")
            quote = synthetic_quote(symbol, self.now())
        else:
            try:
                payload = await asyncio.to_thread(self._request_global_quote, symbol)
                quote = self._parse_global_quote(symbol, payload)
            except (requests.RequestException, ProviderError) as e:
                logger.info(f"Using synthetic data for {symbol}: {e}")
                quote = synthetic_quote(symbol, self.now())

        self._record(quote)
        return quote

    def _request_global_quote(self, symbol: str) -> dict[str, Any]:
        """Call the GLOBAL_QUOTE endpoint and return the decoded body."""
        response = requests.get(
            self.config.base_url,
            params={
                "function": "GLOBAL_QUOTE",
                "symbol": symbol,
                "apikey": self.config.api_key,
            },
            timeout=self.config.timeout_seconds,
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError:
            raise ProviderError("Response is not valid JSON")

        if not isinstance(payload, dict):
            raise ProviderError("Unexpected response shape")
        return payload

    def _parse_global_quote(self, symbol: str, payload: dict[str, Any]) -> Quote:
        """
        Build a live Quote from a GLOBAL_QUOTE payload.

        Raises:
            ProviderError: On rate-limit notices or missing/invalid fields
        """
        if "Note" in payload or "Information" in payload:
            raise ProviderError("Rate limit reached or informational notice returned")

        data = payload.get("Global Quote")
        if not data:
            raise ProviderError("Response has no Global Quote")

        try:
            price = float(data["05. price"])
            change = float(data["09. change"])
            change_percent = float(str(data["10. change percent"]).rstrip("%"))
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderError(f"Malformed Global Quote: {e}")

        return Quote(
            symbol=str(data.get("01. symbol") or symbol).upper(),
            price=price,
            change=change,
            change_percent=change_percent,
            timestamp=self.now(),
            source=SOURCE_LIVE,
            raw=dict(data),
        )

    def _record(self, quote: Quote) -> None:
        """Append the quote to history; failures are logged only."""
        if self.store is None:
            return

        sample = HistorySample(
            symbol=quote.symbol,
            price=quote.price,
            change_amount=quote.change,
            change_percent=quote.change_percent,
            timestamp=quote.timestamp,
        )
        try:
            self.store.append_history(sample)
        except Exception as e:
            logger.error(f"Failed to store history for {quote.symbol}: {e}")
