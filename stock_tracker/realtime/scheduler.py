"""
Periodic quote broadcasting to subscribed connections.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from stock_tracker.data.fetcher import QuoteSource
from .messages import stock_update
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class BroadcastScheduler:
    """
    Pushes a fresh quote for every subscribed symbol on a fixed interval.

    One quote is fetched per symbol per tick and sent to each open
    subscriber. Closed connections are skipped here; they are removed from
    the registry when their receive loop ends.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        quote_source: QuoteSource,
        interval_seconds: float = 60.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize scheduler.

        Args:
            registry: Subscription registry to read from
            quote_source: Source of fresh quotes
            interval_seconds: Seconds between broadcasts
            sleep: Awaitable sleep, replaceable in tests
        """
        self.registry = registry
        self.quote_source = quote_source
        self.interval_seconds = interval_seconds
        self.sleep = sleep
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """
        Run one broadcast pass.

        Returns:
            Number of messages delivered
        """
        delivered = 0

        for symbol in self.registry.symbols():
            subscribers = self.registry.subscribers_of(symbol)
            if not subscribers:
                continue

            try:
                quote = await self.quote_source.fetch_quote(symbol)
            except Exception as e:
                logger.error(f"Error fetching quote for {symbol}: {e}")
                continue

            message = stock_update(quote)
            for conn in subscribers:
                if not conn.is_open:
                    continue
                try:
                    sent = await conn.send_json(message)
                except Exception as e:
                    logger.warning(f"Error sending {symbol} update to {conn!r}: {e}")
                    continue
                if sent:
                    delivered += 1

        logger.debug(f"Broadcast tick delivered {delivered} updates")
        return delivered

    async def run(self) -> None:
        """Broadcast forever, one tick per interval."""
        while True:
            await self.sleep(self.interval_seconds)
            try:
                await self.tick()
            except Exception as e:
                logger.error(f"Broadcast tick failed: {e}")

    def start(self) -> None:
        """Start the broadcast loop on the running event loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self.run())
        logger.info(f"Broadcast scheduler started (every {self.interval_seconds:g}s)")

    async def stop(self) -> None:
        """Stop the broadcast loop."""
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Broadcast scheduler stopped")
