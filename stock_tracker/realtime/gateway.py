"""
Connection gateway: handles client requests on the realtime channel.
"""

import logging

from stock_tracker.data.fetcher import QuoteSource
from .connection import Connection, ConnectionClosed
from .messages import MessageError, MessageType, error, parse_message, stock_update
from .registry import SubscriptionRegistry

logger = logging.getLogger(__name__)


class ConnectionGateway:
    """Routes subscribe/unsubscribe requests and cleans up on disconnect."""

    def __init__(self, registry: SubscriptionRegistry, quote_source: QuoteSource):
        self.registry = registry
        self.quote_source = quote_source

    async def serve(self, conn: Connection) -> None:
        """
        Handle a connection until it closes.

        Messages are processed one at a time, in arrival order.
        """
        logger.info(f"Client {conn.connection_id} connected")
        try:
            while True:
                try:
                    raw = await conn.receive_text()
                except ConnectionClosed:
                    break
                await self.handle_message(conn, raw)
        finally:
            self.disconnect(conn)

    async def handle_message(self, conn: Connection, raw: str) -> None:
        """Process one inbound frame. Bad input never closes the connection."""
        try:
            message = parse_message(raw)
        except MessageError as e:
            logger.warning(f"Ignoring malformed message from {conn.connection_id}: {e}")
            await conn.send_json(error(str(e)))
            return

        if message.type == MessageType.SUBSCRIBE_STOCK:
            await self.subscribe(conn, message.symbol)
        elif message.type == MessageType.UNSUBSCRIBE_STOCK:
            self.unsubscribe(conn, message.symbol)

    async def subscribe(self, conn: Connection, symbol: str) -> None:
        """Subscribe and push one quote straight away."""
        self.registry.subscribe(symbol, conn)
        logger.info(f"Client {conn.connection_id} subscribed to {symbol}")

        quote = await self.quote_source.fetch_quote(symbol)
        await conn.send_json(stock_update(quote))

    def unsubscribe(self, conn: Connection, symbol: str) -> None:
        if self.registry.unsubscribe(symbol, conn):
            logger.info(f"Client {conn.connection_id} unsubscribed from {symbol}")

    def disconnect(self, conn: Connection) -> None:
        symbols = self.registry.remove_connection(conn)
        logger.info(
            f"Client {conn.connection_id} disconnected"
            + (f", dropped {', '.join(symbols)}" if symbols else "")
        )
