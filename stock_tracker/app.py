"""
HTTP and WebSocket application.

``create_app`` is the composition root: it builds the store, quote source,
subscription registry, gateway and scheduler once and shares them through
``app.state``.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Query, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from stock_tracker.config import AppConfig
from stock_tracker.data.fetcher import QuoteSource
from stock_tracker.database.store import StockStore, create_store
from stock_tracker.realtime.connection import WebSocketConnection
from stock_tracker.realtime.gateway import ConnectionGateway
from stock_tracker.realtime.registry import SubscriptionRegistry
from stock_tracker.realtime.scheduler import BroadcastScheduler

logger = logging.getLogger(__name__)


class WatchlistRequest(BaseModel):
    symbol: Optional[str] = None


def symbol_required() -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "Symbol is required"})


def create_app(
    config: Optional[AppConfig] = None,
    store: Optional[StockStore] = None,
    quote_source: Optional[QuoteSource] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Application configuration, defaults to AppConfig()
        store: Storage backend, created from config when omitted
        quote_source: Quote source, created from config when omitted

    Returns:
        Configured FastAPI app
    """
    config = config or AppConfig()
    store = store or create_store(config.storage)
    quote_source = quote_source or QuoteSource(config.quote_provider, store=store)

    registry = SubscriptionRegistry()
    gateway = ConnectionGateway(registry, quote_source)
    scheduler = BroadcastScheduler(
        registry,
        quote_source,
        interval_seconds=config.broadcast.interval_seconds,
    )
    user_id = config.advanced.default_user_id

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if not quote_source.has_api_key:
            logger.warning("No quote provider API key configured, serving synthetic data")
        scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            registry.clear()
            store.close()

    app = FastAPI(title="Stock Tracker API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.store = store
    app.state.quote_source = quote_source
    app.state.registry = registry
    app.state.gateway = gateway
    app.state.scheduler = scheduler

    @app.get("/api/stocks/{symbol}")
    async def get_stock(symbol: str):
        """Current quote in the provider's GLOBAL_QUOTE shape."""
        symbol = symbol.strip().upper()
        if not symbol:
            return symbol_required()

        quote = await quote_source.fetch_quote(symbol)
        return quote.to_global_quote()

    @app.get("/api/history/{symbol}")
    async def get_history(
        symbol: str,
        limit: int = Query(config.advanced.history_limit, ge=1),
    ):
        symbol = symbol.strip().upper()
        if not symbol:
            return symbol_required()

        samples = store.get_history(symbol, limit)
        return [sample.to_dict() for sample in samples]

    @app.get("/api/watchlist")
    async def get_watchlist():
        return [{"symbol": symbol} for symbol in store.get_watchlist(user_id)]

    @app.post("/api/watchlist")
    async def add_to_watchlist(body: WatchlistRequest):
        symbol = (body.symbol or "").strip().upper()
        if not symbol:
            return symbol_required()

        store.add_to_watchlist(user_id, symbol)
        logger.info(f"Added {symbol} to watchlist of user {user_id}")
        return {"success": True}

    @app.delete("/api/watchlist/{symbol}")
    async def remove_from_watchlist(symbol: str):
        symbol = symbol.strip().upper()
        if not symbol:
            return symbol_required()

        store.remove_from_watchlist(user_id, symbol)
        logger.info(f"Removed {symbol} from watchlist of user {user_id}")
        return {"success": True}

    @app.get("/api/health")
    async def health():
        return {
            "status": "ok",
            "time": datetime.now(timezone.utc).isoformat(),
            "storage": store.name,
            "subscriptions": len(registry),
            "live_quotes": quote_source.has_api_key,
        }

    @app.websocket(config.server.websocket_path)
    async def stock_updates(websocket: WebSocket):
        await websocket.accept()
        await gateway.serve(WebSocketConnection(websocket))

    return app
