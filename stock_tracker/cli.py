"""
CLI commands for Stock Tracker.
"""

import argparse
import asyncio

from dotenv import load_dotenv

load_dotenv()

from stock_tracker.config import AppConfig
from stock_tracker.data.fetcher import QuoteSource
from stock_tracker.data.models import Quote
from stock_tracker.database.models import HistorySample
from stock_tracker.database.store import StockStore, create_store
from stock_tracker.main import resolve_config


def parse_symbols(value: str) -> list[str]:
    """Split a comma-separated symbol list, dropping blanks."""
    return [s.strip().upper() for s in value.split(",") if s.strip()]


def add_to_watchlist(store: StockStore, user_id: int, symbols: list[str]) -> dict:
    """Add symbols to user's watchlist."""
    existing = set(store.get_watchlist(user_id))

    added = []
    skipped = []
    for symbol in symbols:
        if symbol in existing:
            skipped.append(symbol)
            continue
        store.add_to_watchlist(user_id, symbol)
        existing.add(symbol)
        added.append(symbol)

    return {"added": added, "already_present": skipped}


def remove_from_watchlist(store: StockStore, user_id: int, symbols: list[str]) -> dict:
    """Remove symbols from user's watchlist."""
    existing = set(store.get_watchlist(user_id))

    removed = []
    not_found = []
    for symbol in symbols:
        if symbol not in existing:
            not_found.append(symbol)
            continue
        store.remove_from_watchlist(user_id, symbol)
        removed.append(symbol)

    return {"removed": removed, "not_found": not_found}


def get_quote(config: AppConfig, store: StockStore, symbol: str) -> Quote:
    """Resolve one quote, recording it in history."""
    source = QuoteSource(config.quote_provider, store=store)
    return asyncio.run(source.fetch_quote(symbol))


def get_history(store: StockStore, symbol: str, limit: int) -> list[HistorySample]:
    """Recent history for a symbol."""
    return store.get_history(symbol.upper(), limit)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Stock Tracker CLI")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")

    subparsers = parser.add_subparsers(dest="command", help="Command")

    # Watchlist commands
    watchlist_parser = subparsers.add_parser("watchlist", help="Watchlist management")
    watchlist_subparsers = watchlist_parser.add_subparsers(dest="action")

    add_parser = watchlist_subparsers.add_parser("add", help="Add to watchlist")
    add_parser.add_argument("--symbols", required=True, help="Comma-separated symbols")

    remove_parser = watchlist_subparsers.add_parser("remove", help="Remove from watchlist")
    remove_parser.add_argument("--symbols", required=True, help="Comma-separated symbols")

    watchlist_subparsers.add_parser("show", help="Show watchlist")

    # Quote commands
    quote_parser = subparsers.add_parser("quote", help="Fetch a current quote")
    quote_parser.add_argument("symbol", help="Stock symbol")

    history_parser = subparsers.add_parser("history", help="Show recorded quotes")
    history_parser.add_argument("symbol", help="Stock symbol")
    history_parser.add_argument("--limit", type=int, help="Number of samples")

    args = parser.parse_args()

    config = resolve_config(args.config)
    store = create_store(config.storage)
    user_id = config.advanced.default_user_id

    # Handle commands
    if args.command == "watchlist":
        if args.action == "add":
            result = add_to_watchlist(store, user_id, parse_symbols(args.symbols))
            print(f"Added: {result['added']}")
            if result["already_present"]:
                print(f"Already present: {result['already_present']}")
        elif args.action == "remove":
            result = remove_from_watchlist(store, user_id, parse_symbols(args.symbols))
            print(f"Removed: {result['removed']}")
            if result["not_found"]:
                print(f"Not found: {result['not_found']}")
        elif args.action == "show":
            for symbol in store.get_watchlist(user_id):
                print(symbol)

    elif args.command == "quote":
        quote = get_quote(config, store, args.symbol)
        print(
            f"{quote.symbol}: ${quote.price:.2f} "
            f"({quote.change:+.2f}, {quote.change_percent:+.2f}%) [{quote.source}]"
        )

    elif args.command == "history":
        limit = args.limit or config.advanced.history_limit
        for sample in get_history(store, args.symbol, limit):
            print(
                f"{sample.timestamp.isoformat()} {sample.symbol}: "
                f"${sample.price:.2f} ({sample.change_percent:+.2f}%)"
            )

    else:
        parser.print_help()

    store.close()


if __name__ == "__main__":
    main()
