"""
Main application entry point.
"""

import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import uvicorn

from stock_tracker.app import create_app
from stock_tracker.config import AppConfig, load_config

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str, debug: bool = False) -> None:
    """Configure root logging for the process."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)


def resolve_config(config_path: str) -> AppConfig:
    """Load the config file, or fall back to defaults when it is absent."""
    if not Path(config_path).exists():
        logger.warning(f"Configuration file {config_path} not found, using defaults")
        return AppConfig()
    return load_config(config_path)


def main():
    """CLI entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="Stock Tracker Server")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to config file"
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")
    parser.add_argument("--host", help="Override server host")
    parser.add_argument("--port", type=int, help="Override server port")

    args = parser.parse_args()

    config = resolve_config(args.config)
    setup_logging(config.advanced.log_level, debug=args.debug)

    if args.host:
        config.server.host = args.host
    if args.port:
        config.server.port = args.port

    app = create_app(config)

    logger.info(
        f"Starting server on {config.server.host}:{config.server.port} "
        f"(websocket path {config.server.websocket_path})"
    )
    uvicorn.run(
        app,
        host=config.server.host,
        port=config.server.port,
        log_level="debug" if args.debug else config.advanced.log_level.lower(),
    )


if __name__ == "__main__":
    main()
