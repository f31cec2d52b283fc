"""
Configuration loading and validation.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

STORAGE_BACKENDS = ("sqlite", "memory")


class ConfigValidationError(Exception):
    """Raised when configuration is invalid."""

    pass


@dataclass
class ServerConfig:
    """HTTP and WebSocket server configuration."""

    host: str = "0.0.0.0"
    port: int = 3001
    websocket_path: str = "/ws"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass
class StorageConfig:
    """Watchlist and history storage configuration."""

    backend: str = "sqlite"
    path: str = "data/stock_tracker.db"


@dataclass
class QuoteProviderConfig:
    """Quote provider (Alpha Vantage) configuration."""

    api_key: str = ""
    base_url: str = "https://www.alphavantage.co/query"
    timeout_seconds: float = 10.0


@dataclass
class BroadcastConfig:
    """Periodic broadcast configuration."""

    interval_seconds: float = 60.0


@dataclass
class AdvancedConfig:
    """Advanced configuration."""

    log_level: str = "INFO"
    default_user_id: int = 1
    history_limit: int = 30


@dataclass
class AppConfig:
    """Main application configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    quote_provider: QuoteProviderConfig = field(default_factory=QuoteProviderConfig)
    broadcast: BroadcastConfig = field(default_factory=BroadcastConfig)
    advanced: AdvancedConfig = field(default_factory=AdvancedConfig)


def _substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in string values."""
    if isinstance(value, str):
        # Match ${VAR_NAME} pattern
        pattern = r"\$\{([^}]+)\}"
        matches = re.findall(pattern, value)
        for var_name in matches:
            env_value = os.environ.get(var_name, "")
            value = value.replace(f"${{{var_name}}}", env_value)
        return value
    elif isinstance(value, dict):
        return {k: _substitute_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_substitute_env_vars(item) for item in value]
    return value


def _validate_config(config_dict: dict[str, Any]) -> None:
    """Validate configuration values."""
    storage = config_dict.get("storage") or {}
    backend = storage.get("backend", "sqlite")
    if backend not in STORAGE_BACKENDS:
        raise ConfigValidationError(
            f"Unknown storage backend: {backend!r} (expected one of {STORAGE_BACKENDS})"
        )

    if backend == "sqlite":
        db_path = storage.get("path", StorageConfig.path)
        if not db_path:
            raise ConfigValidationError("Database path is required")

        parent = Path(db_path).parent
        if parent.exists() and not os.access(parent, os.W_OK):
            raise ConfigValidationError(f"Database path not writable: {parent}")

    server = config_dict.get("server") or {}
    try:
        port = int(server.get("port", ServerConfig.port))
    except (TypeError, ValueError):
        raise ConfigValidationError(f"Invalid server port: {server.get('port')!r}")
    if not 1 <= port <= 65535:
        raise ConfigValidationError(f"Server port out of range: {port}")

    broadcast = config_dict.get("broadcast") or {}
    try:
        interval = float(broadcast.get("interval_seconds", BroadcastConfig.interval_seconds))
    except (TypeError, ValueError):
        raise ConfigValidationError(
            f"Invalid broadcast interval: {broadcast.get('interval_seconds')!r}"
        )
    if interval <= 0:
        raise ConfigValidationError("Broadcast interval must be positive")


def build_config(config_dict: dict[str, Any]) -> AppConfig:
    """
    Build an AppConfig from an already-parsed mapping.

    Environment variables are substituted and the result is validated.

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    config_dict = _substitute_env_vars(config_dict or {})
    _validate_config(config_dict)

    server_dict = dict(config_dict.get("server") or {})
    if "port" in server_dict:
        server_dict["port"] = int(server_dict["port"])
    server = ServerConfig(**server_dict)

    storage = StorageConfig(**(config_dict.get("storage") or {}))

    provider_dict = dict(config_dict.get("quote_provider") or {})
    if "timeout_seconds" in provider_dict:
        provider_dict["timeout_seconds"] = float(provider_dict["timeout_seconds"])
    quote_provider = QuoteProviderConfig(**provider_dict)

    broadcast_dict = dict(config_dict.get("broadcast") or {})
    if "interval_seconds" in broadcast_dict:
        broadcast_dict["interval_seconds"] = float(broadcast_dict["interval_seconds"])
    broadcast = BroadcastConfig(**broadcast_dict)

    advanced = AdvancedConfig(**(config_dict.get("advanced") or {}))

    return AppConfig(
        server=server,
        storage=storage,
        quote_provider=quote_provider,
        broadcast=broadcast,
        advanced=advanced,
    )


def load_config(config_path: str) -> AppConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        AppConfig instance

    Raises:
        ConfigValidationError: If configuration is invalid
        FileNotFoundError: If config file doesn't exist
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        raw_config = yaml.safe_load(f) or {}

    return build_config(raw_config)
