"""
Realtime channel message format.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

from stock_tracker.data.models import Quote


class MessageType(Enum):
    """Realtime message types"""

    SUBSCRIBE_STOCK = "SUBSCRIBE_STOCK"
    UNSUBSCRIBE_STOCK = "UNSUBSCRIBE_STOCK"
    STOCK_UPDATE = "STOCK_UPDATE"
    ERROR = "ERROR"


CLIENT_MESSAGE_TYPES = (MessageType.SUBSCRIBE_STOCK, MessageType.UNSUBSCRIBE_STOCK)


class MessageError(ValueError):
    """Raised for inbound frames that cannot be understood."""

    pass


@dataclass(frozen=True)
class ClientMessage:
    """A parsed client request."""

    type: MessageType
    symbol: str


def parse_message(raw: str) -> ClientMessage:
    """
    Parse an inbound frame.

    Args:
        raw: Text frame received from the client

    Returns:
        ClientMessage with an uppercase symbol

    Raises:
        MessageError: If the frame is not a known, well-formed request
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise MessageError("Invalid JSON")

    if not isinstance(data, dict):
        raise MessageError("Message must be a JSON object")

    try:
        message_type = MessageType(data.get("type"))
    except ValueError:
        raise MessageError(f"Unknown message type: {data.get('type')!r}")
    if message_type not in CLIENT_MESSAGE_TYPES:
        raise MessageError(f"Unsupported message type: {message_type.value}")

    symbol = data.get("symbol")
    if not isinstance(symbol, str) or not symbol.strip():
        raise MessageError("Symbol is required")

    return ClientMessage(type=message_type, symbol=symbol.strip().upper())


def stock_update(quote: Quote) -> dict[str, Any]:
    return {"type": MessageType.STOCK_UPDATE.value, "data": quote.to_dict()}


def error(message: str) -> dict[str, Any]:
    return {"type": MessageType.ERROR.value, "message": message}
