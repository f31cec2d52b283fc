"""
Client connection abstraction.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Optional

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

logger = logging.getLogger(__name__)


class ConnectionClosed(Exception):
    """Raised by receive_text when the peer has gone away."""

    pass


class Connection(ABC):
    """A live client connection that can receive pushed messages."""

    def __init__(self, connection_id: Optional[str] = None):
        self.connection_id = connection_id or f"client_{uuid.uuid4().hex[:8]}"

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether messages can still be delivered."""

    @abstractmethod
    async def send_json(self, message: dict[str, Any]) -> bool:
        """
        Send a JSON message.

        Returns:
            True if delivered, False if the connection is closed
        """

    @abstractmethod
    async def receive_text(self) -> str:
        """
        Wait for the next inbound frame.

        Raises:
            ConnectionClosed: When the client disconnects
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.connection_id!r})"


class WebSocketConnection(Connection):
    """Connection backed by a FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket, connection_id: Optional[str] = None):
        super().__init__(connection_id)
        self.websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    async def send_json(self, message: dict[str, Any]) -> bool:
        if not self.is_open:
            return False
        try:
            await self.websocket.send_text(json.dumps(message, default=str))
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Send to {self.connection_id} failed: {e}")
            self._closed = True
            return False

    async def receive_text(self) -> str:
        try:
            return await self.websocket.receive_text()
        except (WebSocketDisconnect, RuntimeError) as e:
            self._closed = True
            raise ConnectionClosed(str(e)) from e
