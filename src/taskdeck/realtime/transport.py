# src/taskdeck/realtime/transport.py

from __future__ import annotations

import logging

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK, InvalidStatus, WebSocketException

from ..errors import AuthError, NetworkError, TransportClosed

logger = logging.getLogger(__name__)


class WebSocketConnection:
    """TransportConnection over a `websockets` client connection."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except ConnectionClosed as e:
            raise TransportClosed(f"send on closed socket: {e}", by_server=e.rcvd is not None) from e

    async def recv(self) -> str:
        try:
            frame = await self._ws.recv()
        except ConnectionClosedOK as e:
            # Clean close frame from the server: a session end, not a network failure.
            raise TransportClosed(f"server closed the connection: {e}", by_server=e.rcvd is not None) from e
        except ConnectionClosed as e:
            raise TransportClosed(f"connection dropped: {e}") from e

        if isinstance(frame, bytes):
            return frame.decode("utf-8", errors="replace")
        return frame

    async def close(self) -> None:
        await self._ws.close()


class WebSocketConnector:
    """TransportConnector opening one websocket per connect() call."""

    def __init__(self, *, open_timeout: float = 10.0) -> None:
        self._open_timeout = open_timeout

    async def connect(self, url: str) -> WebSocketConnection:
        try:
            # Reconnection is the ChannelManager's job, not the library's.
            ws = await connect(url, open_timeout=self._open_timeout)
        except InvalidStatus as e:
            status = e.response.status_code
            if status in (401, 403):
                raise AuthError(f"realtime handshake rejected: HTTP {status}") from e
            raise NetworkError(f"realtime handshake failed: HTTP {status}") from e
        except (OSError, TimeoutError, WebSocketException) as e:
            raise NetworkError(f"realtime connect to {url} failed: {e}") from e

        logger.debug("WebSocket connected to %s", url)
        return WebSocketConnection(ws)
