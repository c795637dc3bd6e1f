"""
WebSocket transport for the DevTools endpoint.

Wraps a ``websockets`` client connection behind ``BaseTransport`` so the
dispatch core only sees text frames and cdpwire exceptions.
"""

from __future__ import annotations

import logging
from typing import Optional

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import ConnectionClosed as WebSocketClosed
from websockets.exceptions import WebSocketException
from websockets.protocol import State

from cdpwire.config.options import TransportOptions
from cdpwire.exceptions import ConnectionClosed, MalformedMessage, TransportError
from cdpwire.interfaces import BaseTransport

logger = logging.getLogger(__name__)


def _close_reason(exc: WebSocketClosed) -> str:
    frame = exc.rcvd or exc.sent
    if frame is None:
        return "WebSocket closed without a close frame"
    if frame.reason:
        return f"WebSocket closed ({frame.code}: {frame.reason})"
    return f"WebSocket closed ({frame.code})"


class WebSocketTransport(BaseTransport):
    """Text-frame transport over a WebSocket.

    Example:
        transport = await WebSocketTransport.connect(
            "ws://localhost:9222/devtools/browser/xxx"
        )
        await transport.send('{"id":1,"method":"Browser.getVersion"}')
        print(await transport.recv())
        await transport.close()
    """

    def __init__(self, ws: ClientConnection, *, ws_url: str = "") -> None:
        self._ws = ws
        self._ws_url = ws_url

    @classmethod
    async def connect(
        cls,
        ws_url: str,
        options: Optional[TransportOptions] = None,
    ) -> "WebSocketTransport":
        """Open a WebSocket to ``ws_url``.

        Raises:
            TransportError: If the handshake fails.
        """
        options = options or TransportOptions()
        logger.debug(f"Connecting to CDP: {ws_url}")
        try:
            ws = await connect(
                ws_url,
                max_size=options.max_message_size,
                ping_interval=options.ping_interval,
                ping_timeout=options.ping_timeout,
                open_timeout=options.open_timeout,
                close_timeout=options.close_timeout,
            )
        except (OSError, TimeoutError, WebSocketException) as e:
            raise TransportError(f"Failed to connect to {ws_url}: {e}") from e
        logger.debug("CDP connection established")
        return cls(ws, ws_url=ws_url)

    @property
    def ws_url(self) -> str:
        return self._ws_url

    @property
    def is_open(self) -> bool:
        return self._ws.state is State.OPEN

    async def send(self, text: str) -> None:
        try:
            await self._ws.send(text)
        except WebSocketClosed as e:
            raise ConnectionClosed(_close_reason(e)) from e
        except OSError as e:
            raise TransportError(f"WebSocket write failed: {e}") from e

    async def recv(self) -> str:
        try:
            frame = await self._ws.recv()
        except WebSocketClosed as e:
            raise ConnectionClosed(_close_reason(e)) from e
        except OSError as e:
            raise TransportError(f"WebSocket read failed: {e}") from e

        if isinstance(frame, bytes):
            try:
                return frame.decode("utf-8")
            except UnicodeDecodeError as e:
                raise MalformedMessage(f"binary frame is not valid UTF-8: {e}", frame) from e
        return frame

    async def close(self) -> None:
        await self._ws.close()

    def __repr__(self) -> str:
        return f"WebSocketTransport({self._ws_url!r}, open={self.is_open})"


__all__ = ["WebSocketTransport"]
