"""A single open WebSocket connection with an ordered outbound queue."""

import asyncio
import contextlib
import uuid

import structlog
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from wsfs.errors import ConnectionLostError

logger = structlog.get_logger()

# Codes the ASGI server reports when no close frame was received.
ABNORMAL_CLOSE_CODES = frozenset({1005, 1006})


class Connection:
    """One live WebSocket to a client.

    Outbound payloads are queued by ``send`` and written by ``pump`` in
    queue order, so a slow client only ever delays itself.

    Attributes:
        id: Identifier used in log records.
    """

    def __init__(self, websocket: WebSocket) -> None:
        """Initialize connection.

        Args:
            websocket: Accepted Starlette WebSocket.
        """
        self.id = str(uuid.uuid4())
        self._websocket = websocket
        self._outbox: asyncio.Queue[str] = asyncio.Queue()

    def send(self, payload: str) -> None:
        """Queue a text payload for delivery."""
        self._outbox.put_nowait(payload)

    async def pump(self) -> None:
        """Write queued payloads until the peer goes away.

        Raises:
            ConnectionLostError: If the transport dropped mid-send.
        """
        while True:
            payload = await self._outbox.get()
            try:
                await self._websocket.send_text(payload)
            except WebSocketDisconnect as e:
                if e.code in ABNORMAL_CLOSE_CODES:
                    raise ConnectionLostError(
                        f"Connection {self.id} dropped while sending",
                        code=e.code,
                    ) from e
                return

    async def receive_until_closed(self) -> None:
        """Read frames until the peer closes the connection.

        Inbound messages carry no meaning and are discarded.

        Raises:
            ConnectionLostError: If the transport dropped without a close frame.
        """
        while True:
            message = await self._websocket.receive()
            if message["type"] != "websocket.disconnect":
                continue
            code = message.get("code")
            if code in ABNORMAL_CLOSE_CODES:
                raise ConnectionLostError(
                    f"Connection {self.id} dropped without a close frame",
                    code=code,
                )
            logger.debug("connection_peer_closed", connection_id=self.id, code=code)
            return

    async def close(self, code: int = 1000) -> None:
        """Close the WebSocket from the server side.

        Args:
            code: WebSocket close code.
        """
        if self._websocket.application_state is not WebSocketState.CONNECTED:
            return
        if self._websocket.client_state is WebSocketState.DISCONNECTED:
            return
        # The peer may have gone away between the state check and the send.
        with contextlib.suppress(RuntimeError, WebSocketDisconnect):
            await self._websocket.close(code=code)
        logger.debug("connection_closed_by_server", connection_id=self.id, code=code)
