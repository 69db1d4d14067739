"""WebSocket acceptor: handshake, connection tracking and broadcast."""

import asyncio
import contextlib
import socket
from collections.abc import Iterator

import structlog
import uvicorn
from starlette.websockets import WebSocket

from wsfs.app import create_app
from wsfs.config import ServerConfig
from wsfs.connection import Connection
from wsfs.errors import (
    BindError,
    ConnectionLostError,
    HandshakeError,
    ServerClosedError,
)
from wsfs.events.dispatcher import Dispatcher
from wsfs.events.types import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    FsChangeEvent,
)
from wsfs.lifecycle import ShutdownGuard
from wsfs.registry import ConnectionRegistry

logger = structlog.get_logger()

GOING_AWAY = 1001
INTERNAL_ERROR = 1011


class EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the host process."""

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield

    def install_signal_handlers(self) -> None:
        pass


class ConnectionAcceptor:
    """Accepts WebSocket clients and fans payloads out to them.

    Runs an embedded uvicorn server for the FastAPI app built by
    ``create_app``. Every accepted connection is tracked in the registry
    for exactly as long as it is open, and each one runs isolated from
    the others.

    Attributes:
        app: FastAPI application serving the WebSocket endpoint.
    """

    def __init__(
        self,
        config: ServerConfig,
        dispatcher: Dispatcher,
        registry: ConnectionRegistry | None = None,
    ) -> None:
        """Initialize acceptor.

        Args:
            config: Server options; host, port and timeouts are used.
            dispatcher: Destination for connection lifecycle events.
            registry: Connection registry, a new one if None.
        """
        self._config = config
        self._dispatcher = dispatcher
        self._registry = registry if registry is not None else ConnectionRegistry()
        self._guard = ShutdownGuard(self._shutdown, name="acceptor")
        self._server: EmbeddedServer | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._socket: socket.socket | None = None
        self.app = create_app(self)

    @property
    def url(self) -> str:
        """WebSocket URL of this acceptor."""
        return self._config.url

    @property
    def connection_count(self) -> int:
        """Number of open connections."""
        return self._registry.size()

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._guard.has_run

    async def listen(self) -> None:
        """Bind the endpoint and start accepting connections.

        Returns once the embedded server reports it has started.

        Raises:
            BindError: If the address cannot be bound or the server exits
                during start-up.
        """
        host, port = self._config.host, self._config.port
        try:
            sock = socket.create_server((host, port))
        except OSError as e:
            raise BindError(f"Cannot bind {host}:{port}: {e}", path=f"{host}:{port}") from e

        uv_config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            ws=self._config.ws_protocol,
            lifespan="on",
            log_config=None,
            log_level="warning",
            access_log=False,
            timeout_graceful_shutdown=self._config.shutdown_timeout,
        )
        server = EmbeddedServer(uv_config)
        self._socket = sock
        self._server = server
        self._serve_task = asyncio.create_task(server.serve(sockets=[sock]))

        while not server.started:
            if self._serve_task.done():
                sock.close()
                cause = None if self._serve_task.cancelled() else self._serve_task.exception()
                raise BindError(
                    f"Listener on {host}:{port} exited during start-up",
                    path=f"{host}:{port}",
                ) from cause
            await asyncio.sleep(0.01)

        logger.info("acceptor_listening", url=self.url)

    async def handle(self, websocket: WebSocket) -> None:
        """Run the full lifecycle of one inbound WebSocket.

        Args:
            websocket: Connection as delivered by the ASGI server.
        """
        try:
            await websocket.accept()
        except Exception as e:
            self.reject(HandshakeError(f"WebSocket handshake failed: {e}"))
            return

        connection = Connection(websocket)
        if self.closed:
            await connection.close(code=GOING_AWAY)
            return

        self._registry.add(connection)
        count = self._registry.size()
        logger.info(
            "connection_opened",
            connection_id=connection.id,
            active_connections=count,
        )
        self._dispatcher.publish(ConnectEvent(count=count))

        failure: Exception | None = None
        reader = asyncio.create_task(connection.receive_until_closed())
        writer = asyncio.create_task(connection.pump())
        try:
            done, _ = await asyncio.wait(
                {reader, writer},
                return_when=asyncio.FIRST_COMPLETED,
            )
            for task in done:
                exc = None if task.cancelled() else task.exception()
                if isinstance(exc, Exception):
                    failure = exc
        finally:
            self._registry.remove(connection)
            for task in (reader, writer):
                task.cancel()
            await asyncio.gather(reader, writer, return_exceptions=True)

        if isinstance(failure, ConnectionLostError) and self.closed:
            # Dropped while the server was closing it.
            failure = None

        if failure is not None:
            await connection.close(code=INTERNAL_ERROR)
            logger.warning(
                "connection_failed",
                connection_id=connection.id,
                error=str(failure),
            )
            self._dispatcher.publish(ErrorEvent(error=failure))
            return

        if self.closed:
            return

        count = self._registry.size()
        logger.info(
            "connection_closed",
            connection_id=connection.id,
            active_connections=count,
        )
        self._dispatcher.publish(DisconnectEvent(count=count))

    def reject(self, error: HandshakeError) -> None:
        """Report a request that could not become a WebSocket.

        Args:
            error: Description of the failed upgrade.
        """
        logger.warning("handshake_rejected", error=str(error))
        self._dispatcher.publish(ErrorEvent(error=error))

    def send(self, change: FsChangeEvent) -> None:
        """Broadcast a change event to every open connection.

        Args:
            change: Filesystem change to serialize and send.

        Raises:
            ServerClosedError: If the acceptor was already closed.
        """
        if self.closed:
            raise ServerClosedError("Server is already closed")

        payload = change.model_dump_json()
        connections = self._registry.snapshot()
        for connection in connections:
            connection.send(payload)
        logger.debug("change_broadcast", kind=change.kind.value, delivered_to=len(connections))

    async def close(self) -> None:
        """Close every connection, then stop accepting new ones.

        Raises:
            AlreadyClosedError: If called more than once.
        """
        await self._guard.run()

    async def _shutdown(self) -> None:
        connections = self._registry.snapshot()
        logger.info("acceptor_closing", active_connections=len(connections))

        # Connections go first; closing the listener while sockets are
        # still open can fail with bad-resource errors.
        results = await asyncio.gather(
            *(connection.close(code=GOING_AWAY) for connection in connections),
            return_exceptions=True,
        )
        for connection, result in zip(connections, results):
            if isinstance(result, Exception):
                logger.warning(
                    "connection_close_failed",
                    connection_id=connection.id,
                    error=str(result),
                )

        if self._server is not None and self._serve_task is not None:
            self._server.should_exit = True
            try:
                await asyncio.wait_for(
                    self._serve_task,
                    timeout=self._config.shutdown_timeout,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "acceptor_shutdown_timeout",
                    timeout_seconds=self._config.shutdown_timeout,
                )
            self._server = None
            self._serve_task = None

        if self._socket is not None:
            self._socket.close()
            self._socket = None

        logger.info("acceptor_closed")
