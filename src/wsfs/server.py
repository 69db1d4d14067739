"""Server lifecycle: start-up ordering, shutdown ordering, the public handle."""

import asyncio
from types import TracebackType
from typing import Any

import structlog

from wsfs.acceptor import ConnectionAcceptor
from wsfs.config import ServerConfig, WatchFailureMode
from wsfs.errors import SetupError, WatchError
from wsfs.events.dispatcher import Dispatcher
from wsfs.events.types import ErrorEvent, FsChangeEvent, FsEvent, StartEvent, StopEvent
from wsfs.events.watcher import FilesystemWatcher
from wsfs.lifecycle import ServerState, ShutdownGuard

logger = structlog.get_logger()


class ServerHandle:
    """A running file-watching WebSocket server.

    Created by ``start``. The owner must call ``close`` exactly once; every
    later call raises ``AlreadyClosedError``. The handle can also be used
    as an async context manager, which closes it on exit.

    Attributes:
        config: Complete server options.
        url: WebSocket URL clients connect to.
    """

    def __init__(self, config: ServerConfig) -> None:
        """Initialize handle in the starting state.

        Args:
            config: Complete server options.
        """
        self.config = config
        self._state = ServerState.NOT_STARTED
        self._dispatcher = Dispatcher(config.sink)
        self._acceptor = ConnectionAcceptor(config, self._dispatcher)
        self._watcher: FilesystemWatcher | None = None
        self._guard = ShutdownGuard(self._shutdown, name="server")
        self._stopped = asyncio.Event()
        self._state = ServerState.STARTING

    @property
    def url(self) -> str:
        """WebSocket URL clients connect to."""
        return self.config.url

    @property
    def options(self) -> ServerConfig:
        """Alias of ``config``."""
        return self.config

    @property
    def state(self) -> ServerState:
        """Current lifecycle state."""
        return self._state

    @property
    def connection_count(self) -> int:
        """Number of open client connections."""
        return self._acceptor.connection_count

    @property
    def watching(self) -> bool:
        """Whether filesystem events are being observed."""
        return self._watcher is not None and not self._watcher.closed

    async def _start(self) -> None:
        loop = asyncio.get_running_loop()
        watcher = FilesystemWatcher(
            loop,
            self._on_change,
            join_timeout=self.config.shutdown_timeout,
        )
        try:
            watcher.start(self.config.path)
        except WatchError as e:
            await watcher.close()
            if self.config.watch_failure is WatchFailureMode.FAIL_FAST:
                self._state = ServerState.STOPPED
                raise
            logger.warning("watcher_degraded", path=self.config.path, error=str(e))
            try:
                self._dispatcher.dispatch(ErrorEvent(error=e))
            except Exception:
                self._state = ServerState.STOPPED
                raise
        else:
            self._watcher = watcher

        try:
            await self._acceptor.listen()
        except SetupError:
            if self._watcher is not None:
                await self._watcher.close()
            self._state = ServerState.STOPPED
            raise

        self._state = ServerState.RUNNING
        logger.info("server_started", url=self.url, path=self.config.path)
        try:
            self._dispatcher.dispatch(StartEvent(url=self.url))
        except Exception:
            self._dispatcher.seal()
            await self.close()
            raise

    def _on_change(self, change: FsChangeEvent) -> None:
        if self._state is not ServerState.RUNNING:
            return
        self._dispatcher.publish(FsEvent.from_change(change))
        self._acceptor.send(change)

    async def close(self) -> None:
        """Close all connections, stop listening, stop watching.

        Raises:
            AlreadyClosedError: If called more than once.
        """
        await self._guard.run()

    async def _shutdown(self) -> None:
        self._state = ServerState.STOPPING
        logger.info("server_stopping", active_connections=self.connection_count)
        try:
            try:
                await self._acceptor.close()
            finally:
                if self._watcher is not None:
                    await self._watcher.close()
                self._state = ServerState.STOPPED
                self._stopped.set()
            self._dispatcher.dispatch(StopEvent())
        finally:
            self._dispatcher.seal()
            logger.info("server_stopped", url=self.url)

    async def wait_closed(self) -> None:
        """Wait until the server stops or a background sink fails.

        Raises:
            Exception: The sink failure recorded by the dispatcher.
        """
        stopped = asyncio.create_task(self._stopped.wait())
        failed = asyncio.create_task(self._dispatcher.wait_failed())
        try:
            await asyncio.wait({stopped, failed}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (stopped, failed):
                task.cancel()
            await asyncio.gather(stopped, failed, return_exceptions=True)

        if self._dispatcher.fatal_error is not None:
            raise self._dispatcher.fatal_error

    async def __aenter__(self) -> "ServerHandle":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if not self._guard.has_run:
            await self.close()


async def start(config: ServerConfig | None = None, **options: Any) -> ServerHandle:
    """Start the file watcher and the WebSocket server.

    Options may be given as a ``ServerConfig`` or as keyword arguments
    (``hostname``/``host``, ``port``, ``path``, ``handle``/``sink``, ...);
    keywords override fields of ``config``.

    Args:
        config: Server options. Defaults apply for anything unset.
        **options: Individual option overrides.

    Returns:
        Handle of the running server.

    Raises:
        WatchError: If the watch fails and ``watch_failure`` is ``fail_fast``.
        BindError: If the listener cannot be bound.
    """
    if config is None:
        config = ServerConfig(**options)
    elif options:
        merged = {name: getattr(config, name) for name in ServerConfig.model_fields}
        if "hostname" in options:
            merged.pop("host")
        if "handle" in options:
            merged.pop("sink")
        config = ServerConfig(**{**merged, **options})

    server = ServerHandle(config)
    await server._start()
    return server

