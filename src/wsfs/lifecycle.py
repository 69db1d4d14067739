"""Lifecycle primitives: server states, run-once guard, signal-driven shutdown."""
import asyncio
import threading
from collections.abc import Awaitable, Callable
from enum import Enum

import structlog

from wsfs.errors import AlreadyClosedError

logger = structlog.get_logger()


class ServerState(str, Enum):
    """States a server passes through, in order."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ShutdownGuard:
    """Runs an async shutdown operation at most once.

    The has-run flag is checked and set under a lock before the operation
    is awaited, so among racing callers exactly one runs the operation and
    every other one raises.

    Attributes:
        has_run: Whether the operation was already claimed.
    """

    def __init__(
        self,
        operation: Callable[[], Awaitable[None]],
        name: str = "shutdown",
    ) -> None:
        """Initialize guard.

        Args:
            operation: Coroutine function performing the shutdown.
            name: Label used in error messages and logs.
        """
        self._operation = operation
        self._name = name
        self._has_run = False
        self._lock = threading.Lock()

    @property
    def has_run(self) -> bool:
        """Whether the guarded operation was already claimed."""
        return self._has_run

    async def run(self) -> None:
        """Execute the guarded operation.

        Raises:
            AlreadyClosedError: On every call after the first.
        """
        with self._lock:
            if self._has_run:
                raise AlreadyClosedError(f"{self._name} has already run")
            self._has_run = True

        logger.debug("shutdown_guard_claimed", name=self._name)
        await self._operation()


class GracefulShutdown:
    """Latch flipped by SIGTERM/SIGINT and awaited by the serving task.

    Attributes:
        signal_name: Name of the signal that fired, if any.
    """

    def __init__(self) -> None:
        self._fired = asyncio.Event()
        self.signal_name: str | None = None

    @property
    def is_triggered(self) -> bool:
        """Whether a shutdown request was received."""
        return self._fired.is_set()

    def trigger(self, signal_name: str | None = None) -> None:
        """Request shutdown. Repeated requests are ignored.

        Args:
            signal_name: Signal that caused the request, for the log.
        """
        if self._fired.is_set():
            logger.debug("shutdown_already_requested", signal=signal_name)
            return
        self.signal_name = signal_name
        logger.info("shutdown_requested", signal=signal_name)
        self._fired.set()

    async def wait_for_trigger(self) -> None:
        """Block until shutdown is requested."""
        await self._fired.wait()

