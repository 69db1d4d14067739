"""Single funnel between event producers and the user-supplied sink."""
import asyncio
from collections.abc import Callable

import structlog

from wsfs.events.types import ErrorEvent, LifecycleEvent

logger = structlog.get_logger()

Sink = Callable[[LifecycleEvent], None]


def default_sink(event: LifecycleEvent) -> None:
    """Sink used when the caller supplies none.

    Raises:
        Exception: The error carried by an ``ErrorEvent``.
    """
    if isinstance(event, ErrorEvent):
        raise event.error


class Dispatcher:
    """Delivers lifecycle events to the sink in call order.

    Producers running in the foreground (start-up, shutdown) use
    ``dispatch`` and see sink exceptions directly. Background activities
    use ``publish``; a sink exception raised there cannot reach a caller,
    so it is recorded as the dispatcher's fatal error instead.

    Attributes:
        fatal_error: First sink exception raised from a background activity.
    """

    def __init__(self, sink: Sink) -> None:
        """Initialize dispatcher.

        Args:
            sink: Callable receiving every lifecycle event.
        """
        self._sink = sink
        self._sealed = False
        self._fatal_error: Exception | None = None
        self._failed = asyncio.Event()

    @property
    def sealed(self) -> bool:
        """Whether the dispatcher stopped delivering events."""
        return self._sealed

    @property
    def fatal_error(self) -> Exception | None:
        """First sink failure raised from a background activity."""
        return self._fatal_error

    def dispatch(self, event: LifecycleEvent) -> None:
        """Invoke the sink with ``event``.

        Args:
            event: Lifecycle event to deliver.

        Raises:
            Exception: Whatever the sink raises.
        """
        if self._sealed:
            logger.debug("event_dropped", event_type=event.type)
            return
        self._sink(event)

    def publish(self, event: LifecycleEvent) -> None:
        """Invoke the sink from a background activity.

        Args:
            event: Lifecycle event to deliver.
        """
        try:
            self.dispatch(event)
        except Exception as exc:
            logger.critical(
                "sink_failed",
                event_type=event.type,
                error=str(exc),
                exc_info=exc,
            )
            if self._fatal_error is None:
                self._fatal_error = exc
            self._failed.set()

    def seal(self) -> None:
        """Drop every event dispatched from now on."""
        self._sealed = True

    async def wait_failed(self) -> Exception:
        """Wait until a background sink failure is recorded.

        Returns:
            The recorded fatal error.
        """
        await self._failed.wait()
        assert self._fatal_error is not None
        return self._fatal_error
