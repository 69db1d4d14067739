"""Entry point for the wsfs server."""

import asyncio
import contextlib
import signal
import sys
from typing import assert_never

import structlog

from wsfs.config import Settings
from wsfs.errors import SetupError
from wsfs.events.types import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    FsEvent,
    LifecycleEvent,
    StartEvent,
    StopEvent,
)
from wsfs.lifecycle import GracefulShutdown
from wsfs.logging import configure_logging
from wsfs.server import start

logger = structlog.get_logger("wsfs.events")


def log_event(event: LifecycleEvent) -> None:
    """Write one log record per lifecycle event.

    Errors are logged rather than re-raised so a broken client never
    stops the process.

    Args:
        event: Lifecycle event from the server.
    """
    if isinstance(event, StartEvent):
        logger.info("start", url=event.url)
    elif isinstance(event, StopEvent):
        logger.info("stop")
    elif isinstance(event, ConnectEvent):
        logger.info("connect", sockets_open=event.count)
    elif isinstance(event, DisconnectEvent):
        logger.info("disconnect", sockets_open=event.count)
    elif isinstance(event, FsEvent):
        logger.info("fs", kind=event.kind.value, paths=list(event.paths))
    elif isinstance(event, ErrorEvent):
        logger.error("error", error=str(event.error), error_type=type(event.error).__name__)
    else:
        assert_never(event)


async def serve(settings: Settings) -> None:
    """Run the server until SIGTERM/SIGINT or a fatal sink failure.

    Args:
        settings: Server configuration.
    """
    shutdown = GracefulShutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown.trigger, sig.name)

    server = await start(settings.server_config(sink=log_event))

    triggered = asyncio.create_task(shutdown.wait_for_trigger())
    closed = asyncio.create_task(server.wait_closed())
    try:
        await asyncio.wait({triggered, closed}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        triggered.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await triggered
        await server.close()

    # Resolves now that the server is stopped; re-raises a fatal sink error.
    await closed


def main() -> None:
    """Entry point for python -m wsfs."""
    settings = Settings()
    configure_logging(debug=settings.debug)

    try:
        with contextlib.suppress(KeyboardInterrupt):
            asyncio.run(serve(settings))
    except SetupError as e:
        logger.error("setup_failed", error=str(e), path=e.path)
        sys.exit(1)
    except Exception as e:
        logger.critical("server_failed", error=str(e), exc_info=e)
        sys.exit(1)

    sys.exit(0)


if __name__ == "__main__":
    main()
