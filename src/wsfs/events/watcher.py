"""Async-friendly recursive filesystem watcher."""

import asyncio
import contextlib
from collections.abc import AsyncIterator, Callable
from pathlib import Path

import structlog
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from wsfs.errors import WatchError
from wsfs.events.types import FsChangeEvent, FsKind

logger = structlog.get_logger()

EVENT_KINDS: dict[str, FsKind] = {
    "created": FsKind.CREATE,
    "modified": FsKind.MODIFY,
    "moved": FsKind.MODIFY,
    "deleted": FsKind.REMOVE,
}


def _decode_path(raw: str | bytes) -> str:
    if isinstance(raw, str):
        return raw
    return bytes(raw).decode("utf-8", errors="replace")


def to_change_event(raw_event: FileSystemEvent) -> FsChangeEvent:
    """Translate a watchdog event into a change event.

    Moves report both the source and the destination path.

    Args:
        raw_event: Raw watchdog filesystem event.

    Returns:
        Change event carrying the mapped kind and paths.
    """
    paths = [_decode_path(raw_event.src_path)]
    dest_path = getattr(raw_event, "dest_path", "")
    if dest_path:
        paths.append(_decode_path(dest_path))

    kind = EVENT_KINDS.get(raw_event.event_type, FsKind.OTHER)
    return FsChangeEvent(kind=kind, paths=tuple(paths))


class ForwardingHandler(FileSystemEventHandler):
    """Watchdog handler that hands every event to the event loop.

    Runs on the observer thread. Events are scheduled with
    ``call_soon_threadsafe`` so they keep the order the OS reported.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        deliver: Callable[[FsChangeEvent], None],
    ) -> None:
        super().__init__()
        self._loop = loop
        self._deliver = deliver

    def on_any_event(self, event: FileSystemEvent) -> None:
        change = to_change_event(event)
        try:
            self._loop.call_soon_threadsafe(self._deliver, change)
        except RuntimeError:
            # Loop already closed; the watcher is being torn down.
            logger.debug("watcher_event_after_loop_closed", paths=change.paths)


class FilesystemWatcher:
    """Recursive watcher delivering change events one at a time.

    Wraps a watchdog Observer. Events travel from the observer thread into
    an asyncio queue and a single drain task invokes the handler, so the
    handler always runs on the event loop and never concurrently with
    itself.

    Attributes:
        path: Absolute directory being watched, once started.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_change: Callable[[FsChangeEvent], None],
        join_timeout: float = 5.0,
    ) -> None:
        """Initialize filesystem watcher.

        Args:
            loop: Event loop the handler runs on.
            on_change: Callback for every change event.
            join_timeout: Seconds to wait for the observer thread on close.
        """
        self._loop = loop
        self._on_change = on_change
        self._join_timeout = join_timeout
        self._queue: asyncio.Queue[FsChangeEvent] = asyncio.Queue()
        self._observer: BaseObserver | None = None
        self._drain_task: asyncio.Task[None] | None = None
        self._path: str | None = None
        self._started = False
        self._closed = False

    @property
    def path(self) -> str | None:
        """Absolute directory being watched."""
        return self._path

    @property
    def closed(self) -> bool:
        """Whether close() has been called."""
        return self._closed

    def start(self, path: str) -> None:
        """Begin recursive observation of ``path``.

        Args:
            path: Directory to watch.

        Raises:
            WatchError: If the path is unusable or the OS watch fails.
            RuntimeError: If the watcher was already started.
        """
        if self._started:
            raise RuntimeError("Filesystem watcher cannot be restarted")
        self._started = True

        p = Path(path)
        if not p.exists():
            raise WatchError(f"Watch path does not exist: {path}", path=path)
        if not p.is_dir():
            raise WatchError(f"Watch path is not a directory: {path}", path=path)

        resolved = str(p.resolve())
        observer = Observer()
        handler = ForwardingHandler(self._loop, self._enqueue)
        try:
            observer.schedule(handler, resolved, recursive=True)
            observer.start()
        except OSError as e:
            raise WatchError(f"Cannot watch {path}: {e}", path=path) from e

        self._observer = observer
        self._path = resolved
        self._drain_task = self._loop.create_task(self._drain())
        logger.info("watcher_started", path=resolved)

    def _enqueue(self, change: FsChangeEvent) -> None:
        if self._closed:
            return
        self._queue.put_nowait(change)

    async def _events(self) -> AsyncIterator[FsChangeEvent]:
        """Yield change events in the order they were observed."""
        while True:
            yield await self._queue.get()

    async def _drain(self) -> None:
        async for change in self._events():
            if self._closed:
                return
            logger.debug("watcher_emit", kind=change.kind.value, paths=change.paths)
            try:
                self._on_change(change)
            except Exception as e:
                logger.error("watcher_callback_error", error=str(e), paths=change.paths)

    async def close(self) -> None:
        """Stop observation and release the OS watch.

        Safe to call more than once; only the first call does any work.
        """
        if self._closed:
            return
        self._closed = True

        observer = self._observer
        self._observer = None
        if observer is not None:
            observer.stop()
            await asyncio.to_thread(observer.join, self._join_timeout)

        if self._drain_task is not None:
            self._drain_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._drain_task
            self._drain_task = None

        logger.info("watcher_stopped", path=self._path)
