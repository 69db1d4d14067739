"""Shared test helpers."""

import asyncio
import time
from collections.abc import Callable

import pytest

from wsfs.events.types import LifecycleEvent


class EventRecorder:
    """Sink that keeps every lifecycle event it receives."""

    def __init__(self) -> None:
        self.events: list[LifecycleEvent] = []

    def __call__(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def of_type(self, cls: type) -> list[LifecycleEvent]:
        return [e for e in self.events if isinstance(e, cls)]


async def wait_until(
    predicate: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.02,
) -> None:
    """Poll ``predicate`` until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        await asyncio.sleep(interval)


def poll_until(
    predicate: Callable[[], bool],
    timeout: float = 5.0,
    interval: float = 0.01,
) -> None:
    """Blocking ``wait_until`` for tests driving the app from a thread."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            pytest.fail(f"condition not met within {timeout}s")
        time.sleep(interval)
