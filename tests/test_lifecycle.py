"""Shutdown guard and graceful shutdown tests."""

import asyncio

import pytest

from wsfs.errors import AlreadyClosedError
from wsfs.lifecycle import GracefulShutdown, ShutdownGuard


async def test_guard_runs_operation_once() -> None:
    """The guarded operation runs on the first call only."""
    calls = 0

    async def operation() -> None:
        nonlocal calls
        calls += 1

    guard = ShutdownGuard(operation)
    await guard.run()
    assert guard.has_run

    for _ in range(3):
        with pytest.raises(AlreadyClosedError):
            await guard.run()
    assert calls == 1


async def test_guard_concurrent_callers_have_one_winner() -> None:
    """Racing callers: one runs the operation, the rest raise."""
    calls = 0

    async def operation() -> None:
        nonlocal calls
        calls += 1
        await asyncio.sleep(0.05)

    guard = ShutdownGuard(operation)
    results = await asyncio.gather(
        *(guard.run() for _ in range(5)),
        return_exceptions=True,
    )

    assert calls == 1
    assert results.count(None) == 1
    assert sum(isinstance(r, AlreadyClosedError) for r in results) == 4


async def test_guard_claims_before_operation_fails() -> None:
    """A failing operation still counts as run."""

    async def operation() -> None:
        raise OSError("boom")

    guard = ShutdownGuard(operation)
    with pytest.raises(OSError):
        await guard.run()
    with pytest.raises(AlreadyClosedError):
        await guard.run()


async def test_graceful_shutdown_keeps_first_signal() -> None:
    """Only the first request counts; later ones are ignored."""
    shutdown = GracefulShutdown()
    assert not shutdown.is_triggered

    shutdown.trigger("SIGTERM")
    shutdown.trigger("SIGINT")

    assert shutdown.is_triggered
    assert shutdown.signal_name == "SIGTERM"
    await asyncio.wait_for(shutdown.wait_for_trigger(), timeout=0.1)

