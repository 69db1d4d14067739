"""Event dispatcher tests."""

import asyncio

import pytest

from wsfs.events.dispatcher import Dispatcher, default_sink
from wsfs.events.types import ConnectEvent, ErrorEvent, StartEvent, StopEvent


def test_default_sink_raises_error_events() -> None:
    """Errors are fatal unless a sink handles them."""
    error = RuntimeError("broken")
    with pytest.raises(RuntimeError) as excinfo:
        default_sink(ErrorEvent(error=error))
    assert excinfo.value is error


def test_default_sink_ignores_other_events() -> None:
    """Non-error events pass through silently."""
    default_sink(StartEvent(url="ws://localhost:1234"))
    default_sink(ConnectEvent(count=1))


def test_dispatch_preserves_order() -> None:
    """The sink sees events in dispatch order."""
    seen: list = []
    dispatcher = Dispatcher(seen.append)
    events = [StartEvent(url="ws://x:1"), ConnectEvent(count=1), StopEvent()]
    for event in events:
        dispatcher.dispatch(event)
    assert seen == events


def test_dispatch_propagates_sink_errors() -> None:
    """Foreground dispatch surfaces sink failures to the caller."""
    dispatcher = Dispatcher(default_sink)
    with pytest.raises(ValueError):
        dispatcher.dispatch(ErrorEvent(error=ValueError("bad")))
    assert dispatcher.fatal_error is None


def test_sealed_dispatcher_drops_events() -> None:
    """Nothing reaches the sink after seal()."""
    seen: list = []
    dispatcher = Dispatcher(seen.append)
    dispatcher.seal()
    dispatcher.dispatch(StopEvent())
    dispatcher.publish(ConnectEvent(count=1))
    assert seen == []
    assert dispatcher.sealed


async def test_publish_records_fatal_error() -> None:
    """Background sink failures become the dispatcher's fatal error."""
    dispatcher = Dispatcher(default_sink)
    error = ConnectionResetError("peer reset")

    dispatcher.publish(ErrorEvent(error=error))
    dispatcher.publish(ErrorEvent(error=OSError("second")))

    assert dispatcher.fatal_error is error
    assert await asyncio.wait_for(dispatcher.wait_failed(), timeout=1.0) is error
