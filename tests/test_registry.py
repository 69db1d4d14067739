"""Connection registry tests."""

from wsfs.registry import ConnectionRegistry


class FakeConnection:
    pass


def test_add_is_idempotent() -> None:
    """Adding the same connection twice keeps one member."""
    registry = ConnectionRegistry()
    connection = FakeConnection()
    registry.add(connection)
    registry.add(connection)
    assert registry.size() == 1
    assert connection in registry


def test_remove_absent_is_noop() -> None:
    """Removing an unknown connection does nothing."""
    registry = ConnectionRegistry()
    registry.add(FakeConnection())
    registry.remove(FakeConnection())
    assert len(registry) == 1


def test_membership_is_by_identity() -> None:
    """Two distinct connections are both tracked."""
    registry = ConnectionRegistry()
    first, second = FakeConnection(), FakeConnection()
    registry.add(first)
    registry.add(second)
    registry.remove(first)
    assert first not in registry
    assert second in registry
    assert registry.size() == 1


def test_snapshot_is_unaffected_by_later_changes() -> None:
    """A snapshot keeps its members while the registry changes."""
    registry = ConnectionRegistry()
    connections = [FakeConnection() for _ in range(3)]
    for connection in connections:
        registry.add(connection)

    snapshot = registry.snapshot()
    for connection in snapshot:
        registry.remove(connection)
    registry.add(FakeConnection())

    assert set(snapshot) == set(connections)
    assert registry.size() == 1
