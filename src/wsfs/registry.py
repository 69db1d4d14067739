"""Registry of currently open client connections."""
from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wsfs.connection import Connection


class ConnectionRegistry:
    """Thread-safe set of open connections keyed by identity.

    A connection is a member exactly while it is open. Iteration always
    goes through ``snapshot()`` so callers never see the set change under
    them.
    """

    def __init__(self) -> None:
        self._connections: set[Connection] = set()
        self._lock = threading.Lock()

    def add(self, connection: Connection) -> None:
        """Insert a connection; no-op if already present."""
        with self._lock:
            self._connections.add(connection)

    def remove(self, connection: Connection) -> None:
        """Delete a connection; no-op if absent."""
        with self._lock:
            self._connections.discard(connection)

    def size(self) -> int:
        """Number of open connections."""
        with self._lock:
            return len(self._connections)

    def snapshot(self) -> tuple[Connection, ...]:
        """Point-in-time copy of every open connection."""
        with self._lock:
            return tuple(self._connections)

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, connection: object) -> bool:
        with self._lock:
            return connection in self._connections
