"""Pytest configuration and fixtures."""

import socket
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from helpers import EventRecorder
from wsfs.config import ServerConfig


@pytest.fixture
def recorder() -> EventRecorder:
    """Create an event-recording sink."""
    return EventRecorder()


@pytest.fixture
def free_port() -> int:
    """Find a TCP port that is currently free on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def config(tmp_path: Path, free_port: int, recorder: EventRecorder) -> ServerConfig:
    """Create server options on a free port watching a temp directory."""
    return ServerConfig(
        host="127.0.0.1",
        port=free_port,
        path=str(tmp_path),
        sink=recorder,
        shutdown_timeout=2.0,
    )
