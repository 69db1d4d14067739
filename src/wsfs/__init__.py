"""Broadcast filesystem events to WebSocket clients."""
from wsfs.config import ServerConfig, Settings, WatchFailureMode
from wsfs.errors import (
    AlreadyClosedError,
    BindError,
    ConnectionLostError,
    HandshakeError,
    ServerClosedError,
    SetupError,
    ShutdownError,
    WatchError,
    WsfsError,
)
from wsfs.events import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    FsChangeEvent,
    FsEvent,
    FsKind,
    LifecycleEvent,
    StartEvent,
    StopEvent,
    default_sink,
)
from wsfs.lifecycle import ServerState
from wsfs.server import ServerHandle, start

__version__ = "0.1.0"

__all__ = [
    "AlreadyClosedError",
    "BindError",
    "ConnectEvent",
    "ConnectionLostError",
    "DisconnectEvent",
    "ErrorEvent",
    "FsChangeEvent",
    "FsEvent",
    "FsKind",
    "HandshakeError",
    "LifecycleEvent",
    "ServerClosedError",
    "ServerConfig",
    "ServerHandle",
    "ServerState",
    "Settings",
    "SetupError",
    "ShutdownError",
    "StartEvent",
    "StopEvent",
    "WatchError",
    "WatchFailureMode",
    "WsfsError",
    "default_sink",
    "start",
]
