"""Events subsystem for filesystem monitoring and lifecycle dispatch."""
from wsfs.events.dispatcher import Dispatcher, Sink, default_sink
from wsfs.events.types import (
    ConnectEvent,
    DisconnectEvent,
    ErrorEvent,
    FsChangeEvent,
    FsEvent,
    FsKind,
    LifecycleEvent,
    StartEvent,
    StopEvent,
)
from wsfs.events.watcher import FilesystemWatcher

__all__ = [
    "ConnectEvent",
    "DisconnectEvent",
    "Dispatcher",
    "ErrorEvent",
    "FilesystemWatcher",
    "FsChangeEvent",
    "FsEvent",
    "FsKind",
    "LifecycleEvent",
    "Sink",
    "StartEvent",
    "StopEvent",
    "default_sink",
]
