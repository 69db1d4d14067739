"""Event types produced by the watcher and the server lifecycle."""
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class FsKind(str, Enum):
    """Kinds of filesystem change reported to clients."""

    CREATE = "create"
    MODIFY = "modify"
    REMOVE = "remove"
    OTHER = "other"


class FsChangeEvent(BaseModel):
    """A single filesystem change as reported by the watcher.

    This is also the wire payload sent to every connected client.

    Attributes:
        kind: What happened to the paths.
        paths: Affected absolute paths, in the order reported by the OS.
    """

    model_config = ConfigDict(frozen=True)

    kind: FsKind = Field(description="Kind of change")
    paths: tuple[str, ...] = Field(description="Affected absolute paths")


class _LifecycleModel(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class StartEvent(_LifecycleModel):
    """The server is running and accepting connections."""

    type: Literal["start"] = "start"
    url: str


class StopEvent(_LifecycleModel):
    """The server released all of its resources."""

    type: Literal["stop"] = "stop"


class ConnectEvent(_LifecycleModel):
    """A client completed the handshake.

    Attributes:
        count: Open connections after this one was registered.
    """

    type: Literal["connect"] = "connect"
    count: int


class DisconnectEvent(_LifecycleModel):
    """A client closed its connection.

    Attributes:
        count: Open connections after this one was removed.
    """

    type: Literal["disconnect"] = "disconnect"
    count: int


class FsEvent(_LifecycleModel):
    """A filesystem change observed under the watched path."""

    type: Literal["fs"] = "fs"
    kind: FsKind
    paths: tuple[str, ...]

    @classmethod
    def from_change(cls, change: FsChangeEvent) -> "FsEvent":
        return cls(kind=change.kind, paths=change.paths)


class ErrorEvent(_LifecycleModel):
    """A recoverable failure, such as a broken client connection."""

    type: Literal["error"] = "error"
    error: Exception


LifecycleEvent = (
    StartEvent | StopEvent | ConnectEvent | DisconnectEvent | FsEvent | ErrorEvent
)
