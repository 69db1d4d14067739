"""Exception hierarchy for the wsfs server."""


class WsfsError(Exception):
    """Base exception for all wsfs errors."""


class SetupError(WsfsError):
    """The server could not reach the running state.

    Attributes:
        path: Filesystem path or network address involved, if any.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class WatchError(SetupError):
    """The filesystem watch could not be established."""


class BindError(SetupError):
    """The listening socket could not be bound."""


class HandshakeError(WsfsError):
    """An inbound request could not be upgraded to a WebSocket."""


class ConnectionLostError(WsfsError):
    """A client connection ended without a closing handshake.

    Attributes:
        code: Close code reported by the transport.
    """

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class ShutdownError(WsfsError):
    """A resource was used after its shutdown began."""


class AlreadyClosedError(ShutdownError):
    """Shutdown was requested more than once."""


class ServerClosedError(ShutdownError):
    """A broadcast was attempted after the server was closed."""
