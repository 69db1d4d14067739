"""Server configuration: library options and environment settings."""
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wsfs.events.dispatcher import Sink, default_sink

WsProtocol = Literal["auto", "websockets"]


class WatchFailureMode(str, Enum):
    """What start-up does when the filesystem watch cannot be established."""

    FAIL_FAST = "fail_fast"
    DEGRADED = "degraded"


class ServerConfig(BaseModel):
    """Immutable options for one server instance.

    Attributes:
        host: Hostname the listener binds to. Also accepted as ``hostname``.
        port: Port the listener binds to.
        path: Directory watched recursively for changes.
        sink: Receives every lifecycle event. Also accepted as ``handle``.
        watch_failure: Start-up policy when the watch cannot be set up.
        shutdown_timeout: Seconds allowed for the listener and the
            watcher thread to drain on close.
        ws_protocol: uvicorn WebSocket implementation.
    """

    model_config = ConfigDict(frozen=True)

    host: str = Field(
        default="localhost",
        validation_alias=AliasChoices("host", "hostname"),
    )
    port: int = Field(default=1234, ge=0, le=65535)
    path: str = "."
    sink: Sink = Field(
        default=default_sink,
        validation_alias=AliasChoices("sink", "handle"),
        exclude=True,
    )
    watch_failure: WatchFailureMode = WatchFailureMode.FAIL_FAST
    shutdown_timeout: float = Field(default=5.0, gt=0)
    ws_protocol: WsProtocol = "auto"

    @computed_field
    @property
    def url(self) -> str:
        """WebSocket URL clients connect to."""
        return f"ws://{self.host}:{self.port}"


class Settings(BaseSettings):
    """Server configuration loaded from environment variables.

    Attributes:
        host: Bind address for the WebSocket server.
        port: Port number for the WebSocket server.
        path: Directory watched for filesystem events.
        debug: Enable debug-level logging.
        watch_failure: ``fail_fast`` or ``degraded``.
        shutdown_timeout: Seconds to wait for listener and watcher to drain.
        ws_protocol: uvicorn WebSocket implementation.
    """

    model_config = SettingsConfigDict(
        env_prefix="WSFS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 1234
    path: str = "."
    debug: bool = False
    watch_failure: WatchFailureMode = WatchFailureMode.FAIL_FAST
    shutdown_timeout: float = 5.0
    ws_protocol: WsProtocol = "auto"

    def server_config(self, sink: Sink = default_sink) -> ServerConfig:
        """Build server options from these settings.

        Args:
            sink: Lifecycle event sink for the server.

        Returns:
            Immutable server configuration.
        """
        return ServerConfig(
            host=self.host,
            port=self.port,
            path=self.path,
            sink=sink,
            watch_failure=self.watch_failure,
            shutdown_timeout=self.shutdown_timeout,
            ws_protocol=self.ws_protocol,
        )
