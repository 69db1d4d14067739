"""FastAPI application factory and lifespan management."""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI

from wsfs.routes import socket

if TYPE_CHECKING:
    from wsfs.acceptor import ConnectionAcceptor

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Log the listener's start and stop.

    Args:
        app: FastAPI application instance.

    Yields:
        None while the listener runs.
    """
    acceptor: ConnectionAcceptor = app.state.acceptor
    logger.info("app_startup", url=acceptor.url)
    try:
        yield
    finally:
        logger.info("app_shutdown", active_connections=acceptor.connection_count)


def create_app(acceptor: ConnectionAcceptor) -> FastAPI:
    """Create the application serving the WebSocket endpoint.

    Args:
        acceptor: Acceptor handling every inbound connection.

    Returns:
        Configured FastAPI application.
    """
    app = FastAPI(
        title="wsfs",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.acceptor = acceptor
    app.include_router(socket.router)
    return app
