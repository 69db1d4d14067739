"""WebSocket endpoint broadcasting filesystem events."""

from typing import TYPE_CHECKING

from fastapi import APIRouter, Request, WebSocket, status
from fastapi.responses import PlainTextResponse

from wsfs.errors import HandshakeError

if TYPE_CHECKING:
    from wsfs.acceptor import ConnectionAcceptor

router = APIRouter(tags=["socket"])


@router.websocket("/{path:path}")
async def event_socket(websocket: WebSocket, path: str) -> None:
    """Stream filesystem events to a WebSocket client.

    Any path is accepted. The connection stays open until either side
    closes it; messages from the client are ignored.

    Args:
        websocket: Inbound WebSocket connection.
        path: Requested path, unused.
    """
    acceptor: ConnectionAcceptor = websocket.app.state.acceptor
    await acceptor.handle(websocket)


@router.get("/{path:path}")
async def upgrade_required(request: Request, path: str) -> PlainTextResponse:
    """Answer plain HTTP requests that did not ask for an upgrade.

    Args:
        request: FastAPI request object.
        path: Requested path.

    Returns:
        426 response pointing the client at the WebSocket protocol.
    """
    acceptor: ConnectionAcceptor = request.app.state.acceptor
    acceptor.reject(HandshakeError(f"Request for /{path} is not a WebSocket upgrade"))
    return PlainTextResponse(
        "This server only speaks WebSocket.",
        status_code=status.HTTP_426_UPGRADE_REQUIRED,
        headers={"Upgrade": "websocket"},
    )
