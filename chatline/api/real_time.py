"""
Real-time communication API endpoints for Chatline.

This module exposes the realtime websocket and the presence snapshot.
"""

from fastapi import APIRouter, Depends, WebSocket, status

from ..auth.dependencies import get_current_user, get_gateway
from ..models.user import User
from ..realtime.gateway import RealtimeGateway
from ..realtime.websocket_handler import handle_websocket_connection
from ..schemas.common import ApiResponse
from ..schemas.message import OnlineUsers
from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    Realtime channel for presence, typing and message delivery.

    The session token is read from the auth cookie, the `token` query
    parameter or the `bearer, <token>` subprotocol, in that order.
    """
    gateway: RealtimeGateway | None = getattr(websocket.app.state, "gateway", None)
    if gateway is None:
        logger.error("Realtime gateway not initialized, refusing websocket")
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    await handle_websocket_connection(websocket, gateway)


@realtime_router.get("/api/v1/presence/online", response_model=ApiResponse[OnlineUsers])
async def get_online_users(
    current_user: User = Depends(get_current_user),
    gateway: RealtimeGateway = Depends(get_gateway),
) -> ApiResponse[OnlineUsers]:
    """Identities with a live connection right now."""
    user_ids = sorted(gateway.registry.all_identities())
    return ApiResponse[OnlineUsers](data=OnlineUsers(user_ids=user_ids))
