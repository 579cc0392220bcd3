"""
WebSocket Endpoint for Real-time Communications
===============================================

Accepts client push channels and drives one SignalingSession per connection.

Client Frames (Client -> Server):
    - {"type": "auth", "payload": {"userId": "..."}}
    - {"type": "typing", "payload": {"userId": "..."}}

Server Events (Server -> Client):
    - {"type": "status-change", "payload": {"userId": "...", "status": "..."}}
    - {"type": "new-message" | "edit-message", "payload": {...message...}}
    - {"type": "delete-message", "payload": {"messageId": "...", "roomId": "..."}}
    - {"type": "reaction-add", "payload": {"roomId": "...", "messageId": "...", "reactions": {...}}}
    - {"type": "typing" | "stop-typing", "payload": {"userId": "..."}}
    - {"type": "delivery-receipt", "payload": {"messageId": "...", "status": "delivered"}}

Keepalive is left to the ASGI server's protocol-level ping/pong.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from ..models import RealtimeStatus
from .hub import RealtimeHub, get_realtime_hub


logger = logging.getLogger("chatcore.realtime.ws")

# WebSocket endpoint, mounted at the application root
ws_router = APIRouter()

# Realtime query endpoints, mounted under /realtime
realtime_router = APIRouter()


@ws_router.websocket("/ws")
async def websocket_endpoint(
        websocket: WebSocket,
        hub: RealtimeHub = Depends(get_realtime_hub)
):
    """
    WebSocket endpoint for signaling and live events.

    The connection starts anonymous; an ``auth`` frame binds it to a user.
    Registry and typing state are always cleaned up when the transport
    closes, however the receive loop ends.
    """
    await websocket.accept()
    session = hub.open_session(websocket)

    try:
        while True:
            message = await websocket.receive()

            if message["type"] == "websocket.disconnect":
                logger.info("WebSocket disconnected by client", extra={"user_id": session.user_id})
                break

            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is None:
                continue

            await session.handle_frame(data)

    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", extra={"user_id": session.user_id})

    except Exception as e:
        logger.error(f"WebSocket error: {str(e)}", exc_info=True)

    finally:
        await session.close()


@realtime_router.get("/status", response_model=RealtimeStatus)
async def realtime_status(hub: RealtimeHub = Depends(get_realtime_hub)) -> RealtimeStatus:
    """
    Get real-time service status and statistics.

    Returns:
        RealtimeStatus: Connection count and users currently typing
    """
    return await hub.status()


@realtime_router.get("/typing")
async def get_typing_state(
    userId: Optional[str] = Query(None, description="User identifier"),
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> Dict[str, Any]:
    """
    Query current typing state.

    Lets clients poll typing indicators if the push channel is unavailable.

    Returns:
        ``{"userId": ..., "isTyping": bool}`` for one user, or
        ``{"typingUsers": [...]}`` when no user is given
    """
    if not userId:
        return {"typingUsers": hub.typing.typing_user_ids()}

    return {"userId": userId, "isTyping": hub.typing.is_typing(userId)}
