"""
Realtime Events Module

Internal event publishing endpoints for collaborators (login, message and
reaction handlers) that need to push live updates after mutating the store.

Key responsibilities:
- Accept outbound events and broadcast them, or target a single user
- Accept delivery receipts for a message's author
"""

import logging

from fastapi import APIRouter, Depends

from ..dependencies import verify_internal_secret
from ..models import (
    DeliveryReceiptRequest,
    DeliveryReceiptResponse,
    InternalEventRequest,
    InternalEventResponse,
)
from .hub import RealtimeHub, get_realtime_hub


logger = logging.getLogger("chatcore.realtime.events")

# Router for internal event endpoints (collaborator -> realtime service)
internal_router = APIRouter(
    prefix="/internal",
    tags=["internal"],
    dependencies=[Depends(verify_internal_secret)],
)


@internal_router.post("/events", response_model=InternalEventResponse)
async def publish_event(
    request: InternalEventRequest,
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> InternalEventResponse:
    """
    Publish an outbound event on behalf of a collaborator.

    With ``userId`` the event goes to that user's connection only;
    otherwise it is broadcast to every connection. Delivery failures are
    reflected in ``recipients`` and never turn into an error response.

    Raises:
        HTTPException: 401 if secret is missing or invalid
    """
    event = request.to_event()

    if request.userId:
        delivered = await hub.broadcaster.send_to(request.userId, event)
        recipients = 1 if delivered else 0
    else:
        recipients = await hub.broadcaster.broadcast_all(event)

    logger.info(
        "Published internal event",
        extra={
            "event_type": event.type.value,
            "target_user": request.userId,
            "recipients": recipients
        }
    )

    return InternalEventResponse(event_type=event.type, recipients=recipients)


@internal_router.post("/delivery-receipts", response_model=DeliveryReceiptResponse)
async def publish_delivery_receipt(
    request: DeliveryReceiptRequest,
    hub: RealtimeHub = Depends(get_realtime_hub),
) -> DeliveryReceiptResponse:
    """Acknowledge a persisted message to its author."""
    delivered = await hub.broadcaster.delivery_receipt(request.userId, request.messageId)

    logger.info(
        "Published delivery receipt",
        extra={"message_id": request.messageId, "delivered": delivered}
    )

    return DeliveryReceiptResponse(delivered=delivered)
