"""
Data Models Module

This module defines Pydantic models for the frames exchanged over the push
channel and for the internal event endpoints.

Models are organized by functional area:
- Outbound events (server -> client push frames)
- Inbound signaling frames (client -> server)
- Internal event models (collaborator -> realtime service)
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Outbound Events
# ============================================================================

class EventType(str, Enum):
    """Tags of every event the service pushes to clients."""
    STATUS_CHANGE = "status-change"
    NEW_MESSAGE = "new-message"
    EDIT_MESSAGE = "edit-message"
    DELETE_MESSAGE = "delete-message"
    REACTION_ADD = "reaction-add"
    TYPING = "typing"
    STOP_TYPING = "stop-typing"
    DELIVERY_RECEIPT = "delivery-receipt"


DELIVERY_STATUS_DELIVERED = "delivered"


class OutboundEvent(BaseModel):
    """
    Immutable push event with a tag-specific payload.

    Serialized on the wire as ``{"type": <tag>, "payload": {...}}``.
    Use the classmethod constructors so payload field names stay exact.
    """
    model_config = ConfigDict(frozen=True)

    type: EventType = Field(..., description="Event tag")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Tag-specific payload")

    def to_frame(self) -> str:
        """Encode the event as a text frame."""
        return self.model_dump_json()

    @classmethod
    def status_change(cls, user_id: str, status: str) -> "OutboundEvent":
        return cls(type=EventType.STATUS_CHANGE, payload={"userId": user_id, "status": status})

    @classmethod
    def new_message(cls, message: Dict[str, Any]) -> "OutboundEvent":
        return cls(type=EventType.NEW_MESSAGE, payload=dict(message))

    @classmethod
    def edit_message(cls, message: Dict[str, Any]) -> "OutboundEvent":
        return cls(type=EventType.EDIT_MESSAGE, payload=dict(message))

    @classmethod
    def delete_message(cls, message_id: str, room_id: str) -> "OutboundEvent":
        return cls(
            type=EventType.DELETE_MESSAGE,
            payload={"messageId": message_id, "roomId": room_id},
        )

    @classmethod
    def reaction_add(
        cls, room_id: str, message_id: str, reactions: Dict[str, Any]
    ) -> "OutboundEvent":
        return cls(
            type=EventType.REACTION_ADD,
            payload={"roomId": room_id, "messageId": message_id, "reactions": reactions},
        )

    @classmethod
    def typing(cls, user_id: str) -> "OutboundEvent":
        return cls(type=EventType.TYPING, payload={"userId": user_id})

    @classmethod
    def stop_typing(cls, user_id: str) -> "OutboundEvent":
        return cls(type=EventType.STOP_TYPING, payload={"userId": user_id})

    @classmethod
    def delivery_receipt(cls, message_id: str) -> "OutboundEvent":
        return cls(
            type=EventType.DELIVERY_RECEIPT,
            payload={"messageId": message_id, "status": DELIVERY_STATUS_DELIVERED},
        )


# ============================================================================
# Inbound Signaling Frames
# ============================================================================

class SignalType(str, Enum):
    """Inbound frame types the signaling handler acts on."""
    AUTH = "auth"
    TYPING = "typing"


class SignalFrame(BaseModel):
    """
    Envelope of an inbound signaling frame.

    ``type`` is kept as a plain string so unknown types validate and can be
    ignored by the handler instead of being treated as malformed.
    """
    model_config = ConfigDict(extra="ignore")

    type: str = Field(..., description="Frame type (auth, typing, ...)")
    payload: Optional[Dict[str, Any]] = Field(None, description="Frame payload")


class AuthPayload(BaseModel):
    """Payload of an ``auth`` frame."""
    model_config = ConfigDict(extra="ignore")

    userId: str = Field(..., min_length=1, description="Identity to bind the connection to")


# ============================================================================
# Internal Event Models
# ============================================================================

class InternalEventRequest(BaseModel):
    """Event posted by a collaborator to /internal/events."""
    type: EventType = Field(..., description="Outbound event tag")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Tag-specific payload")
    userId: Optional[str] = Field(
        None,
        min_length=1,
        description="Deliver to this user only; broadcast to everyone when omitted",
    )

    def to_event(self) -> OutboundEvent:
        return OutboundEvent(type=self.type, payload=self.payload)


class DeliveryReceiptRequest(BaseModel):
    """Delivery receipt request posted to /internal/delivery-receipts."""
    userId: str = Field(..., min_length=1, description="Author of the message")
    messageId: str = Field(..., min_length=1, description="Persisted message identifier")


class InternalEventResponse(BaseModel):
    """Acknowledgment returned by /internal/events."""
    status: str = Field(default="received")
    event_type: EventType
    recipients: int = Field(..., ge=0, description="Connections the event reached")


class DeliveryReceiptResponse(BaseModel):
    """Acknowledgment returned by /internal/delivery-receipts."""
    status: str = Field(default="received")
    delivered: bool


# ============================================================================
# Status Models
# ============================================================================

class RealtimeStatus(BaseModel):
    """Snapshot of the realtime core for /realtime/status."""
    status: str = Field(default="ok")
    active_connections: int
    typing_users: List[str]
    timestamp: str
