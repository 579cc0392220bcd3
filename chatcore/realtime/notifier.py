"""
Notifier

Domain-level publishing helpers for request handlers. After a handler has
mutated the store (login, logout, status change, new message, edit, delete,
reaction) it calls the matching notifier method; the notifier builds the
outbound event and hands it to its publisher.

The publisher is injectable: the in-process Broadcaster when the handler
runs inside this service, or a RemoteEventPublisher when it runs elsewhere.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from ..models import OutboundEvent


logger = logging.getLogger("chatcore.realtime.notifier")


class EventPublisher(Protocol):
    """Anything that can fan out and target outbound events."""

    async def broadcast_all(self, event: OutboundEvent) -> int:
        ...

    async def send_to(self, user_id: str, event: OutboundEvent) -> bool:
        ...

    async def delivery_receipt(self, user_id: str, message_id: str) -> bool:
        ...


class Notifier:
    """
    Publishes store changes as live events.

    None of these methods raise on delivery problems; publishing is
    best-effort and must not fail the request that triggered it.
    """

    def __init__(self, publisher: EventPublisher) -> None:
        self._publisher = publisher

    async def user_status_changed(self, user_id: str, status: str) -> None:
        """Broadcast a presence change (login, logout, explicit status update)."""
        await self._publisher.broadcast_all(OutboundEvent.status_change(user_id, status))

    async def message_created(
        self, message: Dict[str, Any], author_id: Optional[str] = None
    ) -> None:
        """
        Broadcast a new message and acknowledge it to its author.

        Args:
            message: Persisted message record; must carry an ``id``
            author_id: Author to receive the delivery receipt; defaults to
                the record's ``userId``
        """
        await self._publisher.broadcast_all(OutboundEvent.new_message(message))

        author_id = author_id or message.get("userId")
        message_id = message.get("id")
        if not author_id or not message_id:
            logger.warning(
                "Skipped delivery receipt: message record lacks author or id",
                extra={"message_id": message_id, "author_id": author_id}
            )
            return

        await self._publisher.delivery_receipt(author_id, message_id)

    async def message_edited(self, message: Dict[str, Any]) -> None:
        await self._publisher.broadcast_all(OutboundEvent.edit_message(message))

    async def message_deleted(self, message_id: str, room_id: str) -> None:
        await self._publisher.broadcast_all(OutboundEvent.delete_message(message_id, room_id))

    async def reaction_added(
        self, room_id: str, message_id: str, reactions: Dict[str, Any]
    ) -> None:
        await self._publisher.broadcast_all(
            OutboundEvent.reaction_add(room_id, message_id, reactions)
        )
