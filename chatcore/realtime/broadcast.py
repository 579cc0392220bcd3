"""
Broadcast Engine

Fan-out of outbound events to every registered connection, and targeted
delivery to a single user. Delivery is best-effort: failures are logged
per connection and never raised to the caller, since a broadcast must
never fail the request that triggered it.
"""

import asyncio
import logging
from typing import Optional

from ..models import OutboundEvent
from .registry import Connection, ConnectionRegistry


logger = logging.getLogger("chatcore.realtime.broadcast")


class Broadcaster:
    """
    Sends events to connections held by a ConnectionRegistry.

    Each call serializes the event once and takes a registry snapshot, so
    concurrent bind/unbind never affects an iteration in progress. Sends to
    different connections of the same broadcast run concurrently; an
    awaiting caller's events reach each connection in call order.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    async def broadcast_all(self, event: OutboundEvent) -> int:
        """
        Deliver ``event`` to every connection registered at call time.

        Args:
            event: Event to deliver

        Returns:
            int: Number of connections that received the event
        """
        connections = await self._registry.all_connections()
        if not connections:
            logger.debug(f"No connections for broadcast of {event.type.value}")
            return 0

        message = event.to_frame()
        results = await asyncio.gather(
            *(self._deliver(connection, message, event) for connection in connections)
        )
        sent_count = sum(1 for delivered in results if delivered)

        logger.info(
            "Broadcast event",
            extra={
                "event_type": event.type.value,
                "recipients": sent_count,
                "failed": len(connections) - sent_count
            }
        )
        return sent_count

    async def send_to(self, user_id: str, event: OutboundEvent) -> bool:
        """
        Deliver ``event`` to ``user_id``'s connection, if one is bound.

        Events for users without a live connection are dropped, not queued.

        Returns:
            bool: True if the event was written to the connection
        """
        connection = await self._registry.lookup(user_id)
        if connection is None:
            logger.debug(
                f"Dropped {event.type.value} for {user_id}: no live connection"
            )
            return False

        return await self._deliver(connection, event.to_frame(), event, user_id=user_id)

    async def delivery_receipt(self, user_id: str, message_id: str) -> bool:
        """
        Acknowledge a persisted message to its author.

        Args:
            user_id: Author of the message (not the recipient)
            message_id: Identifier of the persisted message
        """
        return await self.send_to(user_id, OutboundEvent.delivery_receipt(message_id))

    async def _deliver(
        self,
        connection: Connection,
        message: str,
        event: OutboundEvent,
        user_id: Optional[str] = None,
    ) -> bool:
        try:
            await connection.send_text(message)
            return True
        except Exception as e:
            logger.warning(
                f"Failed to send to connection: {str(e)}",
                extra={"event_type": event.type.value, "user_id": user_id}
            )
            return False
