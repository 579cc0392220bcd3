"""
Connection Registry

Maps a user identity to its live push channel. One registry instance is
owned by the RealtimeHub; nothing in this module is global.

Concurrency:
    All mutations and snapshot reads are serialized with an asyncio.Lock.
    No awaits on I/O happen while the lock is held.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Protocol


logger = logging.getLogger("chatcore.realtime.registry")


class Connection(Protocol):
    """
    Push channel to one client process.

    A Starlette/FastAPI WebSocket satisfies this protocol.
    """

    async def send_text(self, data: str) -> None:
        ...

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        ...


class ConnectionRegistry:
    """
    Thread-safe (event-loop safe) user → connection map.

    At most one connection is registered per user identity; binding the
    same identity again replaces the previous entry (last bind wins).
    """

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()

    async def bind(self, user_id: str, connection: Connection) -> Optional[Connection]:
        """
        Register ``connection`` for ``user_id``, replacing any previous entry.

        The replaced connection is not closed here; it is returned so the
        caller can apply its own close policy.

        Args:
            user_id: Identity carried by the auth frame
            connection: Live push channel

        Returns:
            The connection that was replaced, or None
        """
        async with self._lock:
            previous = self._connections.get(user_id)
            self._connections[user_id] = connection
            total = len(self._connections)

        if previous is not None and previous is not connection:
            logger.warning(
                f"Replaced live connection for user {user_id}",
                extra={"user_id": user_id, "total_connections": total}
            )
            return previous

        logger.info(
            "Connection bound",
            extra={"user_id": user_id, "total_connections": total}
        )
        return None

    async def unbind(self, user_id: str, connection: Optional[Connection] = None) -> bool:
        """
        Remove the mapping for ``user_id`` if present.

        When ``connection`` is given the entry is only removed while it still
        points at that connection, so a superseded connection closing late
        cannot evict its replacement.

        Returns:
            bool: True if an entry was removed
        """
        async with self._lock:
            current = self._connections.get(user_id)
            if current is None:
                return False
            if connection is not None and current is not connection:
                removed = False
            else:
                del self._connections[user_id]
                removed = True
            total = len(self._connections)

        if removed:
            logger.info(
                "Connection unbound",
                extra={"user_id": user_id, "total_connections": total}
            )
        else:
            logger.debug(f"Skipped unbind for {user_id}: entry belongs to a newer connection")
        return removed

    async def lookup(self, user_id: str) -> Optional[Connection]:
        async with self._lock:
            return self._connections.get(user_id)

    async def all_connections(self) -> List[Connection]:
        """Snapshot of every registered connection, safe to iterate without the lock."""
        async with self._lock:
            return list(self._connections.values())

    async def bound_user_ids(self) -> List[str]:
        async with self._lock:
            return sorted(self._connections)

    async def clear(self) -> List[Connection]:
        """Drop every entry and return the connections that were registered."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        return connections

    async def count(self) -> int:
        async with self._lock:
            return len(self._connections)
