"""
Realtime Hub

Owns the shared realtime state (connection registry, typing tracker,
broadcaster) for one application instance. The application factory builds
a hub and stores it on ``app.state.realtime``; routes reach it through the
``get_realtime_hub`` dependency instead of module-level globals.
"""

import asyncio
import logging
from datetime import datetime, timezone

from fastapi.requests import HTTPConnection

from ..config import Settings
from ..models import RealtimeStatus
from .broadcast import Broadcaster
from .registry import Connection, ConnectionRegistry
from .signaling import SignalingSession
from .typing_tracker import TypingTracker


logger = logging.getLogger("chatcore.realtime.hub")

# RFC 6455 "going away"
SHUTDOWN_CLOSE_CODE = 1001


class RealtimeHub:
    """
    Container for the realtime core.

    Attributes:
        settings: Settings the hub was built from
        registry: user → connection map
        typing: debounced typing state
        broadcaster: fan-out and targeted delivery
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.registry = ConnectionRegistry()
        self.typing = TypingTracker(timeout_seconds=settings.TYPING_TIMEOUT_SECONDS)
        self.broadcaster = Broadcaster(self.registry)

        logger.info(
            "RealtimeHub initialized",
            extra={"typing_timeout_seconds": settings.TYPING_TIMEOUT_SECONDS}
        )

    def open_session(self, connection: Connection) -> SignalingSession:
        """Create the signaling session for a freshly accepted connection."""
        return SignalingSession(
            connection,
            self.registry,
            self.typing,
            self.broadcaster,
            close_replaced=self.settings.CLOSE_REPLACED_CONNECTIONS,
            stop_typing_on_disconnect=self.settings.STOP_TYPING_ON_DISCONNECT,
        )

    async def status(self) -> RealtimeStatus:
        return RealtimeStatus(
            active_connections=await self.registry.count(),
            typing_users=self.typing.typing_user_ids(),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    async def shutdown(self) -> None:
        """
        Cancel typing timers and close every registered connection.

        Used during application shutdown.
        """
        await self.typing.cancel_all()

        connections = await self.registry.clear()
        results = await asyncio.gather(
            *(
                connection.close(code=SHUTDOWN_CLOSE_CODE, reason="Server shutdown")
                for connection in connections
            ),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, Exception):
                logger.warning(f"Error closing connection: {str(result)}")

        logger.info(f"All realtime connections closed ({len(connections)})")


def get_realtime_hub(connection: HTTPConnection) -> RealtimeHub:
    """FastAPI dependency returning the hub of the current application (HTTP or WebSocket)."""
    return connection.app.state.realtime
