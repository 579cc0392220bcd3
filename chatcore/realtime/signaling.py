"""
Signaling Protocol Handler

Parses inbound frames on one connection, binds the connection to a user
identity and routes typing events. One SignalingSession exists per
transport connection and is driven by that connection's receive loop.

Frame Types (Client -> Server):
    - {"type": "auth", "payload": {"userId": "..."}}
    - {"type": "typing", "payload": {"userId": "..."}}

Malformed frames and unknown types are logged and ignored; nothing is ever
sent back to the sender as an error.

State machine:
    UNBOUND --auth--> BOUND --transport close--> CLOSED
    UNBOUND --transport close--> CLOSED
"""

import logging
from enum import Enum
from typing import Optional, Union

from pydantic import ValidationError

from ..models import AuthPayload, OutboundEvent, SignalFrame, SignalType
from .broadcast import Broadcaster
from .registry import Connection, ConnectionRegistry
from .typing_tracker import TypingTracker


logger = logging.getLogger("chatcore.realtime.signaling")

# Application-defined close code sent to a connection superseded by a newer one
REPLACED_CLOSE_CODE = 4000


class ConnectionState(str, Enum):
    UNBOUND = "unbound"
    BOUND = "bound"
    CLOSED = "closed"


class SignalingSession:
    """
    Per-connection signaling state.

    Attributes:
        connection: Transport push channel for this client
        state: Current ConnectionState
        user_id: Bound identity, None while UNBOUND
    """

    def __init__(
        self,
        connection: Connection,
        registry: ConnectionRegistry,
        tracker: TypingTracker,
        broadcaster: Broadcaster,
        close_replaced: bool = False,
        stop_typing_on_disconnect: bool = False,
    ) -> None:
        self.connection = connection
        self.state = ConnectionState.UNBOUND
        self.user_id: Optional[str] = None

        self._registry = registry
        self._tracker = tracker
        self._broadcaster = broadcaster
        self._close_replaced = close_replaced
        self._stop_typing_on_disconnect = stop_typing_on_disconnect

    async def handle_frame(self, raw: Union[str, bytes]) -> None:
        """
        Process one inbound frame.

        Never raises for client input: malformed frames are logged and dropped.

        Args:
            raw: Text (or binary) frame as received from the transport
        """
        if self.state is ConnectionState.CLOSED:
            logger.debug("Ignored frame received after close")
            return

        try:
            frame = SignalFrame.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(
                "Ignored malformed signaling frame",
                extra={"user_id": self.user_id, "errors": e.error_count()}
            )
            return

        if frame.type == SignalType.AUTH.value:
            await self._handle_auth(frame)
        elif frame.type == SignalType.TYPING.value:
            await self._handle_typing()
        else:
            logger.debug(f"Ignored unknown frame type: {frame.type}")

    async def close(self) -> None:
        """
        Clean up after the transport closed. Safe to call more than once.

        If the connection was bound, its registry entry is removed and any
        pending typing timer for the identity is cancelled.
        """
        if self.state is ConnectionState.CLOSED:
            return

        was_bound = self.state is ConnectionState.BOUND
        self.state = ConnectionState.CLOSED

        if was_bound:
            await self._release_identity(self.user_id)

        logger.info(
            "Signaling session closed",
            extra={"user_id": self.user_id, "was_bound": was_bound}
        )

    async def _handle_auth(self, frame: SignalFrame) -> None:
        try:
            auth = AuthPayload.model_validate(frame.payload or {})
        except ValidationError:
            logger.warning("Ignored auth frame without a usable userId")
            return

        user_id = auth.userId

        if self.state is ConnectionState.BOUND and self.user_id != user_id:
            # re-auth as someone else: drop the old identity first
            await self._release_identity(self.user_id)

        self.user_id = user_id
        self.state = ConnectionState.BOUND

        replaced = await self._registry.bind(user_id, self.connection)
        if replaced is not None and self._close_replaced:
            try:
                await replaced.close(code=REPLACED_CLOSE_CODE, reason="Replaced by a newer connection")
            except Exception as e:
                logger.warning(
                    f"Error closing replaced connection: {str(e)}",
                    extra={"user_id": user_id}
                )

    async def _handle_typing(self) -> None:
        if self.state is not ConnectionState.BOUND:
            logger.debug("Ignored typing frame on unbound connection")
            return

        # attribute to the bound identity, never to the frame's payload
        user_id = self.user_id

        # the old timer must not fire while the typing broadcast is in flight
        await self._tracker.cancel(user_id)
        await self._broadcaster.broadcast_all(OutboundEvent.typing(user_id))
        await self._tracker.mark_typing(user_id, self._broadcast_stop_typing)

    async def _broadcast_stop_typing(self, user_id: str) -> None:
        await self._broadcaster.broadcast_all(OutboundEvent.stop_typing(user_id))

    async def _release_identity(self, user_id: str) -> None:
        await self._registry.unbind(user_id, self.connection)
        had_timer = await self._tracker.cancel(user_id)

        if had_timer and self._stop_typing_on_disconnect:
            await self._broadcast_stop_typing(user_id)
