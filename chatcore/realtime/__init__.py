"""
Realtime Package

This package contains the connection registry and broadcast/presence core.

Modules:
- registry: user → live connection map
- typing_tracker: debounced typing state with automatic expiry
- broadcast: fan-out and targeted delivery of outbound events
- signaling: per-connection inbound frame handling (auth, typing)
- hub: owned container wiring the above together for one application
- notifier / publisher: helpers for request handlers publishing store changes
- ws / events: WebSocket endpoint and internal HTTP endpoints

Routers are imported from their modules directly by the application factory.
"""

from .broadcast import Broadcaster
from .hub import RealtimeHub, get_realtime_hub
from .notifier import Notifier
from .publisher import RemoteEventPublisher
from .registry import Connection, ConnectionRegistry
from .signaling import ConnectionState, SignalingSession
from .typing_tracker import TypingTracker

__all__ = [
    "Broadcaster",
    "Connection",
    "ConnectionRegistry",
    "ConnectionState",
    "Notifier",
    "RealtimeHub",
    "RemoteEventPublisher",
    "SignalingSession",
    "TypingTracker",
    "get_realtime_hub",
]
