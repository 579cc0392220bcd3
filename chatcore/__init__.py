"""
Realtime presence service for the chat backend.

Tracks live client connections, handles inbound signaling (auth binding,
typing indicators) and fans out live events (presence, messages, reactions,
typing, delivery receipts) to connected clients.

Subpackages:
- realtime: connection registry, typing tracker, broadcaster, signaling
- config: environment-driven settings
- main: FastAPI application factory
"""

__version__ = "1.0.0"
