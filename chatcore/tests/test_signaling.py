"""
Unit Tests for the Signaling Protocol Handler
=============================================

Tests for chatcore/realtime/signaling.py

Test Coverage:
--------------
1. auth binds the connection (UNBOUND -> BOUND)
2. typing broadcasts immediately, stop-typing after the window
3. typing before auth, malformed frames and unknown types are ignored
4. close unbinds and cancels the pending typing timer
5. Replacement and re-auth policies
"""

import asyncio
import json

import pytest

from chatcore.realtime.signaling import REPLACED_CLOSE_CODE, ConnectionState, SignalingSession
from chatcore.realtime.typing_tracker import TypingTracker


def frame(frame_type, **payload):
    return json.dumps({"type": frame_type, "payload": payload})


TYPING_USER1 = {"type": "typing", "payload": {"userId": "user1"}}
STOP_TYPING_USER1 = {"type": "stop-typing", "payload": {"userId": "user1"}}


# ============================================================================
# Binding
# ============================================================================

@pytest.mark.asyncio
async def test_auth_binds_connection(open_session, registry, make_connection):
    conn = make_connection("a")
    session = open_session(conn)
    assert session.state is ConnectionState.UNBOUND

    await session.handle_frame(frame("auth", userId="user1"))

    assert session.state is ConnectionState.BOUND
    assert session.user_id == "user1"
    assert await registry.lookup("user1") is conn


@pytest.mark.asyncio
@pytest.mark.parametrize("raw", [
    "not json",
    "[1, 2, 3]",
    json.dumps({"payload": {"userId": "user1"}}),
    json.dumps({"type": "auth"}),
    json.dumps({"type": "auth", "payload": {"userId": ""}}),
    json.dumps({"type": "auth", "payload": {"userId": 42}}),
    json.dumps({"type": "auth", "payload": "user1"}),
])
async def test_malformed_frames_are_ignored(open_session, registry, make_connection, raw):
    """Malformed frames leave the session unbound and send nothing back"""
    conn = make_connection("a")
    session = open_session(conn)

    await session.handle_frame(raw)

    assert session.state is ConnectionState.UNBOUND
    assert await registry.count() == 0
    assert conn.sent == []


@pytest.mark.asyncio
async def test_unknown_frame_type_is_ignored(open_session, registry, make_connection):
    conn = make_connection("a")
    session = open_session(conn)
    await session.handle_frame(frame("auth", userId="user1"))

    await session.handle_frame(frame("join-room", roomId="general"))

    assert session.state is ConnectionState.BOUND
    assert conn.sent == []


@pytest.mark.asyncio
async def test_binary_frame_is_accepted(open_session, registry, make_connection):
    session = open_session(make_connection())

    await session.handle_frame(frame("auth", userId="user1").encode())

    assert session.state is ConnectionState.BOUND


# ============================================================================
# Typing
# ============================================================================

@pytest.mark.asyncio
async def test_typing_before_auth_is_noop(open_session, tracker, make_connection):
    conn = make_connection("a")
    watcher = make_connection("b")
    open_session(watcher)
    session = open_session(conn)

    await session.handle_frame(frame("typing", userId="user1"))

    assert tracker.typing_user_ids() == []
    assert conn.sent == []


@pytest.mark.asyncio
async def test_typing_then_stop_typing_end_to_end(open_session, tracker, make_connection):
    """A types: every connection gets typing at once and stop-typing after the window"""
    a = make_connection("a")
    b = make_connection("b")
    session_a = open_session(a)
    session_b = open_session(b)
    await session_a.handle_frame(frame("auth", userId="user1"))
    await session_b.handle_frame(frame("auth", userId="user2"))

    await session_a.handle_frame(frame("typing", userId="user1"))

    # delivered before handle_frame returned
    assert a.sent == [TYPING_USER1]
    assert b.sent == [TYPING_USER1]
    assert tracker.is_typing("user1")

    await asyncio.sleep(tracker.timeout_seconds * 3)

    assert a.sent == [TYPING_USER1, STOP_TYPING_USER1]
    assert b.sent == [TYPING_USER1, STOP_TYPING_USER1]
    assert not tracker.is_typing("user1")


@pytest.mark.asyncio
async def test_repeated_typing_debounces_stop_typing(open_session, tracker, make_connection):
    conn = make_connection("a")
    session = open_session(conn)
    await session.handle_frame(frame("auth", userId="user1"))

    for _ in range(3):
        await session.handle_frame(frame("typing", userId="user1"))
        await asyncio.sleep(tracker.timeout_seconds / 3)

    await asyncio.sleep(tracker.timeout_seconds * 3)

    assert len(conn.frames_of("typing")) == 3
    assert len(conn.frames_of("stop-typing")) == 1


@pytest.mark.asyncio
async def test_slow_typing_broadcast_does_not_let_old_timer_fire(
    registry, broadcaster, make_connection
):
    """The pending timer is cancelled before the typing broadcast, not after it"""
    tracker = TypingTracker(timeout_seconds=0.1)
    send_delay = 0.08
    typer = make_connection("typer")
    watcher = make_connection("watcher", delay=send_delay)
    session = SignalingSession(typer, registry, tracker, broadcaster)
    await session.handle_frame(frame("auth", userId="user1"))
    await registry.bind("user2", watcher)

    await session.handle_frame(frame("typing", userId="user1"))
    await asyncio.sleep(tracker.timeout_seconds / 2)
    # the old window would end while this broadcast is still sending to the watcher
    await session.handle_frame(frame("typing", userId="user1"))

    await asyncio.sleep(tracker.timeout_seconds * 3 + send_delay * 2)

    assert [event["type"] for event in watcher.sent] == ["typing", "typing", "stop-typing"]
    assert len(typer.frames_of("stop-typing")) == 1


@pytest.mark.asyncio
async def test_typing_uses_bound_identity(open_session, make_connection):
    """The frame payload cannot impersonate another user"""
    conn = make_connection("a")
    session = open_session(conn)
    await session.handle_frame(frame("auth", userId="user1"))

    await session.handle_frame(frame("typing", userId="someone-else"))

    assert conn.sent == [TYPING_USER1]


# ============================================================================
# Close
# ============================================================================

@pytest.mark.asyncio
async def test_close_unbinds_and_cancels_typing(open_session, registry, tracker, make_connection):
    """A closes while typing: lookup is empty and stop-typing never fires"""
    a = make_connection("a")
    watcher = make_connection("b")
    session_a = open_session(a)
    session_b = open_session(watcher)
    await session_a.handle_frame(frame("auth", userId="user1"))
    await session_b.handle_frame(frame("auth", userId="user2"))
    await session_a.handle_frame(frame("typing", userId="user1"))

    await session_a.close()

    assert session_a.state is ConnectionState.CLOSED
    assert await registry.lookup("user1") is None

    await asyncio.sleep(tracker.timeout_seconds * 3)

    assert watcher.sent == [TYPING_USER1]


@pytest.mark.asyncio
async def test_close_unbound_session_is_noop(open_session, registry, make_connection):
    other = make_connection("other")
    await registry.bind("user1", other)
    session = open_session(make_connection())

    await session.close()

    assert session.state is ConnectionState.CLOSED
    assert await registry.lookup("user1") is other


@pytest.mark.asyncio
async def test_close_is_idempotent_and_ignores_later_frames(open_session, registry, make_connection):
    session = open_session(make_connection())
    await session.handle_frame(frame("auth", userId="user1"))

    await session.close()
    await session.close()
    await session.handle_frame(frame("auth", userId="user1"))

    assert session.state is ConnectionState.CLOSED
    assert await registry.lookup("user1") is None


@pytest.mark.asyncio
async def test_close_can_broadcast_stop_typing(open_session, make_connection):
    a = make_connection("a")
    watcher = make_connection("b")
    session_a = open_session(a, stop_typing_on_disconnect=True)
    session_b = open_session(watcher)
    await session_a.handle_frame(frame("auth", userId="user1"))
    await session_b.handle_frame(frame("auth", userId="user2"))
    await session_a.handle_frame(frame("typing", userId="user1"))

    await session_a.close()

    assert watcher.sent == [TYPING_USER1, STOP_TYPING_USER1]


# ============================================================================
# Replacement and re-auth
# ============================================================================

@pytest.mark.asyncio
async def test_superseded_connection_close_keeps_replacement(open_session, registry, make_connection):
    old = make_connection("old")
    new = make_connection("new")
    old_session = open_session(old)
    new_session = open_session(new)
    await old_session.handle_frame(frame("auth", userId="user1"))
    await new_session.handle_frame(frame("auth", userId="user1"))

    await old_session.close()

    assert await registry.lookup("user1") is new
    assert old.closed is None


@pytest.mark.asyncio
async def test_replaced_connection_closed_when_configured(open_session, registry, make_connection):
    old = make_connection("old")
    new = make_connection("new")
    await open_session(old).handle_frame(frame("auth", userId="user1"))

    await open_session(new, close_replaced=True).handle_frame(frame("auth", userId="user1"))

    assert old.closed is not None
    assert old.closed[0] == REPLACED_CLOSE_CODE
    assert await registry.lookup("user1") is new


@pytest.mark.asyncio
async def test_reauth_as_other_user_releases_previous_identity(
    open_session, registry, tracker, make_connection
):
    conn = make_connection()
    session = open_session(conn)
    await session.handle_frame(frame("auth", userId="user1"))
    await session.handle_frame(frame("typing", userId="user1"))

    await session.handle_frame(frame("auth", userId="user2"))

    assert await registry.lookup("user1") is None
    assert await registry.lookup("user2") is conn
    assert not tracker.is_typing("user1")
    assert session.user_id == "user2"
