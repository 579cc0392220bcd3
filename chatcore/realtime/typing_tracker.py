"""
Typing Tracker

Per-user debounced "typing" state with automatic expiry. Each typing event
(re)arms a single expiry timer for the user; when the timer fires the entry
is removed and the expiry callback runs once.

Timers are asyncio tasks. Cancellation is best-effort: a timer that has
already passed its generation check will still run its callback.
"""

import asyncio
import itertools
import logging
from typing import Awaitable, Callable, Dict, List, Set, Tuple


logger = logging.getLogger("chatcore.realtime.typing")

DEFAULT_TYPING_TIMEOUT_SECONDS = 3.0

ExpiryCallback = Callable[[str], Awaitable[None]]


class TypingTracker:
    """
    Tracks which users are typing, keyed by user id.

    Attributes:
        timeout_seconds: Delay between the last typing event and expiry
    """

    def __init__(self, timeout_seconds: float = DEFAULT_TYPING_TIMEOUT_SECONDS) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.timeout_seconds = timeout_seconds

        # user_id -> (generation, pending expiry task)
        self._timers: Dict[str, Tuple[int, asyncio.Task]] = {}

        # Strong references until each task finishes, including callbacks in flight
        self._tasks: Set[asyncio.Task] = set()

        self._generations = itertools.count(1)
        self._lock = asyncio.Lock()

    async def mark_typing(self, user_id: str, on_expire: ExpiryCallback) -> None:
        """
        Start or restart the expiry window for ``user_id``.

        Any pending timer for the user is cancelled first, so a burst of
        typing events produces a single expiry after the last one.

        Args:
            user_id: Typing user
            on_expire: Awaited with ``user_id`` once the window elapses
        """
        async with self._lock:
            previous = self._timers.pop(user_id, None)
            if previous is not None:
                previous[1].cancel()

            generation = next(self._generations)
            task = asyncio.create_task(
                self._expire_after(user_id, generation, on_expire),
                name=f"typing-expiry:{user_id}",
            )
            self._timers[user_id] = (generation, task)
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        logger.debug(
            f"Typing window {'restarted' if previous else 'started'} for {user_id}",
            extra={"user_id": user_id, "timeout_seconds": self.timeout_seconds}
        )

    async def cancel(self, user_id: str) -> bool:
        """
        Cancel the pending timer for ``user_id`` without running its callback.

        Returns:
            bool: True if a timer was pending
        """
        async with self._lock:
            entry = self._timers.pop(user_id, None)
            if entry is None:
                return False
            entry[1].cancel()

        logger.debug(f"Cancelled typing timer for {user_id}")
        return True

    async def cancel_all(self) -> None:
        """Cancel every timer, including callbacks already running. Used on shutdown."""
        async with self._lock:
            self._timers.clear()
            tasks = list(self._tasks)

        for task in tasks:
            task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)

        if tasks:
            logger.info(f"Cancelled {len(tasks)} typing timers")

    def is_typing(self, user_id: str) -> bool:
        return user_id in self._timers

    def typing_user_ids(self) -> List[str]:
        return sorted(self._timers)

    async def _expire_after(
        self, user_id: str, generation: int, on_expire: ExpiryCallback
    ) -> None:
        await asyncio.sleep(self.timeout_seconds)

        async with self._lock:
            entry = self._timers.get(user_id)
            # stale: replaced or cancelled while we were waking up
            if entry is None or entry[0] != generation:
                return
            del self._timers[user_id]

        logger.debug(f"Typing window expired for {user_id}")

        try:
            await on_expire(user_id)
        except Exception as e:
            logger.error(
                f"Typing expiry callback failed: {str(e)}",
                extra={"user_id": user_id},
                exc_info=True
            )
