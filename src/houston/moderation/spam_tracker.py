"""Per-user sliding-window message log used by the spam trigger."""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from houston.util.logger import get_logger

logger = get_logger("spam_tracker")


@dataclass(frozen=True, slots=True)
class SpamEntry:
    content: str
    timestamp: float
    message_id: str


class SpamWindowTracker:
    """
    Track recent messages per user and decide when a rate threshold is crossed.

    Each evaluation appends the message to the author's log, drops entries
    older than the rule's window and stores the pruned log back. Separately,
    roughly ``sweep_probability`` of the evaluations run a sweep over every
    user that evicts entries older than ``sweep_ceiling_seconds`` and forgets
    users left with nothing, which keeps memory bounded for users who stop
    posting.

    The update of a user's log contains no ``await``, so it is atomic with
    respect to other message handlers on the same event loop.

    Args:
        sweep_probability (float): Chance that an evaluation triggers a global sweep.
        sweep_ceiling_seconds (float): Maximum age kept by the global sweep.
        clock (Callable[[], float]): Monotonic time source in seconds.
        rng (random.Random | None): Random source for the sweep decision.
    """

    def __init__(
        self,
        *,
        sweep_probability: float = 0.01,
        sweep_ceiling_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        rng: random.Random | None = None,
    ) -> None:
        self.sweep_probability = sweep_probability
        self.sweep_ceiling_seconds = sweep_ceiling_seconds
        self._clock = clock
        self._rng = rng or random.Random()
        self._logs: Dict[str, List[SpamEntry]] = {}

    def record(self, user_id: str, message_id: str, content: str, window_seconds: float) -> int:
        """
        Log a message for ``user_id`` and return how many fall inside the window.

        A message id already present in the log is not appended twice, so
        several spam rules evaluating the same message count it once.

        Args:
            user_id (str): Author of the message.
            message_id (str): Message identifier.
            content (str): Message text.
            window_seconds (float): Trailing window of the evaluating rule.

        Returns:
            int: Number of the user's messages within the window, this one included.
        """
        now = self._clock()
        user_log = self._logs.get(user_id, [])
        if not any(entry.message_id == message_id for entry in user_log):
            user_log.append(SpamEntry(content=content, timestamp=now, message_id=message_id))

        recent = [entry for entry in user_log if now - entry.timestamp <= window_seconds]
        self._logs[user_id] = recent

        if self._rng.random() < self.sweep_probability:
            self.sweep()

        return len(recent)

    def exceeds_threshold(
        self,
        user_id: str,
        message_id: str,
        content: str,
        window_seconds: float,
        min_messages: int,
    ) -> bool:
        """Record the message and return True when the window holds at least ``min_messages``."""
        return self.record(user_id, message_id, content, window_seconds) >= min_messages

    def sweep(self) -> int:
        """
        Evict entries older than the sweep ceiling across all users.

        Returns:
            int: Number of entries removed.
        """
        now = self._clock()
        removed = 0
        for user_id in list(self._logs):
            kept = [entry for entry in self._logs[user_id] if now - entry.timestamp <= self.sweep_ceiling_seconds]
            removed += len(self._logs[user_id]) - len(kept)
            if kept:
                self._logs[user_id] = kept
            else:
                del self._logs[user_id]
        if removed:
            logger.debug("[SPAM TRACKER] Swept %d stale entries; %d users tracked", removed, len(self._logs))
        return removed

    def entries_for(self, user_id: str) -> Tuple[SpamEntry, ...]:
        return tuple(self._logs.get(user_id, ()))

    @property
    def tracked_users(self) -> int:
        return len(self._logs)

    def clear(self) -> None:
        self._logs.clear()
