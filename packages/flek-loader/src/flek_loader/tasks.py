"""Per-key queues of callers waiting on an in-flight fetch.

A waiter is an ``asyncio.Future`` created by the caller. The first waiter for
a key starts a fetch; later waiters join it and are notified, in arrival
order, when the fetch completes.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

Waiter = asyncio.Future[Any]


class EnqueueResult(str, Enum):
    """Outcome of TaskQueue.enqueue."""

    JOINED = "joined"
    STARTED = "started"


class TaskQueue:
    """Mapping from artifact key to the ordered waiters of its fetch.

    ``enqueue`` performs the existence check and the append or create as one
    step with no suspension point, so two requests for the same key can never
    both observe ``STARTED`` on a single event loop.

    Example:
        >>> queue = TaskQueue()
        >>> queue.enqueue("a", first)
        <EnqueueResult.STARTED: 'started'>
        >>> queue.enqueue("a", second)
        <EnqueueResult.JOINED: 'joined'>
        >>> queue.drain("a") == [first, second]
        True
    """

    def __init__(self) -> None:
        self._waiters: dict[str, list[Waiter]] = {}

    def enqueue(self, key: str, waiter: Waiter) -> EnqueueResult:
        """Register a waiter for a key.

        Args:
            key: Artifact key.
            waiter: Future resolved when the key's fetch completes.

        Returns:
            STARTED if this waiter opened a new queue and the caller must start
            the fetch, JOINED if a fetch for the key is already in flight.
        """
        waiters = self._waiters.get(key)
        if waiters is not None:
            waiters.append(waiter)
            return EnqueueResult.JOINED
        self._waiters[key] = [waiter]
        return EnqueueResult.STARTED

    def drain(self, key: str) -> list[Waiter]:
        """Remove and return every waiter registered for a key.

        Called exactly once per fetch, at completion. Draining an unknown key
        returns an empty list.
        """
        return self._waiters.pop(key, [])

    def get(self, key: str) -> list[Waiter] | None:
        """Return a copy of the live waiter list, or None when nothing is in flight."""
        waiters = self._waiters.get(key)
        return list(waiters) if waiters is not None else None

    def pending(self, key: str) -> int:
        return len(self._waiters.get(key, ()))

    def __contains__(self, key: object) -> bool:
        return key in self._waiters

    def __len__(self) -> int:
        return len(self._waiters)
