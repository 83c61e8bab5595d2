"""
In-process change feed for newly stored punches.

Writers publish after commit; readers (the ``/feed`` event stream) hold an
``asyncio.Queue`` each and re-run the reducer when something arrives.  A
slow reader whose queue is full loses messages rather than blocking writers.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from punchclock.core.ledger import PunchEvent

logger = logging.getLogger(__name__)


class ChangeFeed:
    def __init__(self, max_queue: int = 100) -> None:
        self._max_queue = max_queue
        self._subscribers: set[asyncio.Queue[PunchEvent]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[PunchEvent]:
        queue: asyncio.Queue[PunchEvent] = asyncio.Queue(maxsize=self._max_queue)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[PunchEvent]) -> None:
        self._subscribers.discard(queue)

    def publish(self, event: PunchEvent) -> int:
        """Fan ``event`` out to every subscriber; returns how many got it."""
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning("Change feed subscriber lagging, dropped punch %s", event.id)
        return delivered

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue[PunchEvent]]:
        queue = self.subscribe()
        try:
            yield queue
        finally:
            self.unsubscribe(queue)


punch_feed = ChangeFeed()
