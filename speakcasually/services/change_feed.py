"""In-process broadcast of committed task changes.

Each WebSocket subscriber owns an ``asyncio.Queue``; routes publish a
:class:`ChangeEvent` after their transaction commits and every queue
receives a copy.

Usage::

    from speakcasually.services.change_feed import get_change_feed

    feed = get_change_feed()
    queue = feed.subscribe()
    event = await queue.get()
    feed.unsubscribe(queue)
"""

import asyncio
import logging

from speakcasually.core.models import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeFeed:
    """Fan-out of change events to any number of subscribers.

    Args:
        max_queue_size: Per-subscriber backlog; a subscriber that falls this
            far behind is dropped rather than blocking publishers.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[ChangeEvent | None]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue[ChangeEvent | None]:
        """Register a new subscriber queue."""
        queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        logger.debug("Change feed subscriber added (total=%d)", len(self._subscribers))
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ChangeEvent | None]) -> None:
        self._subscribers.discard(queue)
        logger.debug("Change feed subscriber removed (total=%d)", len(self._subscribers))

    def publish(self, *events: ChangeEvent) -> None:
        """Deliver *events* to every subscriber (non-blocking)."""
        for queue in list(self._subscribers):
            for event in events:
                try:
                    queue.put_nowait(event)
                except asyncio.QueueFull:
                    logger.warning("Dropping slow change feed subscriber")
                    self._subscribers.discard(queue)
                    # Swap the oldest backlog item for the close sentinel
                    queue.get_nowait()
                    queue.put_nowait(None)
                    break

    def close(self) -> None:
        """Detach all subscribers (server shutdown)."""
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(None)
        self._subscribers.clear()


_feed: ChangeFeed | None = None


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""
    global _feed
    if _feed is None:
        _feed = ChangeFeed()
    return _feed


def reset_change_feed() -> None:
    """Drop the process-wide change feed (test helper)."""
    global _feed
    if _feed is not None:
        _feed.close()
    _feed = None
