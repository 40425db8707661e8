"""In-process change feed.

Services publish a ``ChangeEvent`` after each successful commit; subscribers
(for example the ``/changes`` websocket) receive them through bounded
per-subscriber queues. Events are notifications only: the store remains the
source of truth and subscribers re-read what they need.
"""

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from loguru import logger

VOTER_REGISTERED = "voter.registered"
VOTER_UPDATED = "voter.updated"
VOTE_CAST = "vote.cast"
FRAUD_ALERT = "fraud.alert"
ELECTION_UPDATED = "election.updated"
ROLL_IMPORTED = "roll.imported"


@dataclass(frozen=True)
class ChangeEvent:
    """A notification that a stored resource changed."""

    type: str
    resource_id: str
    data: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_message(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "type": self.type,
            "resource_id": self.resource_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


class ChangeFeed:
    """Fan-out publish/subscribe over asyncio queues."""

    def __init__(self, max_queue_size: int = 256) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue[ChangeEvent]] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def publish(self, event: ChangeEvent) -> None:
        """Deliver an event to every subscriber.

        A subscriber whose queue is full drops the oldest pending event.
        """
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                logger.warning("Change feed subscriber lagging; dropped oldest event")
            queue.put_nowait(event)

    def subscribe(self) -> asyncio.Queue[ChangeEvent]:
        queue: asyncio.Queue[ChangeEvent] = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[ChangeEvent]) -> None:
        self._subscribers.discard(queue)

    async def stream(self) -> AsyncIterator[ChangeEvent]:
        """Iterate over events until the consumer stops iterating."""
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)


_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    """Return the process-wide change feed."""
    return _feed
