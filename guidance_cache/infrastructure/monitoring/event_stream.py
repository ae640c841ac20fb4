"""
Live Cache Event Stream

A cache event listener that fans each event out to subscriber queues, so
the admin surface can push cache activity to a monitoring view as
server-sent events.

Slow subscribers never slow the cache: each queue is bounded and events
that do not fit are dropped for that subscriber.
"""

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import orjson
from pydantic import BaseModel

from guidance_cache.core.logging.logger import get_logger
from guidance_cache.infrastructure.cache.models import CacheEvent

logger = get_logger(__name__)


class SSEEvent(BaseModel):
    """
    Represents an SSE event to send to client.
    """
    event: str
    data: Any
    id: str | None = None

    def format(self) -> str:
        """Format as SSE protocol string."""
        lines = []
        if self.id:
            lines.append(f"id: {self.id}")
        lines.append(f"event: {self.event}")

        if isinstance(self.data, str):
            lines.append(f"data: {self.data}")
        else:
            lines.append(f"data: {orjson.dumps(self.data, default=str).decode('utf-8')}")

        return "\n".join(lines) + "\n\n"


class CacheEventStream:
    """
    Publish-subscribe hub for cache events.

    Usage:
        stream = CacheEventStream()
        store.instrumentation.add_listener(stream)

        queue = stream.subscribe()
        event = await queue.get()
        stream.unsubscribe(queue)
    """

    def __init__(self, queue_size: int = 100):
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()
        self._sequence = 0
        self.dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def __call__(self, event: CacheEvent) -> None:
        self._sequence += 1
        for queue in list(self._subscribers):
            try:
                queue.put_nowait((self._sequence, event))
            except asyncio.QueueFull:
                self.dropped += 1

    async def iter_sse(self, heartbeat_interval: float = 15.0) -> AsyncIterator[str]:
        """
        Yield formatted SSE frames until the consumer goes away.

        A heartbeat comment is sent when no event arrives within
        ``heartbeat_interval`` seconds.
        """
        queue = self.subscribe()
        try:
            while True:
                try:
                    sequence, event = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
                    continue
                yield SSEEvent(event=event.event, data=event.to_dict(), id=str(sequence)).format()
        finally:
            self.unsubscribe(queue)
            logger.debug("Cache event stream subscriber left", subscribers=self.subscriber_count)
