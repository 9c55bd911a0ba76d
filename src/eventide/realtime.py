"""In-process publish/subscribe feed of new chat messages.

Each subscriber gets an ``asyncio.Queue`` scoped to one collaboration and
receives rows in the order they were published. There is no replay: a
subscriber only sees messages published after it subscribed.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any

logger = logging.getLogger(__name__)

# Sentinel that tells a stream generator to stop (used on shutdown and in tests)
SHUTDOWN = object()


class MessageFeed:
    """Fan newly inserted messages out to the subscribers of their space."""

    def __init__(self, maxsize: int = 256) -> None:
        self._maxsize = maxsize
        self._subscribers: dict[str, list[asyncio.Queue]] = defaultdict(list)

    def subscribe(self, collab_id: Any) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._maxsize)
        self._subscribers[str(collab_id)].append(queue)
        return queue

    def unsubscribe(self, collab_id: Any, queue: asyncio.Queue) -> None:
        key = str(collab_id)
        queues = self._subscribers.get(key)
        if not queues:
            return
        if queue in queues:
            queues.remove(queue)
        if not queues:
            del self._subscribers[key]

    def subscriber_count(self, collab_id: Any) -> int:
        return len(self._subscribers.get(str(collab_id), ()))

    def publish(self, collab_id: Any, message: dict[str, Any]) -> None:
        """Push *message* to every subscriber of *collab_id*.

        Subscribers whose queue is full are dropped.
        """
        key = str(collab_id)
        dead: list[asyncio.Queue] = []
        for queue in self._subscribers.get(key, ()):
            try:
                queue.put_nowait(message)
            except asyncio.QueueFull:
                dead.append(queue)
        for queue in dead:
            logger.warning("Dropping slow message subscriber for %s", key)
            self.unsubscribe(key, queue)

    def close(self) -> None:
        """Wake every subscriber with the shutdown sentinel."""
        for queues in list(self._subscribers.values()):
            for queue in queues:
                try:
                    queue.put_nowait(SHUTDOWN)
                except asyncio.QueueFull:
                    pass
        self._subscribers.clear()
