"""Connection registry: the set of currently open subscriber streams."""

import asyncio
import itertools
import logging
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

CLIENT_QUEUE_MAXSIZE = 64


class SubscriberWriteError(Exception):
    """Raised when a frame cannot be handed to a subscriber stream."""

    pass


class Subscriber:
    """One long-lived outbound stream.

    Frames are queued here and drained by the HTTP response generator,
    so a write never waits on the client socket.
    """

    def __init__(self, address: str, maxsize: int = CLIENT_QUEUE_MAXSIZE) -> None:
        self.address = address
        self.handle: int | None = None
        self.connected_at = datetime.now(timezone.utc)
        self.closed = False
        self._queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=maxsize)

    def send(self, frame: bytes) -> None:
        if self.closed:
            raise SubscriberWriteError(f"subscriber {self.handle} is closed")
        try:
            self._queue.put_nowait(frame)
        except asyncio.QueueFull:
            raise SubscriberWriteError(f"subscriber {self.handle} queue is full")

    async def receive(self, timeout: float) -> bytes | None:
        """Next queued frame, or None if nothing arrived within ``timeout``."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def close(self) -> None:
        self.closed = True

    def __repr__(self) -> str:
        return f"<Subscriber handle={self.handle} address={self.address!r}>"


class ConnectionRegistry:
    """Membership of open subscribers, keyed by a registry-assigned handle.

    Only touched from the event loop, so no locking.
    """

    def __init__(self) -> None:
        self._subscribers: dict[int, Subscriber] = {}
        self._handles = itertools.count(1)

    def add(self, subscriber: Subscriber) -> int:
        if subscriber.handle is not None and subscriber.handle in self._subscribers:
            return subscriber.handle
        handle = next(self._handles)
        subscriber.handle = handle
        self._subscribers[handle] = subscriber
        return handle

    def remove(self, handle: int | None) -> bool:
        """Drop a subscriber. Unknown or already removed handles are ignored."""
        if handle is None:
            return False
        return self._subscribers.pop(handle, None) is not None

    def count(self) -> int:
        return len(self._subscribers)

    def snapshot(self) -> list[Subscriber]:
        return list(self._subscribers.values())

    def __contains__(self, subscriber: Subscriber) -> bool:
        return self._subscribers.get(subscriber.handle) is subscriber
