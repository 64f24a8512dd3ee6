"""Fan-out engine: frames one event and writes it to every registered subscriber."""

import json
import logging
from dataclasses import dataclass
from typing import Any

from sse_starlette import ServerSentEvent

from sse_relay.services.registry import ConnectionRegistry, SubscriberWriteError

logger = logging.getLogger(__name__)

DEFAULT_EVENT_TYPE = "message"
FRAME_SEPARATOR = "\n"


def serialize_payload(data: Any) -> str:
    """Strings go out verbatim, any other JSON value as compact JSON."""
    if isinstance(data, str):
        return data
    return json.dumps(data, ensure_ascii=False, separators=(",", ":"))


@dataclass(frozen=True)
class BroadcastEvent:
    data: Any = ""
    event: str = DEFAULT_EVENT_TYPE

    def encode(self) -> bytes:
        r"""``event: <type>`` and ``data: <payload>`` lines plus a blank line.

        Multi-line payloads become consecutive ``data:`` lines. Any of
        ``\r\n``, ``\r`` or ``\n`` ends a line, so a bare ``\r`` reaches
        subscribers as ``\n``.
        """
        return ServerSentEvent(
            data=serialize_payload(self.data),
            event=self.event or DEFAULT_EVENT_TYPE,
            sep=FRAME_SEPARATOR,
        ).encode()


class FanoutEngine:
    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    async def broadcast(self, event: BroadcastEvent) -> None:
        """Write event to a snapshot of the registry. Failed subscribers are dropped."""
        frame = event.encode()
        delivered = 0
        for subscriber in self._registry.snapshot():
            try:
                subscriber.send(frame)
                delivered += 1
            except SubscriberWriteError as exc:
                logger.warning("Dropping subscriber %s: %s", subscriber.address, exc)
                self._registry.remove(subscriber.handle)
                subscriber.close()
        logger.debug("Broadcast %r to %d subscriber(s)", event.event, delivered)
