"""The broadcast server: one registry, fan-out engine, keep-alive and shutdown gate."""

import logging
from typing import Any, Callable

from sse_relay.config import Settings
from sse_relay.services.fanout import DEFAULT_EVENT_TYPE, BroadcastEvent, FanoutEngine
from sse_relay.services.keepalive import KeepaliveDriver
from sse_relay.services.registry import ConnectionRegistry, Subscriber
from sse_relay.services.shutdown import ShutdownCoordinator, ShutdownState

logger = logging.getLogger(__name__)

WELCOME_EVENT = BroadcastEvent(
    data="You are now connected to the SSE server.", event="service"
)


class RelayServer:
    def __init__(
        self,
        settings: Settings,
        terminate: Callable[[], None] | None = None,
    ) -> None:
        self.registry = ConnectionRegistry()
        self.fanout = FanoutEngine(self.registry)
        self.keepalive = KeepaliveDriver(self.fanout, settings.keepalive_seconds)
        self.shutdown = ShutdownCoordinator(
            settings.shutdown_grace_seconds, terminate=terminate
        )

    def start(self) -> None:
        self.keepalive.start()
        logger.info(
            "Relay started (keep-alive every %ss)", self.keepalive.interval_seconds
        )

    async def stop(self) -> None:
        await self.keepalive.stop()
        for subscriber in self.registry.snapshot():
            self.registry.remove(subscriber.handle)
            subscriber.close()
        logger.info("Relay stopped")

    def subscribe(self, address: str) -> Subscriber:
        """Register a new stream and queue the welcome event on it."""
        subscriber = Subscriber(address)
        self.registry.add(subscriber)
        subscriber.send(WELCOME_EVENT.encode())
        logger.info("SSE connection from %s", address)
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        subscriber.close()
        if self.registry.remove(subscriber.handle):
            logger.info("SSE disconnection from %s", subscriber.address)

    async def publish(self, data: Any, event: str | None = None) -> None:
        await self.fanout.broadcast(
            BroadcastEvent(data=data, event=event or DEFAULT_EVENT_TYPE)
        )

    @property
    def subscriber_count(self) -> int:
        return self.registry.count()

    @property
    def state(self) -> ShutdownState:
        return self.shutdown.state

    def request_shutdown(self) -> bool:
        return self.shutdown.request_shutdown(self.registry.count())
