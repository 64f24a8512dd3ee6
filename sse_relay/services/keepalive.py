"""Background task: periodic ping event so subscribers can detect a dead relay."""

import asyncio
import logging

from sse_relay.services.fanout import BroadcastEvent, FanoutEngine

logger = logging.getLogger(__name__)

PING_EVENT = BroadcastEvent(data="", event="ping")


class KeepaliveDriver:
    def __init__(self, fanout: FanoutEngine, interval_seconds: float) -> None:
        self._fanout = fanout
        self.interval_seconds = interval_seconds
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self._fanout.broadcast(PING_EVENT)
            except Exception:
                logger.exception("keepalive: ping broadcast failed")
