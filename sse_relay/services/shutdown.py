"""Shutdown coordinator: terminate only when no subscriber is connected.

A subscriber that connects during the grace delay is dropped when the
process exits. The registry is checked once, at request time.
"""

import asyncio
import enum
import logging
import os
import signal
from typing import Callable

logger = logging.getLogger(__name__)


class ShutdownState(str, enum.Enum):
    RUNNING = "running"
    DRAINING = "draining"
    TERMINATED = "terminated"


def signal_self() -> None:
    """Ask the hosting server (uvicorn) for its normal SIGTERM shutdown."""
    os.kill(os.getpid(), signal.SIGTERM)


class ShutdownCoordinator:
    def __init__(
        self,
        grace_seconds: float,
        terminate: Callable[[], None] | None = None,
    ) -> None:
        self.grace_seconds = grace_seconds
        self.state = ShutdownState.RUNNING
        self._terminate = terminate or signal_self

    def request_shutdown(self, subscriber_count: int) -> bool:
        """Schedule termination if ``subscriber_count`` is zero.

        Returns False, and changes nothing, while subscribers remain.
        """
        if subscriber_count > 0:
            logger.info(
                "Shutdown refused: %d subscriber(s) connected", subscriber_count
            )
            return False
        if self.state is not ShutdownState.RUNNING:
            return True

        self.state = ShutdownState.DRAINING
        loop = asyncio.get_running_loop()
        loop.call_later(self.grace_seconds, self._fire)
        logger.info("Shutdown scheduled in %.2fs", self.grace_seconds)
        return True

    def _fire(self) -> None:
        self.state = ShutdownState.TERMINATED
        logger.info("Terminating relay")
        self._terminate()
