"""Fixed-delay limiter placed in front of rate-limited model calls."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class FixedDelayRateLimiter:
    """Sleep a constant interval before every guarded call."""

    def __init__(
        self,
        delay_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self.waits = 0

    async def wait(self) -> None:
        if self.delay_seconds <= 0:
            return
        self.waits += 1
        logger.debug("Rate limit: sleeping %.2fs", self.delay_seconds)
        await self._sleep(self.delay_seconds)
