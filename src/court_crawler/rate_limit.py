"""Pacing policies applied between upstream calls."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)


class RateLimiter(Protocol):
    """Policy awaited between two consecutive upstream calls."""

    async def wait(self) -> None: ...


class FixedDelayRateLimiter:
    """Sleeps a constant number of seconds between calls."""

    def __init__(
        self,
        delay_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if delay_seconds < 0:
            raise ValueError("delay_seconds must not be negative")
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    async def wait(self) -> None:
        if self.delay_seconds > 0:
            logger.debug(f"Waiting {self.delay_seconds}s before next request")
            await self._sleep(self.delay_seconds)


class NoDelayRateLimiter:
    """Does not wait at all."""

    async def wait(self) -> None:
        return None
