"""Per-target request spacing for concurrent search and fetch calls."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from urllib.parse import urlparse

logger = logging.getLogger(__name__)


def throttle_target(url_or_label: str) -> str:
    """Host of a URL, or the label itself for non-URL targets like "search"."""
    value = (url_or_label or "").strip().lower()
    host = urlparse(value).netloc if "://" in value else ""
    if host.startswith("www."):
        host = host[4:]
    return host or value


class RequestThrottle:
    """
    Enforces a minimum gap between calls to the same target.

    Callers reserve the next free slot for their target and sleep until it
    arrives, so calls to different targets proceed in parallel.
    """

    def __init__(
        self,
        spacing: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.spacing = max(0.0, spacing)
        self._clock = clock
        self._sleep = sleep
        self._next_allowed_at: dict[str, float] = {}

    async def wait_for_turn(self, target: str) -> float:
        """
        Wait until the target may be hit again.

        Returns:
            Seconds waited (0 if no wait)
        """
        key = throttle_target(target)
        now = self._clock()
        # No await between read and write, so reservations never collide
        start = max(self._next_allowed_at.get(key, 0.0), now)
        self._next_allowed_at[key] = start + self.spacing

        delay = start - now
        if delay > 0:
            logger.debug(f"Throttling {key} for {delay:.2f}s")
            await self._sleep(delay)
            return delay
        return 0.0
