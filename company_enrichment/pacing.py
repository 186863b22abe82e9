"""Per-collaborator politeness pacing."""

from __future__ import annotations

import asyncio
import logging
import time

logger = logging.getLogger(__name__)


class Pacer:
    """Enforces a minimum interval between successive request starts.

    One instance per external collaborator. Callers are serialised only while
    waiting for their slot, not for the duration of their request, so with a
    zero interval the pacer never blocks. Two pacers never wait on each other.
    """

    def __init__(self, min_interval: float, name: str = ""):
        if min_interval < 0:
            raise ValueError("min_interval must be >= 0")
        self.min_interval = min_interval
        self.name = name
        self._lock = asyncio.Lock()
        self._last_start: float | None = None

    async def wait(self) -> None:
        """Block until this caller may start its request."""
        if self.min_interval == 0:
            return
        async with self._lock:
            if self._last_start is not None:
                elapsed = time.monotonic() - self._last_start
                if elapsed < self.min_interval:
                    delay = self.min_interval - elapsed
                    logger.debug("Pacing %s: sleeping %.2fs", self.name or "collaborator", delay)
                    await asyncio.sleep(delay)
            self._last_start = time.monotonic()


class PacerRegistry:
    """Hands out one Pacer per collaborator name."""

    def __init__(self, intervals: dict[str, float] | None = None):
        self._intervals = dict(intervals or {})
        self._pacers: dict[str, Pacer] = {}

    def get(self, name: str) -> Pacer:
        if name not in self._pacers:
            self._pacers[name] = Pacer(self._intervals.get(name, 0.0), name=name)
        return self._pacers[name]
