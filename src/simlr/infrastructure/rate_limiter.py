"""Outbound request throttling and retry backoff for metadata providers.

Hey future me - MusicBrainz allows 1 request per second per client and bans
IPs that ignore it. Every MusicBrainz request, retries included, must take a
token from the shared bucket returned by ``limiter_for("musicbrainz")``.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# service -> (tokens per second, burst size)
SERVICE_LIMITS: dict[str, tuple[float, int]] = {
    "musicbrainz": (1.0, 1),
    # Spotify tolerates ~3 req/s; stay below with room for short bursts
    "spotify": (2.0, 10),
}


@dataclass
class TokenBucket:
    """Async token bucket. Waiters are served in arrival order."""

    rate: float = 1.0
    burst: int = 1
    name: str = "default"
    clock: Callable[[], float] = time.monotonic

    _tokens: float = field(init=False)
    _stamp: float = field(init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.burst)
        self._stamp = self.clock()

    def _refill(self) -> None:
        now = self.clock()
        self._tokens = min(float(self.burst), self._tokens + (now - self._stamp) * self.rate)
        self._stamp = now

    async def acquire(self) -> None:
        # Sleeping under the lock keeps later callers queued behind this one
        async with self._lock:
            self._refill()
            if self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self.rate
                logger.debug("%s bucket empty, waiting %.2fs", self.name, wait)
                await asyncio.sleep(wait)
                self._refill()
            self._tokens = max(0.0, self._tokens - 1.0)

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    async def __aenter__(self) -> "TokenBucket":
        await self.acquire()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None


_buckets: dict[str, TokenBucket] = {}


def limiter_for(service: str) -> TokenBucket:
    """Process-wide bucket for ``service`` (see SERVICE_LIMITS)."""
    bucket = _buckets.get(service)
    if bucket is None:
        rate, burst = SERVICE_LIMITS[service]
        bucket = _buckets[service] = TokenBucket(rate=rate, burst=burst, name=service)
    return bucket


def backoff_delay(initial_delay: float, attempt: int) -> float:
    """``initial_delay * 2**attempt`` seconds before retry number ``attempt + 1``."""
    return initial_delay * (2**attempt)
