"""Token-bucket rate limiter with asyncio semaphore.

Public Sui fullnodes throttle aggressively, so every JSON-RPC call goes
through a limiter shared by all clients pointed at the same endpoint.
"""

import asyncio
import time
from urllib.parse import urlsplit

# Public fullnode budget; private RPC providers usually allow more.
DEFAULT_RPC_RATE = 5.0
DEFAULT_RPC_CONCURRENCY = 2
DEFAULT_RPC_BURST = 4


class RateLimiter:
    """Caps JSON-RPC traffic to one fullnode.

    A call needs both a concurrency slot and a token. Tokens refill at
    ``tokens_per_second`` up to ``burst``; the defaults fit the public
    Sui fullnodes.

    Args:
        tokens_per_second: Sustained request rate ceiling.
        max_concurrent: Maximum in-flight requests.
        burst: Maximum tokens that can accumulate.
    """

    def __init__(
        self,
        tokens_per_second: float = DEFAULT_RPC_RATE,
        max_concurrent: int = DEFAULT_RPC_CONCURRENCY,
        burst: int = DEFAULT_RPC_BURST,
    ):
        if tokens_per_second <= 0:
            raise ValueError("tokens_per_second must be > 0")
        self._rate = tokens_per_second
        self._capacity = float(burst)
        self._tokens = float(burst)
        self._stamp = time.monotonic()
        self._slots = asyncio.Semaphore(max_concurrent)
        self._bucket_lock = asyncio.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self._capacity, self._tokens + (now - self._stamp) * self._rate)
        self._stamp = now

    async def _take_token(self) -> None:
        async with self._bucket_lock:
            self._refill()
            if self._tokens >= 1.0:
                self._tokens -= 1.0
                return
            await asyncio.sleep((1.0 - self._tokens) / self._rate)
            self._refill()
            self._tokens = max(0.0, self._tokens - 1.0)

    async def acquire(self) -> None:
        """Wait for a concurrency slot, then for a token."""
        await self._slots.acquire()
        try:
            await self._take_token()
        except BaseException:
            # Cancelled while waiting for a token
            self._slots.release()
            raise

    def release(self) -> None:
        self._slots.release()

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, *exc):
        self.release()


_LIMITERS: dict[str, RateLimiter] = {}


def limiter_for(url: str) -> RateLimiter:
    """Return the shared limiter for the host serving ``url``."""
    host = urlsplit(url).netloc.lower() or url
    limiter = _LIMITERS.get(host)
    if limiter is None:
        limiter = _LIMITERS[host] = RateLimiter()
    return limiter
