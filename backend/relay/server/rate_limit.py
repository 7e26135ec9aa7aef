"""Per-connection token bucket for inbound WebSocket frames."""

import time


class TokenBucket:
    """Token bucket rate limiter.

    The bucket starts full at `burst` tokens and refills at `rate` tokens per
    second, never beyond `burst`. consume() spends one token and returns False
    once the bucket is empty.
    """

    def __init__(self, rate: float, burst: int, *, clock=time.monotonic) -> None:
        self._rate = rate
        self._burst = burst
        self._clock = clock
        self._tokens = float(burst)
        self._last_refill = clock()

    @property
    def available(self) -> float:
        return self._tokens

    def consume(self) -> bool:
        now = self._clock()
        self._tokens = min(self._burst, self._tokens + (now - self._last_refill) * self._rate)
        self._last_refill = now

        if self._tokens < 1.0:
            return False
        self._tokens -= 1.0
        return True
