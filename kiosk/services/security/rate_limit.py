"""Process-local windowed rate limiting with temporary blocks."""
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from kiosk.core.config import settings

logger = logging.getLogger(__name__)

IDLE_EXPIRY_SECONDS = 60 * 60
CLEANUP_INTERVAL_SECONDS = 5 * 60


@dataclass
class RateLimitEntry:
    count: int
    first_attempt: float
    last_attempt: float
    blocked: bool = False
    block_until: float = 0.0


@dataclass
class RateLimitDecision:
    allowed: bool
    retry_after: Optional[int] = None  # seconds


class RateLimiter:
    """Counts attempts per identifier in a window starting at the first attempt.

    Going over ``max_attempts`` blocks the identifier for ``block_seconds``.
    Entries idle for an hour are pruned. State lives in this process only.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._attempts: Dict[str, RateLimitEntry] = {}
        self._last_cleanup = clock()

    def cleanup(self) -> int:
        now = self.clock()
        stale = [k for k, e in self._attempts.items() if now - e.last_attempt > IDLE_EXPIRY_SECONDS]
        for key in stale:
            del self._attempts[key]
        self._last_cleanup = now
        return len(stale)

    def check(
        self,
        identifier: str,
        max_attempts: int = 5,
        window_seconds: float = 15 * 60,
        block_seconds: float = 15 * 60,
    ) -> RateLimitDecision:
        now = self.clock()
        if now - self._last_cleanup > CLEANUP_INTERVAL_SECONDS:
            self.cleanup()

        entry = self._attempts.get(identifier)
        if entry and entry.blocked and now < entry.block_until:
            return RateLimitDecision(allowed=False, retry_after=math.ceil(entry.block_until - now))

        if entry is None or entry.blocked or now - entry.first_attempt > window_seconds:
            self._attempts[identifier] = RateLimitEntry(count=1, first_attempt=now, last_attempt=now)
            return RateLimitDecision(allowed=True)

        entry.count += 1
        entry.last_attempt = now
        if entry.count > max_attempts:
            entry.blocked = True
            entry.block_until = now + block_seconds
            logger.warning(
                f"[RATE LIMIT] Limit exceeded for {identifier[:10]}... - "
                f"{entry.count} attempts, blocked for {block_seconds:.0f}s"
            )
            return RateLimitDecision(allowed=False, retry_after=math.ceil(block_seconds))
        return RateLimitDecision(allowed=True)

    def reset(self, identifier: str) -> None:
        self._attempts.pop(identifier, None)

    def clear(self) -> None:
        self._attempts.clear()


def check_login_rate_limit(limiter: RateLimiter, identifier: str) -> RateLimitDecision:
    return limiter.check(
        f"login:{identifier}",
        max_attempts=settings.login_max_attempts,
        window_seconds=settings.login_window_seconds,
        block_seconds=settings.login_block_seconds,
    )


def check_api_rate_limit(limiter: RateLimiter, identifier: str) -> RateLimitDecision:
    return limiter.check(
        f"api:{identifier}",
        max_attempts=settings.api_max_requests,
        window_seconds=settings.api_window_seconds,
        block_seconds=settings.api_block_seconds,
    )
