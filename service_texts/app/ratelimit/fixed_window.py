"""
Fixed-window rate limiter for Texts Service.
"""

import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import StoreUnavailableError

from ..store.redis_store import KeyValueStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one admission check."""
    allowed: bool
    limit: int
    remaining: int
    reset_at_ms: int
    retry_after_ms: int
    purpose: str
    identity: str
    degraded: bool = False

    def headers(self) -> Dict[str, str]:
        """Quota headers for the HTTP response."""
        reset_at = datetime.fromtimestamp(self.reset_at_ms / 1000, tz=timezone.utc)
        headers = {
            "RateLimit-Limit": str(self.limit),
            "RateLimit-Remaining": str(self.remaining),
            "RateLimit-Reset": reset_at.isoformat().replace("+00:00", "Z"),
        }
        if not self.allowed:
            headers["Retry-After"] = str(max(1, math.ceil(self.retry_after_ms / 1000)))
        return headers


class FixedWindowRateLimiter:
    """Distributed fixed-window counter limiter.

    Time is cut into windows of ``window_ms`` aligned to the epoch. Each
    (purpose, identity, window) has its own counter in the store, advanced
    with an atomic increment and expiring with the window. If the store
    cannot be reached the request is admitted and the decision is flagged
    as degraded.
    """

    KEY_PREFIX = "ratewindow:"

    def __init__(
        self,
        store: KeyValueStore,
        *,
        metrics: Optional["MetricsCollector"] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("texts.rate_limiter")

    def _make_key(self, purpose: str, identity: str, window_index: int) -> str:
        return f"{self.KEY_PREFIX}{purpose}:{identity}:{window_index}"

    def _record(self, purpose: str, decision: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("rate_limit_decisions_total", purpose=purpose, decision=decision)

    async def admit(self, purpose: str, identity: str, max_requests: int, window_ms: int) -> RateLimitDecision:
        """Count one request against the current window and decide."""
        if not purpose or not identity:
            raise ValueError("purpose and identity are required")
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be at least 1")

        now_ms = int(self.clock() * 1000)
        window_index = now_ms // window_ms
        reset_at_ms = (window_index + 1) * window_ms
        ttl_seconds = math.ceil(window_ms / 1000)
        key = self._make_key(purpose, identity, window_index)

        try:
            count = await self.store.increment(key, ttl_seconds)
        except StoreUnavailableError as e:
            self.logger.warning(
                "Rate limit store unavailable, admitting request",
                purpose=purpose,
                identity=identity,
                error=e.message
            )
            self._record(purpose, "fail_open")
            return RateLimitDecision(
                allowed=True,
                limit=max_requests,
                remaining=max_requests,
                reset_at_ms=reset_at_ms,
                retry_after_ms=0,
                purpose=purpose,
                identity=identity,
                degraded=True,
            )

        if count > max_requests:
            self.logger.warning(
                "Rate limit exceeded",
                purpose=purpose,
                identity=identity,
                count=count,
                limit=max_requests
            )
            self._record(purpose, "rejected")
            return RateLimitDecision(
                allowed=False,
                limit=max_requests,
                remaining=0,
                reset_at_ms=reset_at_ms,
                retry_after_ms=reset_at_ms - now_ms,
                purpose=purpose,
                identity=identity,
            )

        self._record(purpose, "allowed")
        return RateLimitDecision(
            allowed=True,
            limit=max_requests,
            remaining=max_requests - count,
            reset_at_ms=reset_at_ms,
            retry_after_ms=0,
            purpose=purpose,
            identity=identity,
        )
