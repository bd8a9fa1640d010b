"""
Rate limiting package for Texts Service.

Provides a fixed-window counter limiter over the shared key-value store,
the per-endpoint policies and the FastAPI guard that enforces them.
The limiter fails open when the store is unavailable.
"""

from .fixed_window import FixedWindowRateLimiter, RateLimitDecision
from .policies import DEFAULT_POLICIES, RateLimitPolicy, load_policies
from .guard import RateLimitGuard

__all__ = [
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "DEFAULT_POLICIES",
    "RateLimitPolicy",
    "load_policies",
    "RateLimitGuard",
]
