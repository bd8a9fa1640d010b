"""
Rate limit policies for Texts Service endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union
import json

from shared.logging import get_logger


logger = get_logger("texts.rate_limit_policies")

MINUTE_MS = 60 * 1000

IDENTITY_IP = "ip"
IDENTITY_USER = "user"


@dataclass(frozen=True)
class RateLimitPolicy:
    """Quota applied to one group of endpoints."""

    purpose: str
    window_ms: int
    max_requests: int
    identity_mode: str = IDENTITY_IP
    message: str = "Too many requests, please try again later."

    def __post_init__(self):
        if self.window_ms < 1 or self.max_requests < 1:
            raise ValueError(f"Invalid rate limit policy for {self.purpose}")
        if self.identity_mode not in (IDENTITY_IP, IDENTITY_USER):
            raise ValueError(f"Unknown identity mode: {self.identity_mode}")


DEFAULT_POLICIES: Dict[str, RateLimitPolicy] = {
    "general": RateLimitPolicy(
        "general", 15 * MINUTE_MS, 100, IDENTITY_IP,
        "Too many requests from this IP, please try again later."
    ),
    "auth": RateLimitPolicy(
        "auth", 15 * MINUTE_MS, 5, IDENTITY_IP,
        "Too many authentication attempts from this IP, please try again later."
    ),
    "register": RateLimitPolicy(
        "register", 60 * MINUTE_MS, 3, IDENTITY_IP,
        "Too many registration attempts from this IP, please try again later."
    ),
    "analysis": RateLimitPolicy(
        "analysis", 5 * MINUTE_MS, 10, IDENTITY_USER,
        "Too many analysis requests, please try again later."
    ),
    "textmod": RateLimitPolicy(
        "textmod", 10 * MINUTE_MS, 20, IDENTITY_USER,
        "Too many text modification requests, please try again later."
    ),
    "health": RateLimitPolicy(
        "health", 1 * MINUTE_MS, 30, IDENTITY_IP,
        "Too many health check requests."
    ),
}


def load_policies(config_path: Optional[Union[str, Path]] = None) -> Dict[str, RateLimitPolicy]:
    """Default policies, with overrides from a JSON file when given.

    The file maps a purpose to the fields to override, e.g.
    ``{"auth": {"max_requests": 10}}``. Unknown purposes add new policies.
    """
    policies = dict(DEFAULT_POLICIES)
    if not config_path:
        return policies

    path = Path(config_path)
    with path.open("r", encoding="utf-8") as handle:
        overrides: Dict[str, Dict[str, Any]] = json.load(handle)

    for purpose, fields in overrides.items():
        fields = {key: value for key, value in fields.items() if key != "purpose"}
        base = policies.get(purpose)
        policies[purpose] = replace(base, **fields) if base else RateLimitPolicy(purpose=purpose, **fields)

    logger.info("Loaded rate limit overrides", path=str(path), purposes=sorted(overrides))
    return policies
