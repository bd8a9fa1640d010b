"""
FastAPI dependency enforcing rate limit policies.
"""

from typing import Callable, Dict, Optional, Awaitable

from fastapi import Request, Response

from shared.logging import get_logger
from shared.errors import RateLimitError

from ..auth.dependencies import extract_bearer_token
from ..auth.tokens import TokenManager
from .fixed_window import FixedWindowRateLimiter, RateLimitDecision
from .policies import IDENTITY_USER, RateLimitPolicy


class RateLimitGuard:
    """Admits requests through the limiter before handlers run."""

    def __init__(
        self,
        rate_limiter: FixedWindowRateLimiter,
        policies: Dict[str, RateLimitPolicy],
        token_manager: Optional[TokenManager] = None,
        *,
        enabled: bool = True,
        trust_forwarded_for: bool = False,
    ):
        self.rate_limiter = rate_limiter
        self.policies = policies
        self.token_manager = token_manager
        self.enabled = enabled
        self.trust_forwarded_for = trust_forwarded_for
        self.logger = get_logger("texts.rate_limit_guard")

    def _get_client_ip(self, request: Request) -> str:
        """Socket peer address; proxy headers only when the proxy is trusted."""
        if self.trust_forwarded_for:
            forwarded_for = request.headers.get("X-Forwarded-For")
            if forwarded_for:
                return forwarded_for.split(",")[0].strip()

            real_ip = request.headers.get("X-Real-IP")
            if real_ip:
                return real_ip.strip()

        return request.client.host if request.client else "unknown"

    def resolve_identity(self, request: Request, policy: RateLimitPolicy) -> str:
        """``user:<id>`` for per-user policies with a valid token, else ``ip:<addr>``."""
        if policy.identity_mode == IDENTITY_USER and self.token_manager:
            claims = self.token_manager.try_verify(extract_bearer_token(request))
            if claims:
                return f"user:{claims.user_id}"
        return f"ip:{self._get_client_ip(request)}"

    async def check(self, purpose: str, request: Request, response: Response) -> Optional[RateLimitDecision]:
        """Admit a request under ``purpose``, raising RateLimitError on rejection."""
        if not self.enabled:
            return None

        policy = self.policies[purpose]
        identity = self.resolve_identity(request, policy)
        decision = await self.rate_limiter.admit(policy.purpose, identity, policy.max_requests, policy.window_ms)
        headers = decision.headers()

        if not decision.allowed:
            raise RateLimitError(
                policy.message,
                details={
                    "purpose": policy.purpose,
                    "retry_after": int(headers["Retry-After"]),
                },
                headers=headers,
            )

        for name, value in headers.items():
            response.headers[name] = value
        return decision

    def dependency(self, purpose: str) -> Callable[[Request, Response], Awaitable[Optional[RateLimitDecision]]]:
        """FastAPI dependency applying the policy named ``purpose``."""
        if purpose not in self.policies:
            raise ValueError(f"Unknown rate limit policy: {purpose}")

        async def enforce_rate_limit(request: Request, response: Response) -> Optional[RateLimitDecision]:
            return await self.check(purpose, request, response)

        return enforce_rate_limit
