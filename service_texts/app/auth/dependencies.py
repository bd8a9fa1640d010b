"""
FastAPI authentication dependency.
"""

from typing import Optional

from fastapi import Request

from shared.errors import AuthenticationError
from shared.logging import set_user_context

from .tokens import TokenClaims, TokenManager


def extract_bearer_token(request: Request) -> Optional[str]:
    """Token from an ``Authorization: Bearer <token>`` header, if any."""
    authorization = request.headers.get("Authorization")
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[7:].strip()
    return token or None


class BearerAuth:
    """Dependency resolving the authenticated user of a request."""

    def __init__(self, token_manager: TokenManager):
        self.token_manager = token_manager

    async def __call__(self, request: Request) -> TokenClaims:
        token = extract_bearer_token(request)
        if token is None:
            raise AuthenticationError("Access token required")

        claims = self.token_manager.verify(token)
        request.state.user = claims
        set_user_context(claims.user_id)
        return claims
