"""
Bearer token issuing and verification.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from jose import JWTError, jwt

from shared.logging import get_logger
from shared.errors import AuthorizationError


@dataclass(frozen=True)
class TokenClaims:
    """Identity carried by a verified token."""
    user_id: str
    email: str
    claims: Dict[str, Any]


class TokenManager:
    """Signs and verifies user tokens with a shared secret."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        expiry_hours: int = 24,
        clock: Callable[[], float] = time.time,
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.expiry_seconds = expiry_hours * 3600
        self.clock = clock
        self.logger = get_logger("texts.auth.tokens")

    def issue(self, user_id: str, email: str) -> str:
        """Create a signed token for a user."""
        issued_at = int(self.clock())
        claims = {
            "user_id": user_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.expiry_seconds,
        }
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """Decode a token, raising AuthorizationError when invalid or expired."""
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            self.logger.warning("Token verification failed", error=str(exc))
            raise AuthorizationError("Invalid or expired token") from exc

        user_id = claims.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            raise AuthorizationError("Invalid or expired token")

        return TokenClaims(user_id=user_id, email=claims.get("email", ""), claims=claims)

    def try_verify(self, token: Optional[str]) -> Optional[TokenClaims]:
        """Like ``verify`` but returns None for a missing or invalid token."""
        if not token:
            return None
        try:
            return self.verify(token)
        except AuthorizationError:
            return None
