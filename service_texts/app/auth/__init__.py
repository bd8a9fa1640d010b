"""
Authentication package for Texts Service.

Issues and verifies HS256 bearer tokens and exposes the FastAPI
dependency that authenticates requests.
"""

from .tokens import TokenClaims, TokenManager
from .dependencies import BearerAuth, extract_bearer_token

__all__ = ["TokenClaims", "TokenManager", "BearerAuth", "extract_bearer_token"]
