"""
User registration and login for Texts Service.
"""

import base64
import os
from typing import List

from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from shared.logging import get_logger
from shared.errors import AuthenticationError, ConflictError

from ..auth.tokens import TokenManager
from ..persistence.base import Persistence
from .models import LoginResponse, User, UserPublic


PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 390000
SALT_BYTES = 16
KEY_LENGTH = 32


def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=iterations,
    )


def hash_password(password: str, *, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
    salt = os.urandom(SALT_BYTES)
    key = _kdf(salt, iterations).derive(password.encode("utf-8"))
    return "$".join([
        PBKDF2_ALGORITHM,
        str(iterations),
        base64.b64encode(salt).decode("ascii"),
        base64.b64encode(key).decode("ascii"),
    ])


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, expected = encoded.split("$", 3)
        rounds = int(iterations)
        salt_bytes = base64.b64decode(salt, validate=True)
        expected_key = base64.b64decode(expected, validate=True)
    except ValueError:
        return False
    if algorithm != PBKDF2_ALGORITHM or rounds < 1:
        return False

    try:
        _kdf(salt_bytes, rounds).verify(password.encode("utf-8"), expected_key)
    except InvalidKey:
        return False
    return True


class UserService:
    """Registers users and exchanges credentials for bearer tokens."""

    def __init__(self, persistence: Persistence, token_manager: TokenManager, *, hash_iterations: int = PBKDF2_ITERATIONS):
        self.persistence = persistence
        self.token_manager = token_manager
        self.hash_iterations = hash_iterations
        self.logger = get_logger("texts.users")

    async def register(self, email: str, password: str) -> UserPublic:
        email = email.strip().lower()
        self.logger.info("Registering user", email=email)

        if await self.persistence.get_user_by_email(email):
            raise ConflictError("User already exists with this email")

        user = User(email=email, password_hash=hash_password(password, iterations=self.hash_iterations))
        created = await self.persistence.create_user(user)

        self.logger.info("User registered", user_id=created.id)
        return UserPublic.from_user(created)

    async def login(self, email: str, password: str) -> LoginResponse:
        email = email.strip().lower()
        user = await self.persistence.get_user_by_email(email)
        if user is None or not verify_password(password, user.password_hash):
            self.logger.warning("Login failed", email=email)
            raise AuthenticationError("Invalid email or password")

        token = self.token_manager.issue(user.id, user.email)
        self.logger.info("User logged in", user_id=user.id)
        return LoginResponse(token=token, user=UserPublic(id=user.id, email=user.email))

    async def list_users(self) -> List[UserPublic]:
        users = await self.persistence.list_users()
        self.logger.info("Retrieved users", count=len(users))
        return [UserPublic.from_user(user) for user in users]
