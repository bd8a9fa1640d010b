"""
PostgreSQL persistence layer for Texts Service.
"""

from datetime import datetime
from typing import List, Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import ConflictError, ServiceError

from ..domain.models import Text, User
from .base import Persistence


class PostgreSQLPersistence(Persistence):
    """PostgreSQL persistence layer for users and texts."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("texts.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None

    async def start(self):
        """Start the persistence layer."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=2,
                max_size=10,
                command_timeout=30
            )

            await self._create_tables()

            self.logger.info("PostgreSQL persistence started")

        except (asyncpg.PostgresError, OSError) as e:
            self.logger.error("Failed to start PostgreSQL persistence", error=str(e))
            raise ServiceError("Failed to start PostgreSQL persistence", details={"error": str(e)}) from e

    async def stop(self):
        """Stop the persistence layer."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL persistence stopped")

    async def _create_tables(self):
        """Create database tables."""
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id CHAR(32) PRIMARY KEY,
                    email VARCHAR(320) NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS texts (
                    id CHAR(32) PRIMARY KEY,
                    user_id CHAR(32) NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    title VARCHAR(200) NOT NULL,
                    content TEXT NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_texts_user_created ON texts(user_id, created_at DESC);
            """)

    # Users

    async def create_user(self, user: User) -> User:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO users (id, email, password_hash, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5)
                """, user.id, user.email, user.password_hash, user.created_at, user.updated_at)
        except asyncpg.UniqueViolationError as e:
            raise ConflictError("User already exists with this email") from e
        except asyncpg.PostgresError as e:
            self._raise("Error creating user", e)

        self.logger.info("User saved", user_id=user.id)
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM users WHERE id = $1", user_id)
        except asyncpg.PostgresError as e:
            self._raise("Error loading user", e)
        return self._row_to_user(row) if row else None

    async def get_user_by_email(self, email: str) -> Optional[User]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM users WHERE email = $1", email)
        except asyncpg.PostgresError as e:
            self._raise("Error loading user", e)
        return self._row_to_user(row) if row else None

    async def list_users(self) -> List[User]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM users ORDER BY created_at")
        except asyncpg.PostgresError as e:
            self._raise("Error loading users", e)
        return [self._row_to_user(row) for row in rows]

    # Texts

    async def create_text(self, text: Text) -> Text:
        try:
            async with self.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO texts (id, user_id, title, content, created_at, updated_at)
                    VALUES ($1, $2, $3, $4, $5, $6)
                """, text.id, text.user_id, text.title, text.content, text.created_at, text.updated_at)
        except asyncpg.PostgresError as e:
            self._raise("Error creating text", e)

        self.logger.info("Text saved", text_id=text.id, user_id=text.user_id)
        return text

    async def get_text(self, text_id: str) -> Optional[Text]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("SELECT * FROM texts WHERE id = $1", text_id)
        except asyncpg.PostgresError as e:
            self._raise("Error loading text", e)
        return self._row_to_text(row) if row else None

    async def list_texts_by_user(self, user_id: str) -> List[Text]:
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT * FROM texts
                    WHERE user_id = $1
                    ORDER BY created_at DESC
                """, user_id)
        except asyncpg.PostgresError as e:
            self._raise("Error loading texts", e)
        return [self._row_to_text(row) for row in rows]

    async def update_text(
        self,
        text_id: str,
        *,
        title: Optional[str],
        content: Optional[str],
        updated_at: datetime,
    ) -> Optional[Text]:
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow("""
                    UPDATE texts SET
                        title = COALESCE($2, title),
                        content = COALESCE($3, content),
                        updated_at = $4
                    WHERE id = $1
                    RETURNING *
                """, text_id, title, content, updated_at)
        except asyncpg.PostgresError as e:
            self._raise("Error updating text", e)
        return self._row_to_text(row) if row else None

    async def delete_text(self, text_id: str) -> bool:
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM texts WHERE id = $1", text_id)
        except asyncpg.PostgresError as e:
            self._raise("Error deleting text", e)

        # asyncpg returns the command tag, e.g. "DELETE 1"
        deleted = result.split()[-1] != "0"
        if deleted:
            self.logger.info("Text deleted", text_id=text_id)
        return deleted

    async def health_check(self) -> bool:
        """Check database health."""
        if not self.pool:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except (asyncpg.PostgresError, OSError):
            return False

    def _raise(self, message: str, error: Exception):
        self.logger.error(message, error=str(error))
        raise ServiceError(message) from error

    def _row_to_user(self, row) -> User:
        return User(
            id=row["id"].strip(),
            email=row["email"],
            password_hash=row["password_hash"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    def _row_to_text(self, row) -> Text:
        return Text(
            id=row["id"].strip(),
            user_id=row["user_id"].strip(),
            title=row["title"],
            content=row["content"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
