"""
In-memory persistence for local runs and tests.
"""

from dataclasses import replace
from datetime import datetime
from typing import Dict, List, Optional

from shared.logging import get_logger
from shared.errors import ConflictError

from ..domain.models import Text, User
from .base import Persistence


class InMemoryPersistence(Persistence):
    """Process-local storage; contents are lost on restart."""

    def __init__(self):
        self.logger = get_logger("texts.persistence.memory")
        self._users: Dict[str, User] = {}
        self._texts: Dict[str, Text] = {}

    async def start(self) -> None:
        self.logger.info("In-memory persistence started")

    async def create_user(self, user: User) -> User:
        if any(existing.email == user.email for existing in self._users.values()):
            raise ConflictError("User already exists with this email")
        self._users[user.id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        return self._users.get(user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        for user in self._users.values():
            if user.email == email:
                return user
        return None

    async def list_users(self) -> List[User]:
        return sorted(self._users.values(), key=lambda user: user.created_at)

    async def create_text(self, text: Text) -> Text:
        self._texts[text.id] = text
        return text

    async def get_text(self, text_id: str) -> Optional[Text]:
        return self._texts.get(text_id)

    async def list_texts_by_user(self, user_id: str) -> List[Text]:
        texts = [text for text in self._texts.values() if text.user_id == user_id]
        return sorted(texts, key=lambda text: text.created_at, reverse=True)

    async def update_text(
        self,
        text_id: str,
        *,
        title: Optional[str],
        content: Optional[str],
        updated_at: datetime,
    ) -> Optional[Text]:
        existing = self._texts.get(text_id)
        if existing is None:
            return None
        updated = replace(
            existing,
            title=title if title is not None else existing.title,
            content=content if content is not None else existing.content,
            updated_at=updated_at,
        )
        self._texts[text_id] = updated
        return updated

    async def delete_text(self, text_id: str) -> bool:
        return self._texts.pop(text_id, None) is not None
