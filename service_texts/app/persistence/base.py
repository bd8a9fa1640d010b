"""
Persistence interface for Texts Service.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from ..domain.models import Text, User


class Persistence(ABC):
    """Storage of users and texts."""

    async def start(self) -> None:
        """Acquire connections and prepare storage."""

    async def stop(self) -> None:
        """Release connections."""

    async def health_check(self) -> bool:
        return True

    # Users

    @abstractmethod
    async def create_user(self, user: User) -> User:
        """Insert a user; raises ConflictError if the email is taken."""

    @abstractmethod
    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    @abstractmethod
    async def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    @abstractmethod
    async def list_users(self) -> List[User]:
        ...

    # Texts

    @abstractmethod
    async def create_text(self, text: Text) -> Text:
        ...

    @abstractmethod
    async def get_text(self, text_id: str) -> Optional[Text]:
        ...

    @abstractmethod
    async def list_texts_by_user(self, user_id: str) -> List[Text]:
        """Texts of a user, newest first."""

    @abstractmethod
    async def update_text(
        self,
        text_id: str,
        *,
        title: Optional[str],
        content: Optional[str],
        updated_at: datetime,
    ) -> Optional[Text]:
        """Apply the non-None fields; None if the text does not exist."""

    @abstractmethod
    async def delete_text(self, text_id: str) -> bool:
        ...
