"""
Domain data models for Texts Service.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


# Derived metric names, in the order the cache invalidates them
ANALYSIS_FIELDS = (
    "wordCount",
    "characterCount",
    "sentenceCount",
    "paragraphCount",
    "longestWords",
)

TEXT_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def new_id() -> str:
    """Generate a new entity id."""
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def is_valid_text_id(text_id: str) -> bool:
    return bool(TEXT_ID_PATTERN.match(text_id or ""))


def clean_title(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Title must not be empty")
    if len(value) > 200:
        raise ValueError("Title must not exceed 200 characters")
    return value


def clean_content(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("Content must not be empty")
    return value


def clean_email(value: str) -> str:
    value = value.strip().lower()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Email must be a valid email address")
    return value


class CamelModel(BaseModel):
    """Model serialized with camelCase keys, accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TextAnalysis(CamelModel):
    """Derived metrics for one text."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    word_count: int = Field(0, ge=0)
    character_count: int = Field(0, ge=0)
    sentence_count: int = Field(0, ge=0)
    paragraph_count: int = Field(0, ge=0)
    longest_words: List[str] = Field(default_factory=list)

    def field_value(self, field_name: str) -> Any:
        """Value of a metric by its camelCase name."""
        if field_name not in ANALYSIS_FIELDS:
            raise ValueError(f"Unknown analysis field: {field_name}")
        return self.model_dump(by_alias=True)[field_name]


@dataclass
class User:
    """Registered user."""
    email: str
    password_hash: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class Text:
    """Text document owned by a user."""
    user_id: str
    title: str
    content: str
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


class TextCreateRequest(CamelModel):
    """Request model for creating a text."""
    title: str = Field(..., description="Text title")
    content: str = Field(..., description="Text body")

    @field_validator("title")
    @classmethod
    def check_title(cls, value: str) -> str:
        return clean_title(value)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: str) -> str:
        return clean_content(value)


class TextUpdateRequest(CamelModel):
    """Request model for updating a text."""
    title: Optional[str] = Field(None, description="Text title")
    content: Optional[str] = Field(None, description="Text body")

    @field_validator("title")
    @classmethod
    def check_title(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else clean_title(value)

    @field_validator("content")
    @classmethod
    def check_content(cls, value: Optional[str]) -> Optional[str]:
        return value if value is None else clean_content(value)

    @model_validator(mode="after")
    def require_one_field(self) -> "TextUpdateRequest":
        if self.title is None and self.content is None:
            raise ValueError("At least one field (title or content) must be provided")
        return self


class TextResponse(CamelModel):
    """Public view of a text."""
    id: str
    title: str
    content: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_text(cls, text: Text) -> "TextResponse":
        return cls(
            id=text.id,
            title=text.title,
            content=text.content,
            created_at=text.created_at,
            updated_at=text.updated_at,
        )


class RegisterRequest(CamelModel):
    """Request model for user registration."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password")

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return clean_email(value)


class LoginRequest(CamelModel):
    """Request model for login."""
    email: str = Field(..., description="Email address")
    password: str = Field(..., min_length=1, description="Password")

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return clean_email(value)


class UserPublic(CamelModel):
    """User without credentials."""
    id: str
    email: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(id=user.id, email=user.email, created_at=user.created_at, updated_at=user.updated_at)


class LoginResponse(CamelModel):
    """Issued bearer token and its owner."""
    token: str
    user: UserPublic
