"""
Text documents and their derived metrics.
"""

from typing import Any, Dict, List, Optional, TYPE_CHECKING

from shared.logging import get_logger
from shared.errors import AuthorizationError, NotFoundError, ServiceError, ValidationError

from ..analysis.analyzer import analyze_text
from ..caching.derived_cache import DerivedCache
from ..caching.list_cache import TextListCache
from ..persistence.base import Persistence
from .models import Text, TextAnalysis, TextCreateRequest, TextUpdateRequest, is_valid_text_id, utcnow

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


class TextService:
    """Coordinates text persistence with the derived and listing caches.

    Reads of derived metrics go through the derived cache, keyed by the
    fingerprint of the text's current content. Every successful update or
    delete invalidates the document's derived keys and the owner's listing
    before returning.
    """

    def __init__(
        self,
        persistence: Persistence,
        derived_cache: DerivedCache,
        list_cache: TextListCache,
        *,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.persistence = persistence
        self.derived_cache = derived_cache
        self.list_cache = list_cache
        self.metrics = metrics
        self.logger = get_logger("texts.text_service")

    async def create_text(self, user_id: str, request: TextCreateRequest) -> Text:
        text = Text(user_id=user_id, title=request.title, content=request.content)
        created = await self.persistence.create_text(text)
        await self.list_cache.invalidate(user_id)

        self.logger.info("Text created", text_id=created.id, user_id=user_id)
        return created

    async def get_text(self, text_id: str, user_id: str) -> Text:
        """Load a text owned by ``user_id``."""
        if not is_valid_text_id(text_id):
            raise ValidationError("Invalid text ID format", details={"text_id": text_id})

        text = await self.persistence.get_text(text_id)
        if text is None:
            raise NotFoundError("Text not found", details={"text_id": text_id})
        if text.user_id != user_id:
            self.logger.warning("Text access denied", text_id=text_id, user_id=user_id)
            raise AuthorizationError("Unauthorized access to text")
        return text

    async def list_texts(self, user_id: str) -> List[Text]:
        cached = await self.list_cache.get(user_id)
        if cached is not None:
            return cached

        texts = await self.persistence.list_texts_by_user(user_id)
        await self.list_cache.put(user_id, texts)
        return texts

    async def update_text(self, text_id: str, user_id: str, request: TextUpdateRequest) -> Text:
        await self.get_text(text_id, user_id)

        updated = await self.persistence.update_text(
            text_id,
            title=request.title,
            content=request.content,
            updated_at=utcnow(),
        )
        if updated is None:
            raise NotFoundError("Text not found", details={"text_id": text_id})

        await self.derived_cache.invalidate_document(text_id)
        await self.list_cache.invalidate(user_id)

        self.logger.info("Text updated", text_id=text_id, user_id=user_id)
        return updated

    async def delete_text(self, text_id: str, user_id: str) -> None:
        await self.get_text(text_id, user_id)

        if not await self.persistence.delete_text(text_id):
            raise ServiceError("Failed to delete text", details={"text_id": text_id})

        await self.derived_cache.invalidate_document(text_id)
        await self.list_cache.invalidate(user_id)

        self.logger.info("Text deleted", text_id=text_id, user_id=user_id)

    async def _analyze(self, text: Text) -> TextAnalysis:
        cached = await self.derived_cache.get_full_analysis(text.id, text.content)
        if cached is not None:
            return cached

        if self.metrics:
            with self.metrics.time_operation("text_analysis_duration_seconds"):
                analysis = analyze_text(text.content)
        else:
            analysis = analyze_text(text.content)

        await self.derived_cache.put_full_analysis(text.id, text.content, analysis)
        return analysis

    async def analyze_text(self, text_id: str, user_id: str) -> TextAnalysis:
        """Full analysis of a text, served from cache when current."""
        text = await self.get_text(text_id, user_id)
        return await self._analyze(text)

    async def get_metric(self, text_id: str, user_id: str, field_name: str) -> Any:
        """One metric of a text, by camelCase name."""
        text = await self.get_text(text_id, user_id)

        cached = await self.derived_cache.get_field(text.id, field_name, text.content)
        if cached is not None:
            return cached

        analysis = await self._analyze(text)
        value = analysis.field_value(field_name)
        await self.derived_cache.put_field(text.id, field_name, value, current_content=text.content)
        return value

    async def cache_health(self) -> bool:
        return await self.derived_cache.ping()

    async def cache_stats(self) -> Dict[str, Any]:
        return await self.derived_cache.stats()
