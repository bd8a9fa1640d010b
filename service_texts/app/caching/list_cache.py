"""
Per-user text listing cache.
"""

from typing import List, Optional, TYPE_CHECKING

from pydantic import TypeAdapter, ValidationError as ModelValidationError

from shared.logging import get_logger
from shared.errors import StoreUnavailableError

from ..domain.models import Text
from ..store.redis_store import KeyValueStore

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


_TEXT_LIST = TypeAdapter(List[Text])


class TextListCache:
    """Caches the text listing of each user under ``user_texts:<userId>``."""

    PREFIX = "user_texts:"

    def __init__(
        self,
        store: KeyValueStore,
        *,
        metrics: Optional["MetricsCollector"] = None,
        ttl_seconds: int = 3600,
    ):
        self.store = store
        self.metrics = metrics
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("texts.cache.list")

    def _key(self, user_id: str) -> str:
        return f"{self.PREFIX}{user_id}"

    def _record(self, metric: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric, **labels)

    async def get(self, user_id: str) -> Optional[List[Text]]:
        """Cached listing for a user, or None."""
        try:
            raw = await self.store.get(self._key(user_id))
        except StoreUnavailableError as e:
            self.logger.error("Error getting cached texts", user_id=user_id, error=e.message)
            self._record("cache_store_errors_total", operation=e.operation)
            return None

        if raw is None:
            self._record("cache_misses_total", cache_type="user_texts")
            return None

        try:
            texts = _TEXT_LIST.validate_json(raw)
        except ModelValidationError:
            self.logger.warning("Unreadable cached texts", user_id=user_id)
            self._record("cache_misses_total", cache_type="user_texts")
            return None

        self._record("cache_hits_total", cache_type="user_texts")
        return texts

    async def put(self, user_id: str, texts: List[Text]) -> bool:
        try:
            await self.store.set(self._key(user_id), _TEXT_LIST.dump_json(texts).decode("utf-8"), self.ttl_seconds)
        except StoreUnavailableError as e:
            self.logger.error("Error caching texts", user_id=user_id, error=e.message)
            self._record("cache_store_errors_total", operation=e.operation)
            return False
        return True

    async def invalidate(self, user_id: str) -> bool:
        try:
            await self.store.delete(self._key(user_id))
        except StoreUnavailableError as e:
            self.logger.error("Error invalidating cached texts", user_id=user_id, error=e.message)
            self._record("cache_store_errors_total", operation=e.operation)
            return False
        self.logger.debug("Invalidated cached texts", user_id=user_id)
        return True
