"""
Fingerprint-guarded cache of derived text metrics.
"""

import json
from typing import Any, Dict, Optional, Tuple, TYPE_CHECKING

from pydantic import ValidationError as ModelValidationError

from shared.logging import get_logger
from shared.errors import StoreUnavailableError

from ..domain.models import ANALYSIS_FIELDS, TextAnalysis
from ..store.redis_store import KeyValueStore
from .fingerprint import content_fingerprint

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_ANALYSIS_TTL = 3600


class DerivedCache:
    """Cache of analysis results keyed by document id.

    Every value is stored inside an envelope carrying the fingerprint of the
    content it was computed from, next to a ``fingerprint:<docId>`` record
    of the content the document had when the analysis was cached. A read is
    served only when both match the fingerprint of the caller's current
    content; a mismatch on either drops every key of the document.

    Store failures are logged and reported as misses or failed writes.
    """

    ANALYSIS_PREFIX = "analysis:"
    FINGERPRINT_PREFIX = "fingerprint:"
    FIELD_PREFIX = "field:"

    def __init__(
        self,
        store: KeyValueStore,
        *,
        metrics: Optional["MetricsCollector"] = None,
        default_ttl: int = DEFAULT_ANALYSIS_TTL,
    ):
        self.store = store
        self.metrics = metrics
        self.default_ttl = default_ttl
        self.logger = get_logger("texts.cache.derived")

    # Key helpers

    def _analysis_key(self, doc_id: str) -> str:
        return f"{self.ANALYSIS_PREFIX}{doc_id}"

    def _fingerprint_key(self, doc_id: str) -> str:
        return f"{self.FINGERPRINT_PREFIX}{doc_id}"

    def _field_key(self, field_name: str, doc_id: str) -> str:
        return f"{self.FIELD_PREFIX}{field_name}:{doc_id}"

    def document_keys(self, doc_id: str) -> Tuple[str, ...]:
        """Every key the cache may hold for a document."""
        return (
            self._analysis_key(doc_id),
            self._fingerprint_key(doc_id),
            *(self._field_key(name, doc_id) for name in ANALYSIS_FIELDS),
        )

    # Envelope helpers

    @staticmethod
    def _wrap(fingerprint: str, value: Any) -> str:
        return json.dumps({"fingerprint": fingerprint, "value": value})

    @staticmethod
    def _unwrap(raw: str) -> Optional[Tuple[str, Any]]:
        """Split an envelope into (fingerprint, value); None if unreadable."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            return None
        if not isinstance(data, dict) or "fingerprint" not in data or "value" not in data:
            return None
        return str(data["fingerprint"]), data["value"]

    @staticmethod
    def _check_field(field_name: str) -> None:
        if field_name not in ANALYSIS_FIELDS:
            raise ValueError(f"Unknown analysis field: {field_name}")

    # Metrics helpers

    def _record(self, metric: str, **labels) -> None:
        if self.metrics:
            self.metrics.increment_counter(metric, **labels)

    def _store_error(self, doc_id: str, error: StoreUnavailableError) -> None:
        self.logger.error("Derived cache store error", doc_id=doc_id, operation=error.operation, error=error.message)
        self._record("cache_store_errors_total", operation=error.operation)

    # Full analysis

    async def get_full_analysis(self, doc_id: str, current_content: str) -> Optional[TextAnalysis]:
        """Return the cached analysis if it was computed from ``current_content``."""
        fingerprint = content_fingerprint(current_content)

        try:
            stored_fingerprint = await self.store.get(self._fingerprint_key(doc_id))
            if stored_fingerprint is None:
                self._record("cache_misses_total", cache_type="analysis")
                return None

            if stored_fingerprint != fingerprint:
                self.logger.info("Content changed, invalidating derived cache", doc_id=doc_id)
                await self._invalidate(doc_id, "content_changed")
                self._record("cache_misses_total", cache_type="analysis")
                return None

            raw = await self.store.get(self._analysis_key(doc_id))
            if raw is None:
                self._record("cache_misses_total", cache_type="analysis")
                return None

            envelope = self._unwrap(raw)
            if envelope is None:
                self.logger.warning("Unreadable cached analysis", doc_id=doc_id)
                self._record("cache_misses_total", cache_type="analysis")
                return None

            envelope_fingerprint, value = envelope
            if envelope_fingerprint != fingerprint:
                self.logger.info("Cached analysis belongs to other content", doc_id=doc_id)
                await self._invalidate(doc_id, "envelope_mismatch")
                self._record("cache_misses_total", cache_type="analysis")
                return None

        except StoreUnavailableError as e:
            self._store_error(doc_id, e)
            self._record("cache_misses_total", cache_type="analysis")
            return None

        try:
            analysis = TextAnalysis.model_validate(value)
        except ModelValidationError:
            self.logger.warning("Unreadable cached analysis", doc_id=doc_id)
            self._record("cache_misses_total", cache_type="analysis")
            return None

        self.logger.debug("Cache hit for analysis", doc_id=doc_id)
        self._record("cache_hits_total", cache_type="analysis")
        return analysis

    async def put_full_analysis(
        self,
        doc_id: str,
        current_content: str,
        result: TextAnalysis,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """Cache ``result`` as the analysis of ``current_content``."""
        ttl = ttl_seconds or self.default_ttl
        fingerprint = content_fingerprint(current_content)
        try:
            await self.store.set(
                self._analysis_key(doc_id),
                self._wrap(fingerprint, result.model_dump(by_alias=True)),
                ttl,
            )
            await self.store.set(self._fingerprint_key(doc_id), fingerprint, ttl)
        except StoreUnavailableError as e:
            self._store_error(doc_id, e)
            return False

        self.logger.debug("Cached analysis", doc_id=doc_id, ttl=ttl)
        return True

    # Single fields

    async def get_field(self, doc_id: str, field_name: str, current_content: str) -> Optional[Any]:
        """Return one cached metric if it was computed from ``current_content``."""
        self._check_field(field_name)
        fingerprint = content_fingerprint(current_content)
        cache_type = f"field:{field_name}"

        try:
            stored_fingerprint = await self.store.get(self._fingerprint_key(doc_id))
            if stored_fingerprint is None:
                self._record("cache_misses_total", cache_type=cache_type)
                return None

            if stored_fingerprint != fingerprint:
                self.logger.info("Content changed, invalidating derived cache", doc_id=doc_id, field=field_name)
                await self._invalidate(doc_id, "content_changed")
                self._record("cache_misses_total", cache_type=cache_type)
                return None

            raw = await self.store.get(self._field_key(field_name, doc_id))
            if raw is None:
                self._record("cache_misses_total", cache_type=cache_type)
                return None

            envelope = self._unwrap(raw)
            if envelope is None:
                self.logger.warning("Unreadable cached field", doc_id=doc_id, field=field_name)
                self._record("cache_misses_total", cache_type=cache_type)
                return None

            envelope_fingerprint, value = envelope
            if envelope_fingerprint != fingerprint:
                self.logger.info("Cached field belongs to other content", doc_id=doc_id, field=field_name)
                await self._invalidate(doc_id, "envelope_mismatch")
                self._record("cache_misses_total", cache_type=cache_type)
                return None

        except StoreUnavailableError as e:
            self._store_error(doc_id, e)
            self._record("cache_misses_total", cache_type=cache_type)
            return None

        self._record("cache_hits_total", cache_type=cache_type)
        return value

    async def put_field(
        self,
        doc_id: str,
        field_name: str,
        value: Any,
        current_content: Optional[str] = None,
        ttl_seconds: Optional[int] = None,
    ) -> bool:
        """Cache one metric under the document's current fingerprint.

        The write is skipped, returning False, when no fingerprint is stored
        for the document or when it does not match ``current_content``.
        """
        self._check_field(field_name)
        ttl = ttl_seconds or self.default_ttl

        try:
            stored_fingerprint = await self.store.get(self._fingerprint_key(doc_id))
            if stored_fingerprint is None:
                self.logger.warning("No fingerprint stored, skipping field write", doc_id=doc_id, field=field_name)
                return False

            if current_content is not None and stored_fingerprint != content_fingerprint(current_content):
                self.logger.info("Fingerprint does not match content, skipping field write", doc_id=doc_id, field=field_name)
                return False

            await self.store.set(self._field_key(field_name, doc_id), self._wrap(stored_fingerprint, value), ttl)
        except StoreUnavailableError as e:
            self._store_error(doc_id, e)
            return False

        return True

    # Invalidation and diagnostics

    async def _invalidate(self, doc_id: str, reason: str) -> int:
        deleted = await self.store.delete(*self.document_keys(doc_id))
        self._record("cache_invalidations_total", reason=reason)
        self.logger.info("Invalidated derived cache", doc_id=doc_id, reason=reason, deleted=deleted)
        return deleted

    async def invalidate_document(self, doc_id: str) -> bool:
        """Drop every derived key of a document."""
        try:
            await self._invalidate(doc_id, "document_mutation")
        except StoreUnavailableError as e:
            self._store_error(doc_id, e)
            return False
        return True

    async def ping(self) -> bool:
        """Whether the store answers."""
        try:
            return await self.store.ping()
        except StoreUnavailableError as e:
            self.logger.warning("Derived cache ping failed", error=e.message)
            return False

    async def stats(self) -> Dict[str, Any]:
        """Store diagnostics for monitoring."""
        try:
            info = await self.store.info()
        except StoreUnavailableError as e:
            self.logger.warning("Derived cache stats unavailable", error=e.message)
            return {"connected": False, "error": e.message}

        return {
            "connected": True,
            "default_ttl": self.default_ttl,
            "redis_version": info.get("redis_version"),
            "used_memory": info.get("used_memory_human"),
            "connected_clients": info.get("connected_clients"),
            "keyspace_hits": info.get("keyspace_hits", 0),
            "keyspace_misses": info.get("keyspace_misses", 0),
        }
