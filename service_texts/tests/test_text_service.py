"""
Unit tests for TextService.
"""

import pytest
import fakeredis
from unittest.mock import AsyncMock, patch

from service_texts.app.analysis.analyzer import analyze_text
from service_texts.app.caching.derived_cache import DerivedCache
from service_texts.app.caching.list_cache import TextListCache
from service_texts.app.domain.models import TextCreateRequest, TextUpdateRequest
from service_texts.app.domain.text_service import TextService
from service_texts.app.persistence.memory import InMemoryPersistence
from service_texts.app.store.redis_store import RedisKeyValueStore
from shared.errors import AuthorizationError, NotFoundError, StoreUnavailableError, ValidationError
from shared.metrics import MetricsCollector


ALICE = "a" * 32
BOB = "b" * 32
CONTENT = "The quick brown fox jumps over the lazy dog. The lazy dog slept in the sun."


class TestTextService:
    """Test cases for TextService."""

    @pytest.fixture
    def redis_client(self):
        return fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("texts")

    @pytest.fixture
    def persistence(self):
        return InMemoryPersistence()

    @pytest.fixture
    def text_service(self, redis_client, persistence, metrics):
        """Create TextService with in-process backends."""
        store = RedisKeyValueStore(redis_client)
        return TextService(
            persistence,
            DerivedCache(store, metrics=metrics),
            TextListCache(store, metrics=metrics),
            metrics=metrics,
        )

    async def _create(self, text_service, user_id=ALICE, title="Fox", content=CONTENT):
        return await text_service.create_text(user_id, TextCreateRequest(title=title, content=content))

    @pytest.mark.asyncio
    async def test_create_and_get(self, text_service):
        text = await self._create(text_service)

        fetched = await text_service.get_text(text.id, ALICE)

        assert fetched.title == "Fox"
        assert fetched.content == CONTENT

    @pytest.mark.asyncio
    async def test_get_missing(self, text_service):
        with pytest.raises(NotFoundError):
            await text_service.get_text("f" * 32, ALICE)

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, text_service):
        with pytest.raises(ValidationError):
            await text_service.get_text("not-an-id", ALICE)

    @pytest.mark.asyncio
    async def test_other_users_text_is_forbidden(self, text_service):
        text = await self._create(text_service)

        with pytest.raises(AuthorizationError):
            await text_service.get_text(text.id, BOB)
        with pytest.raises(AuthorizationError):
            await text_service.analyze_text(text.id, BOB)

    @pytest.mark.asyncio
    async def test_list_is_cached_and_invalidated(self, text_service, redis_client, persistence):
        """Test the listing cache follows mutations."""
        first = await self._create(text_service, title="First")
        assert [t.id for t in await text_service.list_texts(ALICE)] == [first.id]
        assert await redis_client.exists(f"user_texts:{ALICE}") == 1

        with patch.object(persistence, "list_texts_by_user", new_callable=AsyncMock) as mock_list:
            cached = await text_service.list_texts(ALICE)
            mock_list.assert_not_called()
        assert [t.id for t in cached] == [first.id]

        second = await self._create(text_service, title="Second")
        assert await redis_client.exists(f"user_texts:{ALICE}") == 0
        assert {t.id for t in await text_service.list_texts(ALICE)} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_analysis_is_cached(self, text_service, metrics):
        """Test the second analysis is served from cache."""
        text = await self._create(text_service)

        with patch("service_texts.app.domain.text_service.analyze_text", wraps=analyze_text) as mock_analyze:
            first = await text_service.analyze_text(text.id, ALICE)
            second = await text_service.analyze_text(text.id, ALICE)

        assert first == second
        assert first.word_count == 16
        assert mock_analyze.call_count == 1
        assert metrics.sample_value("text_analysis_duration_seconds_count") == 1.0

    @pytest.mark.asyncio
    async def test_update_invalidates_derived_keys(self, text_service, redis_client):
        """Test update drops every derived key before returning."""
        text = await self._create(text_service)
        await text_service.analyze_text(text.id, ALICE)
        await text_service.get_metric(text.id, ALICE, "wordCount")
        assert await redis_client.exists(f"field:wordCount:{text.id}") == 1

        await text_service.update_text(text.id, ALICE, TextUpdateRequest(content="Updated content here."))

        keys = text_service.derived_cache.document_keys(text.id)
        assert await redis_client.exists(*keys) == 0
        analysis = await text_service.analyze_text(text.id, ALICE)
        assert analysis.word_count == 3

    @pytest.mark.asyncio
    async def test_update_title_only_keeps_content(self, text_service):
        text = await self._create(text_service)

        updated = await text_service.update_text(text.id, ALICE, TextUpdateRequest(title="Renamed"))

        assert updated.title == "Renamed"
        assert updated.content == CONTENT

    @pytest.mark.asyncio
    async def test_delete(self, text_service, redis_client):
        """Test delete removes the text and its derived keys."""
        text = await self._create(text_service)
        await text_service.analyze_text(text.id, ALICE)

        await text_service.delete_text(text.id, ALICE)

        with pytest.raises(NotFoundError):
            await text_service.get_text(text.id, ALICE)
        assert await redis_client.exists(*text_service.derived_cache.document_keys(text.id)) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field_name,expected", [
        ("wordCount", 16),
        ("characterCount", 60),
        ("sentenceCount", 2),
        ("paragraphCount", 1),
        ("longestWords", ["quick", "brown", "jumps", "slept"]),
    ])
    async def test_get_metric(self, text_service, redis_client, field_name, expected):
        """Test each metric is derived and cached."""
        text = await self._create(text_service)

        assert await text_service.get_metric(text.id, ALICE, field_name) == expected
        assert await redis_client.exists(f"field:{field_name}:{text.id}") == 1
        assert await text_service.get_metric(text.id, ALICE, field_name) == expected

    @pytest.mark.asyncio
    async def test_works_without_store(self, persistence, metrics):
        """Test analysis still works when the store is down."""
        store = AsyncMock()
        for name in ("get", "set", "delete", "ping", "info"):
            getattr(store, name).side_effect = StoreUnavailableError(name)
        text_service = TextService(
            persistence, DerivedCache(store, metrics=metrics), TextListCache(store, metrics=metrics), metrics=metrics
        )
        text = await self._create(text_service)

        assert (await text_service.analyze_text(text.id, ALICE)).word_count == 16
        assert await text_service.get_metric(text.id, ALICE, "sentenceCount") == 2
        assert [t.id for t in await text_service.list_texts(ALICE)] == [text.id]
        await text_service.delete_text(text.id, ALICE)
        assert await text_service.cache_health() is False
