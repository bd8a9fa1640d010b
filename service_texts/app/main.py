"""
Texts service for the Text Analysis Service.
"""

from typing import Any, Dict, List, Optional

from fastapi import Depends, Request, Response

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config

from .auth.dependencies import BearerAuth
from .auth.tokens import TokenClaims, TokenManager
from .caching.derived_cache import DerivedCache
from .caching.list_cache import TextListCache
from .domain.models import (
    LoginRequest, RegisterRequest, TextCreateRequest, TextResponse, TextUpdateRequest
)
from .domain.text_service import TextService
from .domain.user_service import UserService
from .persistence.base import Persistence
from .persistence.memory import InMemoryPersistence
from .persistence.postgres import PostgreSQLPersistence
from .ratelimit.fixed_window import FixedWindowRateLimiter
from .ratelimit.guard import RateLimitGuard
from .ratelimit.policies import load_policies
from .store.redis_store import KeyValueStore, RedisKeyValueStore


# URL segment -> metric name
METRIC_ENDPOINTS = {
    "words": "wordCount",
    "characters": "characterCount",
    "sentences": "sentenceCount",
    "paragraphs": "paragraphCount",
    "longest-words": "longestWords",
}


class TextsService(BaseService):
    """Texts service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        store: Optional[KeyValueStore] = None,
        persistence: Optional[Persistence] = None,
    ):
        super().__init__("texts", 8000, config or get_config("texts", 8000))

        # Initialize components
        self.store = store or RedisKeyValueStore.from_url(
            self.config.redis_url, self.config.redis_timeout_seconds
        )
        self.persistence = persistence or self._build_persistence()
        self.token_manager = TokenManager(
            self.config.jwt_secret,
            self.config.jwt_algorithm,
            self.config.jwt_expiry_hours
        )

        self.derived_cache = DerivedCache(
            self.store, metrics=self.metrics, default_ttl=self.config.analysis_cache_ttl
        )
        self.list_cache = TextListCache(
            self.store, metrics=self.metrics, ttl_seconds=self.config.text_list_cache_ttl
        )
        self.text_service = TextService(
            self.persistence, self.derived_cache, self.list_cache, metrics=self.metrics
        )
        self.user_service = UserService(
            self.persistence, self.token_manager, hash_iterations=self.config.password_hash_iterations
        )

        self.rate_limiter = FixedWindowRateLimiter(self.store, metrics=self.metrics)
        self.rate_limit_guard = RateLimitGuard(
            self.rate_limiter,
            load_policies(self.config.rate_limits_file),
            self.token_manager,
            enabled=self.config.rate_limiting_enabled,
            trust_forwarded_for=self.config.trust_forwarded_for,
        )
        self.auth = BearerAuth(self.token_manager)

        self.app.state.texts_service = self
        self._setup_texts_routes()

    def _build_persistence(self) -> Persistence:
        if self.config.persistence_backend == "memory":
            return InMemoryPersistence()
        return PostgreSQLPersistence(self.config.postgres_dsn)

    def _health_route_dependencies(self) -> List[Any]:
        return [Depends(self._enforce_health_limit)]

    async def _enforce_health_limit(self, request: Request, response: Response):
        # Resolved per request: the guard does not exist yet when base routes are built
        await self.rate_limit_guard.check("health", request, response)

    def _setup_texts_routes(self):
        """Set up user and text routes."""

        guard = self.rate_limit_guard.dependency
        current_user = Depends(self.auth)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "texts",
                "message": "Text Analysis Service",
                "version": "1.0.0",
                "capabilities": ["texts", "analysis", "caching", "rate_limiting"]
            }

        @self.app.get("/cache/stats", dependencies=[Depends(guard("general"))])
        async def cache_stats():
            """Derived cache diagnostics."""
            return {
                "healthy": await self.text_service.cache_health(),
                "stats": await self.text_service.cache_stats()
            }

        # Users

        @self.app.post("/api/users/register", status_code=201, dependencies=[Depends(guard("register"))])
        async def register(request: RegisterRequest):
            """Register a new user."""
            user = await self.user_service.register(request.email, request.password)
            return {
                "message": "User registered successfully",
                "user": {"id": user.id, "email": user.email}
            }

        @self.app.post("/api/users/login", dependencies=[Depends(guard("auth"))])
        async def login(request: LoginRequest):
            """Exchange credentials for a bearer token."""
            result = await self.user_service.login(request.email, request.password)
            return {
                "message": "Login successful",
                **result.model_dump(by_alias=True, mode="json", exclude_none=True)
            }

        @self.app.get("/api/users", dependencies=[Depends(guard("general"))])
        async def list_users(user: TokenClaims = current_user):
            """List registered users."""
            users = await self.user_service.list_users()
            return {
                "message": "Users retrieved successfully",
                "users": [u.model_dump(by_alias=True, mode="json") for u in users],
                "count": len(users)
            }

        # Texts

        def text_body(text) -> Dict[str, Any]:
            return TextResponse.from_text(text).model_dump(by_alias=True, mode="json")

        @self.app.post("/api/texts", status_code=201, dependencies=[Depends(guard("textmod"))])
        async def create_text(request: TextCreateRequest, user: TokenClaims = current_user):
            """Create a text."""
            text = await self.text_service.create_text(user.user_id, request)
            return {"message": "Text created successfully", "text": text_body(text)}

        @self.app.get("/api/texts", dependencies=[Depends(guard("general"))])
        async def list_texts(user: TokenClaims = current_user):
            """List the caller's texts, newest first."""
            texts = await self.text_service.list_texts(user.user_id)
            return {"message": "Texts retrieved successfully", "texts": [text_body(t) for t in texts]}

        @self.app.get("/api/texts/{text_id}", dependencies=[Depends(guard("general"))])
        async def get_text(text_id: str, user: TokenClaims = current_user):
            """Get one text."""
            text = await self.text_service.get_text(text_id, user.user_id)
            return {"message": "Text retrieved successfully", "text": text_body(text)}

        @self.app.put("/api/texts/{text_id}", dependencies=[Depends(guard("textmod"))])
        async def update_text(text_id: str, request: TextUpdateRequest, user: TokenClaims = current_user):
            """Update a text and drop its derived metrics."""
            text = await self.text_service.update_text(text_id, user.user_id, request)
            return {"message": "Text updated successfully", "text": text_body(text)}

        @self.app.delete("/api/texts/{text_id}", dependencies=[Depends(guard("textmod"))])
        async def delete_text(text_id: str, user: TokenClaims = current_user):
            """Delete a text and its derived metrics."""
            await self.text_service.delete_text(text_id, user.user_id)
            return {"message": "Text deleted successfully"}

        # Analysis

        @self.app.get("/api/texts/{text_id}/analysis", dependencies=[Depends(guard("analysis"))])
        async def get_analysis(text_id: str, user: TokenClaims = current_user):
            """Full analysis of a text."""
            analysis = await self.text_service.analyze_text(text_id, user.user_id)
            return {"textId": text_id, "analysis": analysis.model_dump(by_alias=True)}

        for segment, field_name in METRIC_ENDPOINTS.items():
            self._add_metric_route(segment, field_name, guard("analysis"), current_user)

    def _add_metric_route(self, segment: str, field_name: str, rate_limit, current_user):
        async def get_metric(text_id: str, user: TokenClaims = current_user):
            value = await self.text_service.get_metric(text_id, user.user_id, field_name)
            return {"textId": text_id, field_name: value}

        get_metric.__name__ = f"get_{field_name}"
        get_metric.__doc__ = f"The {field_name} metric of a text."
        self.app.add_api_route(
            f"/api/texts/{{text_id}}/{segment}",
            get_metric,
            methods=["GET"],
            dependencies=[Depends(rate_limit)],
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check texts service dependencies."""
        dependencies = {}

        # Store outages degrade caching and rate limiting only
        dependencies["redis"] = "ok" if await self.text_service.cache_health() else "error"
        dependencies["persistence"] = "ok" if await self.persistence.health_check() else "error"

        return dependencies

    async def on_startup(self):
        """Start texts service components."""
        await self.persistence.start()
        if not await self.derived_cache.ping():
            self.logger.warning("Redis unavailable at startup, caching and rate limiting degraded")
        self.logger.info("Texts service started", persistence=self.config.persistence_backend)

    async def on_shutdown(self):
        """Stop texts service components."""
        await self.persistence.stop()
        await self.store.close()
        self.logger.info("Texts service stopped")


def create_app(config: Optional[ServiceConfig] = None, **components):
    """Create texts service application."""
    service = TextsService(config, **components)
    return service.app


if __name__ == "__main__":
    service = TextsService()
    service.run()
