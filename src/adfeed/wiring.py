"""Composition root: single place where all wiring happens.

Call ``build_feed_service()`` (or any other ``build_*``) to get a
fully-constructed service with real adapters. The ``get_*`` accessors
cache one instance per process for the MCP tools, so an in-memory store
and the search worker pool live as long as the server.
"""

from __future__ import annotations

from functools import lru_cache

from .adapters.embedding_search_provider import EmbeddingSearchProvider
from .adapters.fastembed_provider import FastEmbedProvider
from .adapters.gemini_search_provider import GeminiSearchProvider
from .adapters.memory_ad_repository import InMemoryAdRepository
from .adapters.sqlite_ad_repository import SqliteAdRepository
from .config.runtime import RuntimeSettings, SearchBackend, StorageBackend, get_settings
from .modules.carousel.scheduler import CarouselScheduler
from .modules.insights.aggregator import InsightsAggregator
from .ports.ad_repository import AdRepositoryPort
from .ports.search_provider import SearchProviderPort
from .services.ad_store import AdStore
from .services.feed_service import FeedService
from .services.location_service import LocationService
from .services.search_orchestrator import SearchOrchestrator


def build_repository(settings: RuntimeSettings | None = None) -> AdRepositoryPort:
    settings = settings or get_settings()
    if settings.storage_backend == StorageBackend.memory:
        return InMemoryAdRepository()
    return SqliteAdRepository(settings.ads_db_path)


def build_ad_store(settings: RuntimeSettings | None = None) -> AdStore:
    """Construct an AdStore over the configured storage backend."""
    settings = settings or get_settings()
    return AdStore(build_repository(settings), settings=settings)


def build_search_provider(settings: RuntimeSettings | None = None) -> SearchProviderPort:
    settings = settings or get_settings()
    if settings.search_backend == SearchBackend.embedding:
        return EmbeddingSearchProvider(
            FastEmbedProvider(model_id=settings.embedding_model_id),
            min_similarity=settings.search_min_similarity,
        )
    return GeminiSearchProvider(
        api_key=settings.gemini_api_key,
        model_id=settings.gemini_model_id,
        base_url=settings.gemini_base_url,
        timeout_seconds=settings.search_timeout_seconds,
    )


def build_search_orchestrator(settings: RuntimeSettings | None = None) -> SearchOrchestrator:
    """Construct a SearchOrchestrator with the configured collaborator."""
    settings = settings or get_settings()
    return SearchOrchestrator(build_search_provider(settings), timeout_seconds=settings.search_timeout_seconds)


def build_feed_service(
    settings: RuntimeSettings | None = None,
    store: AdStore | None = None,
) -> FeedService:
    """Construct a FeedService with real adapters."""
    settings = settings or get_settings()
    return FeedService(
        store=store or build_ad_store(settings),
        orchestrator=build_search_orchestrator(settings),
        settings=settings,
    )


def build_insights_aggregator(
    settings: RuntimeSettings | None = None,
    store: AdStore | None = None,
) -> InsightsAggregator:
    settings = settings or get_settings()
    return InsightsAggregator(store or build_ad_store(settings), recent_reviews_limit=settings.recent_reviews_limit)


def build_location_service(settings: RuntimeSettings | None = None) -> LocationService:
    return LocationService.from_settings(settings or get_settings())


def build_carousel_scheduler(settings: RuntimeSettings | None = None) -> CarouselScheduler:
    return CarouselScheduler.from_settings(settings or get_settings())


# ---------------------------------------------------------------------------
# Process-wide instances
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_ad_store() -> AdStore:
    return build_ad_store()


@lru_cache(maxsize=1)
def get_feed_service() -> FeedService:
    return build_feed_service(store=get_ad_store())


@lru_cache(maxsize=1)
def get_insights_aggregator() -> InsightsAggregator:
    return build_insights_aggregator(store=get_ad_store())


@lru_cache(maxsize=1)
def get_location_service() -> LocationService:
    return build_location_service()


@lru_cache(maxsize=1)
def get_carousel_scheduler() -> CarouselScheduler:
    return build_carousel_scheduler()
