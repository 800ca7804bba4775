"""FeedService: builds one feed view from a snapshot of the store."""

from __future__ import annotations

import logging
import time
from typing import Callable

from pydantic import BaseModel, Field, field_validator

from ..config.runtime import RuntimeSettings
from ..domain.filters import FeedFilter, FilterPipeline, coerce_category
from ..domain.geo import expires_in, format_distance, format_time_ago, min_distance
from ..domain.listing import (
    ALL_CATEGORIES,
    Ad,
    AdInsights,
    Category,
    Coordinate,
    InsightKind,
    SearchResult,
    SortOrder,
    now_ms,
)
from ..domain.ranking import RankingPolicy
from ..modules.carousel.scheduler import chunk
from ..ports.search_provider import SearchQuery
from .ad_store import AdStore
from .search_orchestrator import SearchOrchestrator

_LOGGER = logging.getLogger(__name__)

NATIONAL_LABEL = "National"


class FeedRequest(BaseModel):
    """What the user is currently looking at."""

    category: Category | str = Field(default=ALL_CATEGORIES, description="Category or 'All'")
    sort_order: SortOrder = Field(default="distance")
    max_distance_km: float | None = Field(
        default=None,
        gt=0,
        description="Radius in km; None uses the configured default",
    )
    user_location: Coordinate | None = Field(default=None)
    location_is_fallback: bool = Field(default=False, description="user_location is the default city")
    search: SearchResult | None = Field(default=None, description="Active search result, if any")

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: object) -> Category | str:
        return coerce_category(value)


class FeedItem(BaseModel):
    ad: Ad
    distance_km: float | None = Field(default=None, description="Nearest listed location; None without a user location")
    distance_label: str
    posted_label: str
    expires_label: str


class FeedResponse(BaseModel):
    items: list[FeedItem] = Field(default_factory=list)
    groups: list[list[str]] = Field(default_factory=list, description="Ad IDs per carousel slot")
    explanation: str = Field(default="", description="Search explanation when a search is active")
    search_active: bool = False
    location_is_fallback: bool = False

    @property
    def total(self) -> int:
        return len(self.items)


class FeedService:
    """Snapshot -> filter -> rank -> label -> chunk.

    One ``store.list()`` call per request; everything after it is pure over
    that captured list.
    """

    def __init__(
        self,
        store: AdStore,
        orchestrator: SearchOrchestrator | None = None,
        pipeline: FilterPipeline | None = None,
        ranking: RankingPolicy | None = None,
        settings: RuntimeSettings | None = None,
        clock: Callable[[], int] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        settings = settings or RuntimeSettings()
        self._store = store
        self._orchestrator = orchestrator
        self._pipeline = pipeline or FilterPipeline(settings.radius_sentinel_km)
        self._ranking = ranking or RankingPolicy()
        self._default_radius = settings.default_radius_km
        self._group_size = settings.carousel_group_size
        self._clock = clock or now_ms
        self._logger = logger or _LOGGER

    def build_feed(self, request: FeedRequest | None = None) -> FeedResponse:
        request = request or FeedRequest()
        t0 = time.monotonic()
        now = self._clock()
        snapshot = self._store.list()

        feed_filter = FeedFilter(
            allowed_ids=request.search.ad_ids if request.search is not None else None,
            category=request.category,
            user_location=request.user_location,
            max_distance_km=request.max_distance_km or self._default_radius,
        )
        filtered = self._pipeline.apply(snapshot, feed_filter, now)
        ranked = self._ranking.rank(filtered, request.sort_order, request.user_location)
        items = [self._item(ad, request.user_location, now) for ad in ranked]

        self._logger.info(
            "feed_built",
            extra={
                "snapshot_count": len(snapshot),
                "results_count": len(items),
                "category": str(feed_filter.category),
                "sort_order": request.sort_order,
                "search_active": request.search is not None,
                "latency_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return FeedResponse(
            items=items,
            groups=chunk([item.ad.id for item in items], self._group_size),
            explanation=request.search.explanation if request.search is not None else "",
            search_active=request.search is not None,
            location_is_fallback=request.location_is_fallback,
        )

    def search(self, query: SearchQuery | str) -> SearchResult | None:
        """Run a search over the current snapshot. Blank text clears the search (None)."""
        if isinstance(query, str) and not query.strip():
            return None
        if self._orchestrator is None:
            raise RuntimeError("no search orchestrator configured")
        return self._orchestrator.search(query, self._store.list())

    def open_ad(self, ad_id: str) -> Ad | None:
        """Detail view: records a view and returns the ad with updated counters."""
        ad = self._store.get(ad_id)
        if ad is None:
            return None
        insights = self._store.record_insight(ad_id, InsightKind.views)
        if insights is None:
            return None
        return ad.model_copy(update={"insights": insights})

    def record_insight(self, ad_id: str, kind: InsightKind | str) -> AdInsights | None:
        return self._store.record_insight(ad_id, kind)

    def _item(self, ad: Ad, origin: Coordinate | None, now: int) -> FeedItem:
        distance = min_distance(origin, ad.locations) if origin is not None and ad.locations else None
        if ad.is_all_locations:
            label = NATIONAL_LABEL
        elif distance is None:
            label = format_distance(0)
        else:
            label = format_distance(distance)
        return FeedItem(
            ad=ad,
            distance_km=distance,
            distance_label=label,
            posted_label=format_time_ago(ad.created_at, now),
            expires_label=expires_in(ad.expires_at, now),
        )
