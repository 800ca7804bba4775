"""FilterPipeline: narrows an ad snapshot down to what a user may see."""

from __future__ import annotations

from typing import Collection, Iterable

from pydantic import BaseModel, Field, field_validator

from .geo import calculate_distance
from .listing import ALL_CATEGORIES, Ad, Category, Coordinate, now_ms

DEFAULT_RADIUS_SENTINEL_KM = 100.0


def coerce_category(value: object) -> Category | str:
    """Map None, "" and "All" to the match-all sentinel; anything else must be a Category."""
    if value in (None, "", ALL_CATEGORIES):
        return ALL_CATEGORIES
    return Category(value)


class FeedFilter(BaseModel):
    """Inputs for one pass of the pipeline."""

    allowed_ids: list[str] | None = Field(
        default=None,
        description="Search allow-list; None means no search is active",
    )
    category: Category | str = Field(default=ALL_CATEGORIES, description="Category or 'All'")
    user_location: Coordinate | None = Field(default=None, description="Where the user is")
    max_distance_km: float = Field(
        default=DEFAULT_RADIUS_SENTINEL_KM,
        gt=0,
        description="Radius; values at or above the sentinel mean 'anywhere'",
    )

    @field_validator("category", mode="before")
    @classmethod
    def _known_category(cls, value: object) -> Category | str:
        return coerce_category(value)


class FilterPipeline:
    """Visibility -> search allow-list -> category -> radius.

    Each stage narrows the previous one. The pipeline is pure: it never
    mutates the snapshot and returns a new list.
    """

    def __init__(self, radius_sentinel_km: float = DEFAULT_RADIUS_SENTINEL_KM) -> None:
        self._sentinel = radius_sentinel_km

    def apply(self, ads: Iterable[Ad], feed_filter: FeedFilter, now: int | None = None) -> list[Ad]:
        now = now_ms() if now is None else now
        result = self.visible(ads, now)
        if feed_filter.allowed_ids is not None:
            result = self.in_search_results(result, feed_filter.allowed_ids)
        result = self.in_category(result, feed_filter.category)
        if self.radius_enabled(feed_filter):
            result = self.within_radius(result, feed_filter.user_location, feed_filter.max_distance_km)
        return result

    @staticmethod
    def visible(ads: Iterable[Ad], now: int) -> list[Ad]:
        return [ad for ad in ads if ad is not None and ad.is_visible(now)]

    @staticmethod
    def in_search_results(ads: list[Ad], allowed_ids: Collection[str]) -> list[Ad]:
        allowed = set(allowed_ids)
        return [ad for ad in ads if ad.id in allowed]

    @staticmethod
    def in_category(ads: list[Ad], category: Category | str) -> list[Ad]:
        if category == ALL_CATEGORIES:
            return ads
        wanted = Category(category)
        return [ad for ad in ads if ad.category == wanted]

    def radius_enabled(self, feed_filter: FeedFilter) -> bool:
        return feed_filter.user_location is not None and feed_filter.max_distance_km < self._sentinel

    @staticmethod
    def within_radius(ads: list[Ad], origin: Coordinate, max_distance_km: float) -> list[Ad]:
        return [
            ad
            for ad in ads
            if ad.is_all_locations
            or any(calculate_distance(origin, loc) <= max_distance_km for loc in ad.locations)
        ]
