"""Domain layer for adfeed."""

from .filters import FeedFilter, FilterPipeline
from .geo import calculate_distance, format_distance, min_distance
from .listing import (
    ALL_CATEGORIES,
    CONTACT_KINDS,
    Ad,
    AdInsights,
    Category,
    ContactChannels,
    Coordinate,
    InsightKind,
    Location,
    Review,
    SearchResult,
)
from .ranking import RankingPolicy

__all__ = [
    "ALL_CATEGORIES",
    "CONTACT_KINDS",
    "Ad",
    "AdInsights",
    "Category",
    "ContactChannels",
    "Coordinate",
    "FeedFilter",
    "FilterPipeline",
    "InsightKind",
    "Location",
    "RankingPolicy",
    "Review",
    "SearchResult",
    "calculate_distance",
    "format_distance",
    "min_distance",
]
