"""adfeed: local ads discovery engine."""

from .domain import Ad, AdInsights, Category, ContactChannels, Coordinate, InsightKind, Location, Review, SearchResult

__version__ = "0.1.0"
__all__ = [
    "Ad",
    "AdInsights",
    "Category",
    "ContactChannels",
    "Coordinate",
    "InsightKind",
    "Location",
    "Review",
    "SearchResult",
]
