"""Services: ad store, feed, search, location; pure engines in domain."""

from ..domain.filters import FilterPipeline
from ..domain.ranking import RankingPolicy
from .ad_store import AdStore
from .feed_service import FeedItem, FeedRequest, FeedResponse, FeedService
from .location_service import LocationService, ResolvedLocation
from .search_orchestrator import SearchOrchestrator, parse_search_response

__all__ = [
    "AdStore",
    "FeedItem",
    "FeedRequest",
    "FeedResponse",
    "FeedService",
    "FilterPipeline",
    "LocationService",
    "RankingPolicy",
    "ResolvedLocation",
    "SearchOrchestrator",
    "parse_search_response",
]
