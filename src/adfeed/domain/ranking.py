"""RankingPolicy: orders filtered ads by distance or recency."""

from __future__ import annotations

from typing import Iterable

from .geo import min_distance
from .listing import Ad, Coordinate, SortOrder


class RankingPolicy:
    """Stable ordering of a filtered ad set.

    ``distance`` sorts ascending by the nearest listed location (all-locations
    ads get no special treatment). Without a user location it falls back to
    ``newest``, which sorts descending by ``created_at``. Ties keep input order.
    """

    def rank(
        self,
        ads: Iterable[Ad],
        sort_order: SortOrder = "distance",
        user_location: Coordinate | None = None,
    ) -> list[Ad]:
        if sort_order == "distance" and user_location is not None:
            return self.by_distance(ads, user_location)
        return self.by_newest(ads)

    @staticmethod
    def by_distance(ads: Iterable[Ad], user_location: Coordinate) -> list[Ad]:
        return sorted(ads, key=lambda ad: min_distance(user_location, ad.locations))

    @staticmethod
    def by_newest(ads: Iterable[Ad]) -> list[Ad]:
        return sorted(ads, key=lambda ad: ad.created_at, reverse=True)
