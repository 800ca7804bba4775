"""Owner dashboard rollups over the ad snapshot."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable

from ...domain.listing import Ad, Review
from ...services.ad_store import AdStore


@dataclass(frozen=True)
class DashboardSummary:
    """Lifetime engagement totals across one owner's ads."""

    ads: int
    views: int
    contacts: int
    calls: int
    whatsapp: int
    socials: int
    web: int
    reviews: int


class InsightsAggregator:
    """Read-side reduction; holds no state of its own."""

    def __init__(self, store: AdStore | None = None, recent_reviews_limit: int = 5) -> None:
        self._store = store
        self._recent_limit = recent_reviews_limit

    def _owned(self, user_id: str, snapshot: Iterable[Ad] | None) -> list[Ad]:
        if snapshot is None:
            if self._store is None:
                raise ValueError("a snapshot is required when no AdStore is configured")
            snapshot = self._store.list()
        return [ad for ad in snapshot if ad.user_id == user_id]

    def dashboard(self, user_id: str, snapshot: Iterable[Ad] | None = None) -> DashboardSummary:
        ads = self._owned(user_id, snapshot)
        return DashboardSummary(
            ads=len(ads),
            views=sum(ad.insights.views for ad in ads),
            contacts=sum(ad.insights.contacts for ad in ads),
            calls=sum(ad.insights.calls for ad in ads),
            whatsapp=sum(ad.insights.whatsapp for ad in ads),
            socials=sum(ad.insights.socials for ad in ads),
            web=sum(ad.insights.web for ad in ads),
            reviews=sum(len(ad.reviews) for ad in ads),
        )

    def recent_reviews(
        self,
        user_id: str,
        limit: int | None = None,
        snapshot: Iterable[Ad] | None = None,
    ) -> list[Review]:
        """Newest reviews across all of the owner's ads."""
        reviews = [review for ad in self._owned(user_id, snapshot) for review in ad.reviews]
        reviews.sort(key=lambda r: r.created_at, reverse=True)
        return reviews[: self._recent_limit if limit is None else limit]

    def report(self, user_id: str, snapshot: Iterable[Ad] | None = None) -> dict:
        ads = self._owned(user_id, snapshot)
        summary = self.dashboard(user_id, ads)
        top_ads = sorted(ads, key=lambda ad: ad.insights.views, reverse=True)[:5]
        return {
            "user_id": user_id,
            **asdict(summary),
            "top_ads": [
                {"ad_id": ad.id, "title": ad.title, "views": ad.insights.views, "contacts": ad.insights.contacts}
                for ad in top_ads
            ],
            "recent_reviews": [r.model_dump() for r in self.recent_reviews(user_id, snapshot=ads)],
        }
