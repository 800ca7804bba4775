"""AdStore: owns the ad collection and its lifecycle transitions."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator

from pydantic import ValidationError

from ..config.runtime import RuntimeSettings
from ..domain.drafting import AdDraft, ContactInput, normalize_contact, parse_keywords, resolve_locations
from ..domain.listing import HOUR_MS, Ad, AdInsights, Category, InsightKind, Review, now_ms
from ..ports.ad_repository import AdRepositoryPort
from ..ports.id_gen import IdProvider, UuidIdProvider

_LOGGER = logging.getLogger(__name__)

# Fields an edit may not overwrite. Lifetime and approval only change
# through renew/repost/approve.
_PROTECTED_FIELDS = frozenset(
    {"id", "created_at", "expires_at", "is_approved", "insights", "reviews", "reports"}
)


class AdStore:
    """All ad mutations go through here.

    Every read-modify-write on a single ad runs under that ad's lock, so
    concurrent insight recordings never lose updates. Different ads never
    contend. A lock lives only while some call holds or waits on it.
    Unknown IDs yield None/False instead of raising.
    """

    def __init__(
        self,
        repository: AdRepositoryPort,
        settings: RuntimeSettings | None = None,
        id_provider: IdProvider | None = None,
        review_id_provider: IdProvider | None = None,
        clock: Callable[[], int] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        settings = settings or RuntimeSettings()
        self._repo = repository
        self._ttl_ms = settings.ad_ttl_hours * HOUR_MS
        self._auto_approve = settings.auto_approve
        self._country_prefix = settings.phone_country_prefix
        self._max_extra_locations = settings.max_extra_locations
        self._ids = id_provider or UuidIdProvider()
        self._review_ids = review_id_provider or UuidIdProvider()
        self._clock = clock or now_ms
        self._logger = logger or _LOGGER
        # ad_id -> [lock, number of callers holding or waiting on it]
        self._locks: dict[str, list] = {}
        self._locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list(self) -> list[Ad]:
        """Active ads in storage order. Expired ads are purged, corrupt ones skipped."""
        ads, _ = self._sweep()
        return ads

    def purge_expired(self) -> int:
        """Delete every expired ad now; returns how many were removed."""
        _, purged = self._sweep()
        return purged

    def get(self, ad_id: str) -> Ad | None:
        record = self._repo.get_ad(ad_id)
        ad = self._parse(record) if record is not None else None
        if ad is None:
            return None
        if not ad.is_active(self._clock()):
            self._repo.delete_ad(ad_id)
            return None
        return ad

    def pending(self) -> list[Ad]:
        """Active ads awaiting moderation."""
        return [ad for ad in self.list() if not ad.is_approved]

    def reported(self) -> list[Ad]:
        """Active ads with at least one report, most reported first."""
        return sorted((ad for ad in self.list() if ad.reports > 0), key=lambda ad: ad.reports, reverse=True)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, draft: AdDraft | dict) -> Ad:
        """Validate a draft and persist it as a new ad expiring after the TTL.

        Raises ValidationError/ValueError on bad input (missing contact lines,
        unknown extra locations, duplicate id).
        """
        if not isinstance(draft, AdDraft):
            draft = AdDraft.model_validate(draft)
        now = self._clock()
        ad_id = draft.id or self._ids.new_id()
        if self._repo.get_ad(ad_id) is not None:
            raise ValueError(f"ad {ad_id!r} already exists")

        ad = Ad(
            id=ad_id,
            user_id=draft.user_id,
            user_name=draft.user_name,
            title=draft.title.strip(),
            description=draft.description.strip(),
            category=draft.category,
            keywords=parse_keywords(draft.keywords),
            images=list(draft.images),
            contact=normalize_contact(draft.contact, draft.category, self._country_prefix),
            locations=resolve_locations(draft, self._max_extra_locations),
            is_all_locations=draft.is_all_locations,
            created_at=now,
            expires_at=now + self._ttl_ms,
            is_approved=self._auto_approve,
        )
        self._repo.save_ad(ad.to_record())
        self._logger.info(
            "ad_created",
            extra={"ad_id": ad.id, "user_id": ad.user_id, "category": ad.category.value},
        )
        return ad

    def update(self, ad_id: str, fields: dict[str, Any]) -> Ad | None:
        """Edit an ad. ``id``, ``created_at``, counters and reviews are preserved.

        Returns None when the ad does not exist or the edit would make it invalid.
        """
        ignored = sorted(_PROTECTED_FIELDS & fields.keys())
        if ignored:
            self._logger.debug("ad_update_protected_fields", extra={"ad_id": ad_id, "fields": ignored})
        changes = {k: v for k, v in fields.items() if k not in _PROTECTED_FIELDS}

        with self._lock_for(ad_id):
            current = self._load(ad_id)
            if current is None:
                return None
            try:
                if "keywords" in changes:
                    changes["keywords"] = parse_keywords(changes["keywords"])
                if "contact" in changes:
                    category = changes.get("category", current.category)
                    contact = ContactInput.model_validate(changes["contact"])
                    changes["contact"] = normalize_contact(
                        contact, Category(category), self._country_prefix
                    ).model_dump()
                updated = Ad.model_validate({**current.to_record(), **changes})
            except (ValidationError, ValueError, TypeError) as e:
                self._logger.warning("ad_update_rejected", extra={"ad_id": ad_id, "error": str(e)})
                return None
            if self._repo.update_ad(ad_id, updated.to_record()) is None:
                return self._vanished(ad_id, "update")
        return updated

    def renew(self, ad_id: str) -> Ad | None:
        """Extend the ad for another TTL from now."""
        return self._mutate(ad_id, lambda ad, now: {"expires_at": now + self._ttl_ms}, "ad_renewed")

    def repost(self, ad_id: str) -> Ad | None:
        """Renew and move the ad to the top of the newest-first order."""
        return self._mutate(
            ad_id,
            lambda ad, now: {"created_at": now, "expires_at": now + self._ttl_ms},
            "ad_reposted",
        )

    def delete(self, ad_id: str) -> bool:
        """Remove the ad and its insights permanently."""
        with self._lock_for(ad_id):
            deleted = self._repo.delete_ad(ad_id)
        if not deleted:
            self._logger.warning("ad_not_found", extra={"ad_id": ad_id, "op": "delete"})
        return deleted

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    def approve(self, ad_id: str) -> Ad | None:
        return self._mutate(ad_id, lambda ad, now: {"is_approved": True}, "ad_approved")

    def report(self, ad_id: str) -> Ad | None:
        return self._mutate(ad_id, lambda ad, now: {"reports": ad.reports + 1}, "ad_reported")

    def dismiss_reports(self, ad_id: str) -> Ad | None:
        return self._mutate(ad_id, lambda ad, now: {"reports": 0}, "ad_reports_dismissed")

    # ------------------------------------------------------------------
    # Engagement
    # ------------------------------------------------------------------

    def add_review(self, ad_id: str, review: Review | dict) -> Review | None:
        """Prepend a review (newest first). ID and timestamp are filled in when absent."""
        data = review.model_dump() if isinstance(review, Review) else dict(review)
        data.setdefault("id", None)
        data["id"] = data["id"] or self._review_ids.new_id()
        data["created_at"] = data.get("created_at") or self._clock()
        review = Review.model_validate(data)

        with self._lock_for(ad_id):
            if not self._repo.add_review(ad_id, review.model_dump(mode="json")):
                self._logger.warning("ad_not_found", extra={"ad_id": ad_id, "op": "add_review"})
                return None
        self._logger.info("review_added", extra={"ad_id": ad_id, "rating": review.rating})
        return review

    def record_insight(self, ad_id: str, kind: InsightKind | str) -> AdInsights | None:
        """Bump one engagement counter (and ``contacts`` for contact kinds) atomically."""
        kind = InsightKind(kind)
        with self._lock_for(ad_id):
            current = self._load(ad_id)
            if current is None:
                return None
            insights = current.insights.incremented(kind)
            if self._repo.update_ad(ad_id, {"insights": insights.model_dump()}) is None:
                return self._vanished(ad_id, "record_insight")
        self._logger.debug("insight_recorded", extra={"ad_id": ad_id, "kind": kind.value})
        return insights

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _lock_for(self, ad_id: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(ad_id)
            if entry is None:
                entry = self._locks[ad_id] = [threading.Lock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[ad_id]

    def _sweep(self) -> tuple[list[Ad], int]:
        now = self._clock()
        ads: list[Ad] = []
        purged = 0
        for record in self._repo.list_ads():
            ad = self._parse(record)
            if ad is None:
                continue
            if not ad.is_active(now):
                self._repo.delete_ad(ad.id)
                purged += 1
                continue
            ads.append(ad)
        if purged:
            self._logger.info("expired_ads_purged", extra={"count": purged})
        return ads, purged

    def _parse(self, record: dict) -> Ad | None:
        try:
            return Ad.model_validate(record)
        except (ValidationError, TypeError) as e:
            ad_id = record.get("id") if isinstance(record, dict) else None
            self._logger.warning("ad_record_skipped", extra={"ad_id": ad_id, "error": str(e)})
            return None

    def _load(self, ad_id: str) -> Ad | None:
        record = self._repo.get_ad(ad_id)
        if record is None:
            self._logger.warning("ad_not_found", extra={"ad_id": ad_id})
            return None
        return self._parse(record)

    def _mutate(
        self,
        ad_id: str,
        change: Callable[[Ad, int], dict[str, Any]],
        event: str,
    ) -> Ad | None:
        # Works on stored-but-expired ads too, so renew can revive them before a purge.
        with self._lock_for(ad_id):
            current = self._load(ad_id)
            if current is None:
                return None
            updates = change(current, self._clock())
            updated = current.model_copy(update=updates)
            if self._repo.update_ad(ad_id, updates) is None:
                return self._vanished(ad_id, event)
        self._logger.info(event, extra={"ad_id": ad_id})
        return updated

    def _vanished(self, ad_id: str, op: str) -> None:
        # Deleted (usually by a concurrent purge) between load and write.
        self._logger.warning("ad_not_found", extra={"ad_id": ad_id, "op": op})
        return None
