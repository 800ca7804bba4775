"""Tests for AdStore lifecycle, moderation and engagement operations.

Uses the in-memory repository unless a test exercises SQLite explicitly.
"""

import sqlite3
import threading

import pytest
from pydantic import ValidationError

from adfeed.adapters.memory_ad_repository import InMemoryAdRepository
from adfeed.adapters.sqlite_ad_repository import SqliteAdRepository
from adfeed.config.runtime import RuntimeSettings
from adfeed.domain.listing import HOUR_MS, Category, InsightKind
from adfeed.ports.id_gen import SequentialIdProvider
from adfeed.services.ad_store import AdStore

T0 = 1_700_000_000_000


class FakeClock:
    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class VanishingRepository(InMemoryAdRepository):
    """Deletes the ad just before each write, like a purge landing mid-update."""

    def update_ad(self, ad_id: str, updates: dict) -> dict | None:
        self.delete_ad(ad_id)
        return super().update_ad(ad_id, updates)


def _make_draft(**overrides) -> dict:
    draft = {
        "user_id": "u2",
        "user_name": "Sarah Okoro",
        "title": "Top Notch Mechanic Lagos",
        "description": "Expert engine tuning and brake repairs in Ikeja.",
        "category": "Businesses",
        "keywords": "Mechanic, Car , ,repair",
        "images": ["https://img/1.jpg", "https://img/2.jpg"],
        "contact": {"phone": "0801 234 5678", "whatsapp": "08012345678"},
        "location": {"lat": 6.5967, "lng": 3.3421, "city": "Ikeja", "state": "Lagos"},
    }
    draft.update(overrides)
    return draft


def _make_store(repo=None, clock=None, **settings) -> tuple[AdStore, FakeClock]:
    clock = clock or FakeClock()
    store = AdStore(
        repo if repo is not None else InMemoryAdRepository(),
        settings=RuntimeSettings(**settings),
        id_provider=SequentialIdProvider("ad-"),
        review_id_provider=SequentialIdProvider("rv-"),
        clock=clock,
    )
    return store, clock


class TestCreate:
    def test_assigns_id_and_lifetime(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        assert ad.id == "ad-1"
        assert ad.created_at == T0
        assert ad.expires_at == T0 + 24 * HOUR_MS
        assert ad.is_approved is True

    def test_normalizes_contact_and_keywords(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        assert ad.contact.phone == "+2348012345678"
        assert ad.contact.whatsapp == "+2348012345678"
        assert ad.keywords == ["mechanic", "car", "repair"]

    def test_ticket_link_only_kept_for_events(self):
        store, _ = _make_store()
        contact = {"phone": "0801", "whatsapp": "0801", "ticket_link": "https://t.example/1"}
        job = store.create(_make_draft(category="Jobs", contact=contact))
        event = store.create(_make_draft(category="Events", contact=contact))
        assert job.contact.ticket_link is None
        assert event.contact.ticket_link == "https://t.example/1"

    def test_missing_whatsapp_is_rejected(self):
        store, _ = _make_store()
        with pytest.raises(ValidationError, match="mandatory"):
            store.create(_make_draft(contact={"phone": "08012345678", "whatsapp": "  "}))

    def test_unknown_category_is_rejected(self):
        store, _ = _make_store()
        with pytest.raises(ValidationError):
            store.create(_make_draft(category="Cars"))

    def test_duplicate_id_is_rejected(self):
        store, _ = _make_store()
        store.create(_make_draft(id="fixed"))
        with pytest.raises(ValueError, match="already exists"):
            store.create(_make_draft(id="fixed"))

    def test_extra_locations_resolved_from_catalog(self):
        store, _ = _make_store()
        ad = store.create(_make_draft(extra_locations=[{"state": "Lagos", "city": "Lekki"}]))
        assert [loc.city for loc in ad.locations] == ["Ikeja", "Lekki"]

    def test_too_many_extra_locations(self):
        store, _ = _make_store()
        extras = [
            {"state": "Lagos", "city": "Lekki"},
            {"state": "Lagos", "city": "Ikorodu"},
            {"state": "Lagos", "city": "Surulere"},
        ]
        with pytest.raises(ValueError, match="at most 2"):
            store.create(_make_draft(extra_locations=extras))

    def test_moderation_gate_when_auto_approve_is_off(self):
        store, _ = _make_store(auto_approve=False)
        ad = store.create(_make_draft())
        assert ad.is_approved is False
        assert [a.id for a in store.pending()] == [ad.id]


class TestListAndExpiry:
    def test_newest_first(self):
        store, clock = _make_store()
        first = store.create(_make_draft())
        clock.advance(1000)
        second = store.create(_make_draft())
        assert [a.id for a in store.list()] == [second.id, first.id]

    def test_expired_ads_are_not_listed_and_are_purged(self):
        repo = InMemoryAdRepository()
        store, clock = _make_store(repo)
        store.create(_make_draft())
        clock.advance(24 * HOUR_MS)
        assert store.list() == []
        assert repo.list_ads() == []

    def test_purge_expired_reports_count(self):
        store, clock = _make_store()
        store.create(_make_draft())
        store.create(_make_draft())
        clock.advance(25 * HOUR_MS)
        store.create(_make_draft())
        assert store.purge_expired() == 2
        assert len(store.list()) == 1

    def test_malformed_record_is_skipped(self):
        repo = InMemoryAdRepository(records=[{"id": "broken", "title": ""}])
        store, _ = _make_store(repo)
        good = store.create(_make_draft())
        assert [a.id for a in store.list()] == [good.id]

    def test_get_unknown_returns_none(self):
        store, _ = _make_store()
        assert store.get("nope") is None


class TestUpdate:
    def test_preserves_identity_counters_and_reviews(self):
        store, clock = _make_store()
        ad = store.create(_make_draft())
        store.record_insight(ad.id, "calls")
        store.add_review(ad.id, {"user_id": "u9", "user_name": "Tunde", "rating": 5})
        clock.advance(1000)

        updated = store.update(
            ad.id,
            {"title": "Mechanic Ikeja", "id": "hijack", "created_at": 0, "insights": {}, "reviews": []},
        )
        assert updated is not None
        assert updated.id == ad.id
        assert updated.title == "Mechanic Ikeja"
        assert updated.created_at == ad.created_at
        assert updated.insights.calls == 1
        assert len(updated.reviews) == 1
        assert store.get(ad.id).title == "Mechanic Ikeja"

    def test_keywords_and_contact_are_normalized(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        updated = store.update(
            ad.id,
            {"keywords": "Brakes, Tyres", "contact": {"phone": "08099999999", "whatsapp": "08099999999"}},
        )
        assert updated.keywords == ["brakes", "tyres"]
        assert updated.contact.phone == "+2348099999999"

    def test_invalid_edit_returns_none_and_keeps_ad(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        assert store.update(ad.id, {"title": ""}) is None
        assert store.update(ad.id, {"category": "Cars"}) is None
        assert store.get(ad.id).title == ad.title

    def test_lifetime_and_approval_cannot_be_edited(self):
        store, _ = _make_store(auto_approve=False)
        ad = store.create(_make_draft())
        updated = store.update(
            ad.id,
            {"title": "Mechanic Ikeja", "expires_at": ad.expires_at + 365 * 24 * HOUR_MS, "is_approved": True},
        )
        assert updated.title == "Mechanic Ikeja"
        assert updated.expires_at == ad.expires_at
        assert updated.is_approved is False
        assert [a.id for a in store.pending()] == [ad.id]

    def test_unknown_id(self):
        store, _ = _make_store()
        assert store.update("nope", {"title": "x"}) is None

    def test_ad_deleted_before_write(self):
        store, _ = _make_store(repo=VanishingRepository())
        ad = store.create(_make_draft())
        assert store.update(ad.id, {"title": "Mechanic Ikeja"}) is None


class TestRenewRepostDelete:
    def test_renew_extends_expiry_only(self):
        store, clock = _make_store()
        ad = store.create(_make_draft())
        clock.advance(10 * HOUR_MS)
        renewed = store.renew(ad.id)
        assert renewed.expires_at == clock.now + 24 * HOUR_MS
        assert renewed.created_at == ad.created_at

    def test_repost_moves_ad_to_top(self):
        store, clock = _make_store()
        first = store.create(_make_draft())
        clock.advance(1000)
        second = store.create(_make_draft())
        clock.advance(1000)
        reposted = store.repost(first.id)
        assert reposted.created_at == clock.now
        newest = sorted(store.list(), key=lambda a: a.created_at, reverse=True)
        assert [a.id for a in newest] == [first.id, second.id]

    def test_renew_revives_an_expired_ad_not_yet_purged(self):
        store, clock = _make_store()
        ad = store.create(_make_draft())
        clock.advance(30 * HOUR_MS)
        assert store.renew(ad.id) is not None
        assert [a.id for a in store.list()] == [ad.id]

    def test_delete(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        assert store.delete(ad.id) is True
        assert store.get(ad.id) is None
        assert store.delete(ad.id) is False


class TestModeration:
    def test_approve(self):
        store, _ = _make_store(auto_approve=False)
        ad = store.create(_make_draft())
        assert store.approve(ad.id).is_approved is True
        assert store.pending() == []

    def test_report_and_dismiss(self):
        store, _ = _make_store()
        a = store.create(_make_draft())
        b = store.create(_make_draft())
        store.report(a.id)
        store.report(b.id)
        store.report(b.id)
        assert [ad.id for ad in store.reported()] == [b.id, a.id]
        assert store.dismiss_reports(b.id).reports == 0
        assert [ad.id for ad in store.reported()] == [a.id]

    def test_unknown_ids(self):
        store, _ = _make_store()
        assert store.approve("nope") is None
        assert store.report("nope") is None
        assert store.dismiss_reports("nope") is None


class TestEngagement:
    def test_reviews_are_newest_first(self):
        store, clock = _make_store()
        ad = store.create(_make_draft())
        store.add_review(ad.id, {"user_id": "u8", "user_name": "Ada", "rating": 4, "comment": "Good"})
        clock.advance(1000)
        latest = store.add_review(ad.id, {"user_id": "u9", "user_name": "Tunde", "rating": 5})
        assert latest.id == "rv-2"
        assert latest.created_at == clock.now
        assert [r.id for r in store.get(ad.id).reviews] == ["rv-2", "rv-1"]

    def test_review_rating_out_of_range(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        with pytest.raises(ValidationError):
            store.add_review(ad.id, {"user_id": "u9", "user_name": "Tunde", "rating": 6})

    def test_review_unknown_ad(self):
        store, _ = _make_store()
        assert store.add_review("nope", {"user_id": "u9", "user_name": "Tunde", "rating": 5}) is None

    def test_calls_count_as_contact(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        insights = store.record_insight(ad.id, InsightKind.calls)
        assert (insights.calls, insights.contacts, insights.views) == (1, 1, 0)

    def test_views_do_not_count_as_contact(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        insights = store.record_insight(ad.id, "views")
        assert (insights.views, insights.contacts) == (1, 0)

    @pytest.mark.parametrize("kind", ["whatsapp", "socials", "web"])
    def test_other_contact_kinds(self, kind):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        insights = store.record_insight(ad.id, kind)
        assert getattr(insights, kind) == 1
        assert insights.contacts == 1

    def test_unknown_ad(self):
        store, _ = _make_store()
        assert store.record_insight("nope", "calls") is None

    def test_concurrent_insights_are_not_lost(self):
        store, _ = _make_store()
        ad = store.create(_make_draft())
        threads = [
            threading.Thread(target=lambda: [store.record_insight(ad.id, "calls") for _ in range(50)])
            for _ in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        insights = store.get(ad.id).insights
        assert insights.calls == 400
        assert insights.contacts == 400
        assert store._locks == {}

    def test_locks_are_released_for_unknown_and_purged_ads(self):
        store, clock = _make_store()
        for i in range(1000):
            store.record_insight(f"bogus-{i}", "views")
            store.approve(f"bogus-{i}")
        ad = store.create(_make_draft())
        store.record_insight(ad.id, "views")
        clock.advance(30 * HOUR_MS)
        assert store.purge_expired() == 1
        assert store._locks == {}

    def test_ad_deleted_before_write(self):
        store, _ = _make_store(repo=VanishingRepository())
        ad = store.create(_make_draft())
        assert store.record_insight(ad.id, "calls") is None
        other = store.create(_make_draft())
        assert store.renew(other.id) is None


class TestSqliteBackend:
    def test_round_trip_through_store(self, tmp_path):
        store, _ = _make_store(SqliteAdRepository(str(tmp_path / "ads.db")))
        ad = store.create(_make_draft(category=Category.healthy.value))
        store.record_insight(ad.id, "whatsapp")
        store.add_review(ad.id, {"user_id": "u9", "user_name": "Tunde", "rating": 3})

        # A fresh repository over the same file sees the persisted state.
        reopened, _ = _make_store(SqliteAdRepository(str(tmp_path / "ads.db")))
        loaded = reopened.get(ad.id)
        assert loaded.category == Category.healthy
        assert loaded.insights.whatsapp == 1
        assert loaded.insights.contacts == 1
        assert len(loaded.reviews) == 1

    def test_listing_order_and_delete(self, tmp_path):
        store, clock = _make_store(SqliteAdRepository(str(tmp_path / "nested" / "ads.db")))
        a = store.create(_make_draft())
        clock.advance(1)
        b = store.create(_make_draft())
        assert [ad.id for ad in store.list()] == [b.id, a.id]
        assert store.delete(a.id) is True
        assert [ad.id for ad in store.list()] == [b.id]

    def test_corrupt_row_is_skipped(self, tmp_path):
        db_path = str(tmp_path / "ads.db")
        store, _ = _make_store(SqliteAdRepository(db_path))
        good = store.create(_make_draft())
        with sqlite3.connect(db_path) as conn:
            conn.execute("INSERT INTO ads (ad_id, payload) VALUES (?, ?)", ("bad", "{not json"))
        assert [ad.id for ad in store.list()] == [good.id]
