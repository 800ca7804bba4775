"""Tests for SearchOrchestrator failure recovery and response validation.

No network or model required: every collaborator is a fake.
"""

import threading
import time

import pytest

from adfeed.domain.listing import HOUR_MS, Ad, Category, Location, SearchResult
from adfeed.ports.search_provider import MissingCredentialsError, SearchQuery, UnsupportedQueryError
from adfeed.services.search_orchestrator import (
    EMPTY_QUERY_HINT,
    OFFLINE_APOLOGY,
    TEXT_APOLOGY,
    VISUAL_APOLOGY,
    MalformedSearchResponse,
    SearchOrchestrator,
    parse_search_response,
)

NOW = 1_700_000_000_000


def _make_ad(ad_id: str, title: str, city: str = "Ikeja") -> Ad:
    return Ad(
        id=ad_id,
        user_id="u1",
        title=title,
        description=f"{title} description",
        category=Category.services,
        keywords=["repair"],
        contact={"phone": "+2348000000000", "whatsapp": "+2348000000000"},
        locations=[Location(lat=6.6, lng=3.3, city=city, state="Lagos")],
        created_at=NOW,
        expires_at=NOW + 24 * HOUR_MS,
    )


SNAPSHOT = [_make_ad("ad-1", "Mechanic"), _make_ad("ad-2", "Barber", "Lekki")]


class FakeProvider:
    """Returns a canned answer; records what it was asked."""

    def __init__(self, answer=None, error: Exception | None = None):
        self.answer = answer
        self.error = error
        self.calls: list[tuple[SearchQuery, list]] = []

    def search(self, query, candidates):
        self.calls.append((query, candidates))
        if self.error is not None:
            raise self.error
        return self.answer


class BlockingProvider:
    """Never answers until released."""

    def __init__(self):
        self.release = threading.Event()

    def search(self, query, candidates):
        self.release.wait(5)
        return {"adIds": ["ad-1"], "explanation": "late"}


def _search(provider, query="mechanic", timeout=1.0) -> SearchResult:
    orchestrator = SearchOrchestrator(provider, timeout_seconds=timeout)
    try:
        return orchestrator.search(query, SNAPSHOT)
    finally:
        orchestrator.close()


class TestSuccess:
    def test_passes_through_ranked_ids(self):
        provider = FakeProvider({"adIds": ["ad-2", "ad-1"], "explanation": "Found them"})
        result = _search(provider)
        assert result.ad_ids == ["ad-2", "ad-1"]
        assert result.explanation == "Found them"

    def test_accepts_json_text(self):
        result = _search(FakeProvider('{"adIds": ["ad-1"], "explanation": "ok"}'))
        assert result.ad_ids == ["ad-1"]

    def test_missing_explanation_becomes_empty(self):
        result = _search(FakeProvider({"adIds": ["ad-1"]}))
        assert result.ad_ids == ["ad-1"]
        assert result.explanation == ""

    def test_non_string_explanation_becomes_empty(self):
        result = _search(FakeProvider({"adIds": ["ad-1"], "explanation": 42}))
        assert result.explanation == ""

    def test_candidates_summarize_the_snapshot(self):
        provider = FakeProvider({"adIds": [], "explanation": ""})
        _search(provider)
        _, candidates = provider.calls[0]
        assert [c.id for c in candidates] == ["ad-1", "ad-2"]
        assert candidates[1].cities == "Lekki"
        assert candidates[0].keywords == ["repair"]

    def test_voice_transcript_takes_the_text_path(self):
        provider = FakeProvider({"adIds": ["ad-1"], "explanation": "ok"})
        result = _search(provider, SearchQuery.from_transcript("barber near me"))
        assert result.ad_ids == ["ad-1"]
        assert provider.calls[0][0].text == "barber near me"


class TestFailureRecovery:
    def test_collaborator_error(self):
        result = _search(FakeProvider(error=RuntimeError("boom")))
        assert result.ad_ids == []
        assert result.explanation == TEXT_APOLOGY

    def test_missing_credentials(self):
        result = _search(FakeProvider(error=MissingCredentialsError("no key")))
        assert result.ad_ids == []
        assert result.explanation == OFFLINE_APOLOGY

    def test_photo_failure_has_its_own_message(self):
        provider = FakeProvider(error=UnsupportedQueryError("no photos"))
        result = _search(provider, SearchQuery.from_image(b"\xff\xd8jpeg"))
        assert result.ad_ids == []
        assert result.explanation == VISUAL_APOLOGY

    @pytest.mark.parametrize(
        "answer",
        ["not json", ["ad-1"], {"explanation": "no ids"}, {"adIds": "ad-1"}, None],
    )
    def test_malformed_response(self, answer):
        result = _search(FakeProvider(answer))
        assert result.ad_ids == []
        assert result.explanation == TEXT_APOLOGY

    def test_slow_collaborator_is_abandoned_within_timeout(self):
        provider = BlockingProvider()
        t0 = time.monotonic()
        try:
            result = _search(provider, timeout=0.2)
        finally:
            provider.release.set()
        assert time.monotonic() - t0 < 2.0
        assert result.ad_ids == []
        assert result.explanation


class TestBlankQuery:
    @pytest.mark.parametrize("query", ["", "   "])
    def test_short_circuits(self, query):
        provider = FakeProvider({"adIds": ["ad-1"], "explanation": "x"})
        result = _search(provider, query)
        assert result.ad_ids == []
        assert result.explanation == EMPTY_QUERY_HINT
        assert provider.calls == []


class TestParseSearchResponse:
    def test_snake_case_ids_are_accepted(self):
        assert parse_search_response({"ad_ids": ["a"], "explanation": "x"}).ad_ids == ["a"]

    def test_rejects_non_object(self):
        with pytest.raises(MalformedSearchResponse):
            parse_search_response("[1, 2]")
