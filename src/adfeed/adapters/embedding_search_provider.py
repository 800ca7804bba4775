"""Adapter: offline SearchProviderPort ranking candidates by embedding similarity."""

from __future__ import annotations

import hashlib
import math

from ..ports.embedding import EmbeddingProvider
from ..ports.search_provider import SearchCandidate, SearchQuery, UnsupportedQueryError

_CACHE_MAX_SIZE = 2000


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


class EmbeddingSearchProvider:
    """Text and voice search without a network call.

    Candidate vectors are cached by a hash of their searchable text, so an
    unchanged feed is embedded once.
    """

    def __init__(self, embedding_provider: EmbeddingProvider, min_similarity: float = 0.55) -> None:
        self._embed = embedding_provider
        self._min_similarity = min_similarity
        self._cache: dict[str, list[float]] = {}

    def search(self, query: SearchQuery, candidates: list[SearchCandidate]) -> dict:
        if query.is_visual:
            raise UnsupportedQueryError("offline search cannot read photos")

        text = (query.text or "").strip()
        query_vector = self._embed.embed(text)
        vectors = self._candidate_vectors(candidates)

        scored = [
            (cosine_similarity(query_vector, vector), candidate)
            for candidate, vector in zip(candidates, vectors)
        ]
        matches = [(score, c) for score, c in scored if score >= self._min_similarity]
        matches.sort(key=lambda pair: pair[0], reverse=True)

        if not matches:
            explanation = f'No ads closely match "{text}" right now.'
        else:
            categories = sorted({c.category for _, c in matches})
            explanation = (
                f'Found {len(matches)} ad(s) matching "{text}" in {", ".join(categories)}, '
                "closest matches first."
            )
        return {"adIds": [c.id for _, c in matches], "explanation": explanation}

    def _candidate_vectors(self, candidates: list[SearchCandidate]) -> list[list[float]]:
        keys = [hashlib.sha256(c.search_text.encode()).hexdigest() for c in candidates]
        missing = [(key, c.search_text) for key, c in zip(keys, candidates) if key not in self._cache]
        if missing:
            fresh = self._embed.embed_many([text for _, text in missing])
            for (key, _), vector in zip(missing, fresh):
                if len(self._cache) >= _CACHE_MAX_SIZE:
                    self._cache.pop(next(iter(self._cache)))
                self._cache[key] = vector
        # A key evicted during this call is recomputed individually.
        return [self._cache.get(key) or self._embed.embed(c.search_text) for key, c in zip(keys, candidates)]

    def clear_cache(self) -> None:
        self._cache.clear()
