"""SearchOrchestrator: AI-assisted search that always returns a usable result."""

from __future__ import annotations

import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Iterable

from pydantic import ValidationError

from ..domain.listing import Ad, SearchResult
from ..ports.search_provider import (
    MissingCredentialsError,
    SearchCandidate,
    SearchProviderPort,
    SearchQuery,
)

_LOGGER = logging.getLogger(__name__)

TEXT_APOLOGY = "Oga/Madam, the AI search had a small issue. Please check your connection and try again!"
VISUAL_APOLOGY = "We couldn't process your photo right now. Please check your signal and try again."
OFFLINE_APOLOGY = (
    "Oga, the AI search is currently offline because the API key is missing. "
    "Please check the platform settings."
)
EMPTY_QUERY_HINT = "Tell us what you're looking for and we'll find it nearby."


class MalformedSearchResponse(ValueError):
    """The collaborator answered with something that is not a SearchResult."""


def parse_search_response(raw: Any) -> SearchResult:
    """Validate the collaborator's raw answer into a SearchResult.

    Accepts a mapping or JSON text. A missing or non-string explanation
    becomes ''. Anything else off-shape raises MalformedSearchResponse.
    """
    if isinstance(raw, SearchResult):
        return raw
    if isinstance(raw, (bytes, str)):
        try:
            raw = json.loads(raw)
        except ValueError as e:
            raise MalformedSearchResponse(f"response is not JSON: {e}") from e
    if not isinstance(raw, dict):
        raise MalformedSearchResponse(f"expected an object, got {type(raw).__name__}")
    try:
        return SearchResult.model_validate(raw)
    except ValidationError as e:
        raise MalformedSearchResponse(str(e)) from e


class SearchOrchestrator:
    """Dispatch a query to the search collaborator with a bounded wait.

    Failures of any kind (network, credentials, malformed payload, timeout)
    are recovered into an empty result with a friendly explanation.
    """

    def __init__(
        self,
        provider: SearchProviderPort,
        timeout_seconds: float = 15.0,
        max_workers: int = 4,
        logger: logging.Logger | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = timeout_seconds
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="adfeed-search")
        self._logger = logger or _LOGGER

    def search(self, query: SearchQuery | str, snapshot: Iterable[Ad]) -> SearchResult:
        if isinstance(query, str):
            query = SearchQuery.from_text(query)
        if not query.is_visual and not (query.text or "").strip():
            return SearchResult(ad_ids=[], explanation=EMPTY_QUERY_HINT)

        candidates = [SearchCandidate.from_ad(ad) for ad in snapshot]
        apology = VISUAL_APOLOGY if query.is_visual else TEXT_APOLOGY
        t0 = time.monotonic()

        future = self._executor.submit(self._provider.search, query, candidates)
        try:
            result = parse_search_response(future.result(timeout=self._timeout))
        except FutureTimeoutError:
            future.cancel()
            self._log_failure(query, t0, "timeout")
            return SearchResult(ad_ids=[], explanation=apology)
        except MissingCredentialsError as e:
            self._log_failure(query, t0, str(e))
            return SearchResult(ad_ids=[], explanation=VISUAL_APOLOGY if query.is_visual else OFFLINE_APOLOGY)
        except Exception as e:
            self._log_failure(query, t0, f"{type(e).__name__}: {e}")
            return SearchResult(ad_ids=[], explanation=apology)

        self._logger.info(
            "search_done",
            extra={
                "modality": query.modality,
                "candidates_count": len(candidates),
                "results_count": len(result.ad_ids),
                "latency_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )
        return result

    def _log_failure(self, query: SearchQuery, t0: float, error: str) -> None:
        self._logger.warning(
            "search_failed",
            extra={
                "modality": query.modality,
                "error": error,
                "latency_ms": round((time.monotonic() - t0) * 1000, 2),
            },
        )

    def close(self) -> None:
        """Stop accepting work; a call stuck in the collaborator is abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)
