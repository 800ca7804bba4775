"""Adapter: Gemini-backed SearchProviderPort over the REST API."""

from __future__ import annotations

import base64
import json

import httpx

from ..ports.search_provider import (
    MissingCredentialsError,
    SearchCandidate,
    SearchProviderError,
    SearchQuery,
)

_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "adIds": {
            "type": "ARRAY",
            "items": {"type": "STRING"},
            "description": "IDs of ads that match the query, sorted by relevance.",
        },
        "explanation": {
            "type": "STRING",
            "description": "A short friendly explanation of why these ads match.",
        },
    },
    "required": ["adIds", "explanation"],
}

_TEXT_PROMPT = """You are a local ad assistant for "ARD" in Nigeria.
The platform has ONLY 5 categories: Services, Businesses, Events, Jobs, Healthy.

User Query: "{query}"

Ads Data: {ads}

Instructions:
1. Identify what category the user is looking for.
2. Rank ads by matching the query against titles, descriptions, and keywords.
3. Be culturally aware of Nigerian context.
4. Return a JSON object with 'adIds' (ordered by relevance) and a short friendly 'explanation' with a local flavor."""

_IMAGE_PROMPT = """Identify the main item or service in this image. Then, from the following list of local ads, find the most relevant matches.

Ads Data: {ads}

Return a JSON object with 'adIds' (ordered by visual relevance) and a short 'explanation' starting with "Based on your photo..."."""


class GeminiSearchProvider:
    """Concrete SearchProviderPort backed by Gemini ``generateContent``."""

    def __init__(
        self,
        api_key: str | None,
        model_id: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout_seconds: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._model_id = model_id
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._client = client

    def _get_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def search(self, query: SearchQuery, candidates: list[SearchCandidate]) -> str:
        if not self._api_key:
            raise MissingCredentialsError("Gemini API key is not configured")

        body = {
            "contents": [{"parts": self._build_parts(query, candidates)}],
            "generationConfig": {
                "responseMimeType": "application/json",
                "responseSchema": _RESPONSE_SCHEMA,
            },
        }
        url = f"{self._base_url}/models/{self._model_id}:generateContent"
        try:
            response = self._get_client().post(
                url,
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise SearchProviderError(f"Gemini request failed: {e}") from e

        return self._extract_text(response.json())

    @staticmethod
    def _build_parts(query: SearchQuery, candidates: list[SearchCandidate]) -> list[dict]:
        if query.is_visual:
            # Cities are omitted for photo search; the match is purely visual.
            ads = json.dumps([c.model_dump(exclude={"cities"}) for c in candidates])
            return [
                {
                    "inline_data": {
                        "mime_type": query.mime_type,
                        "data": base64.b64encode(query.image or b"").decode("ascii"),
                    }
                },
                {"text": _IMAGE_PROMPT.format(ads=ads)},
            ]
        ads = json.dumps([c.model_dump() for c in candidates])
        return [{"text": _TEXT_PROMPT.format(query=query.text, ads=ads)}]

    @staticmethod
    def _extract_text(payload: dict) -> str:
        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            raise SearchProviderError("Gemini response has no candidates") from e
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        if not text:
            raise SearchProviderError("Gemini response is empty")
        return text

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
