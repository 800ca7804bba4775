"""Port: AI search collaborator."""

from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, Field, model_validator

from ..domain.listing import Ad


class SearchProviderError(Exception):
    """The search collaborator could not produce a result."""


class MissingCredentialsError(SearchProviderError):
    """No API key is configured for the search collaborator."""


class UnsupportedQueryError(SearchProviderError):
    """The collaborator cannot handle this payload modality."""


class SearchQuery(BaseModel):
    """A user query: typed text, a finalized voice transcript, or a photo."""

    modality: Literal["text", "voice", "image"] = Field(default="text")
    text: str | None = Field(default=None, description="Query text or voice transcript")
    image: bytes | None = Field(default=None, description="Raw image bytes")
    mime_type: str = Field(default="image/jpeg", description="Image MIME type")

    @model_validator(mode="after")
    def _payload_matches_modality(self) -> SearchQuery:
        if self.modality == "image":
            if not self.image:
                raise ValueError("image query requires image bytes")
        elif self.text is None:
            raise ValueError(f"{self.modality} query requires text")
        return self

    @classmethod
    def from_text(cls, text: str) -> SearchQuery:
        return cls(modality="text", text=text)

    @classmethod
    def from_transcript(cls, transcript: str) -> SearchQuery:
        return cls(modality="voice", text=transcript)

    @classmethod
    def from_image(cls, data: bytes, mime_type: str = "image/jpeg") -> SearchQuery:
        return cls(modality="image", image=data, mime_type=mime_type)

    @property
    def is_visual(self) -> bool:
        return self.modality == "image"


class SearchCandidate(BaseModel):
    """Searchable projection of an ad sent to the collaborator."""

    id: str
    title: str
    description: str
    category: str
    keywords: list[str] = Field(default_factory=list)
    cities: str = Field(default="", description="Comma-separated city names")

    @classmethod
    def from_ad(cls, ad: Ad) -> SearchCandidate:
        return cls(
            id=ad.id,
            title=ad.title,
            description=ad.description,
            category=ad.category.value,
            keywords=list(ad.keywords),
            cities=", ".join(loc.city for loc in ad.locations),
        )

    @property
    def search_text(self) -> str:
        keywords_text = " ".join(self.keywords)
        return f"{self.title} {self.description} {self.category} {keywords_text} {self.cities}".strip()


@runtime_checkable
class SearchProviderPort(Protocol):
    """Rank candidates for a query.

    Returns the collaborator's raw answer (a mapping or JSON text with
    ``adIds`` and ``explanation``); shape validation belongs to the caller.
    Raises SearchProviderError (or anything else) on failure.
    """

    def search(self, query: SearchQuery, candidates: list[SearchCandidate]) -> Any: ...
