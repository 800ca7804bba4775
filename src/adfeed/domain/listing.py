"""Ad, review and insight domain models."""

from __future__ import annotations

import time
from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

HOUR_MS = 60 * 60 * 1000
DAY_MS = 24 * HOUR_MS


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class Category(str, Enum):
    """Closed set of ad categories."""

    services = "Services"
    businesses = "Businesses"
    events = "Events"
    jobs = "Jobs"
    healthy = "Healthy"


# Filter value meaning "every category"; never stored on an ad.
ALL_CATEGORIES = "All"


class InsightKind(str, Enum):
    """Engagement events that can be recorded against an ad."""

    views = "views"
    calls = "calls"
    whatsapp = "whatsapp"
    socials = "socials"
    web = "web"


# Which insight kinds also count towards the derived ``contacts`` total.
CONTACT_KINDS: dict[InsightKind, bool] = {
    InsightKind.views: False,
    InsightKind.calls: True,
    InsightKind.whatsapp: True,
    InsightKind.socials: True,
    InsightKind.web: True,
}


def is_contact_kind(kind: InsightKind) -> bool:
    return CONTACT_KINDS[kind]


class Coordinate(BaseModel):
    """A point in degrees."""

    lat: float = Field(..., description="Latitude in degrees")
    lng: float = Field(..., description="Longitude in degrees")


class Location(Coordinate):
    """A coordinate with display labels."""

    city: str = Field(default="", description="City label")
    state: str = Field(default="", description="State label")


class ContactChannels(BaseModel):
    """How a consumer reaches the ad owner."""

    phone: str = Field(..., min_length=1, description="Call line")
    whatsapp: str = Field(..., min_length=1, description="WhatsApp line")
    instagram: str | None = Field(default=None, description="Instagram profile URL")
    tiktok: str | None = Field(default=None, description="TikTok profile URL")
    facebook: str | None = Field(default=None, description="Facebook page URL")
    youtube: str | None = Field(default=None, description="YouTube channel URL")
    email: str | None = Field(default=None, description="Contact email")
    website: str | None = Field(default=None, description="Website URL")
    ticket_link: str | None = Field(default=None, description="Ticket URL (events only)")


class AdInsights(BaseModel):
    """Lifetime engagement counters for one ad."""

    views: int = Field(default=0, ge=0)
    contacts: int = Field(default=0, ge=0, description="Sum of all contact events")
    calls: int = Field(default=0, ge=0)
    whatsapp: int = Field(default=0, ge=0)
    socials: int = Field(default=0, ge=0, description="Instagram, TikTok, Facebook, YouTube")
    web: int = Field(default=0, ge=0, description="Website, tickets, email")

    def incremented(self, kind: InsightKind) -> AdInsights:
        """Return a copy with ``kind`` (and ``contacts`` for contact kinds) bumped by one."""
        update = {kind.value: getattr(self, kind.value) + 1}
        if is_contact_kind(kind):
            update["contacts"] = self.contacts + 1
        return self.model_copy(update=update)


class Review(BaseModel):
    """A consumer review of an ad."""

    id: str = Field(..., min_length=1, description="Review identifier")
    user_id: str = Field(..., description="Reviewer identifier")
    user_name: str = Field(..., description="Reviewer display name")
    rating: int = Field(..., ge=1, le=5, description="Star rating 1-5")
    comment: str = Field(default="", description="Review text")
    created_at: int = Field(..., description="Epoch millis")
    owner_reply: str | None = Field(default=None, description="Optional reply by the ad owner")


class Ad(BaseModel):
    """A short-lived, location-tagged classified ad."""

    id: str = Field(..., min_length=1, description="Ad identifier")
    user_id: str = Field(..., description="Owner identifier")
    user_name: str = Field(default="", description="Owner display name")
    title: str = Field(..., min_length=1, description="Headline")
    description: str = Field(default="", description="Body text")
    category: Category = Field(..., description="Ad category")
    keywords: list[str] = Field(default_factory=list, description="Search keywords")
    images: list[str] = Field(default_factory=list, description="Image URLs; first is the cover")
    contact: ContactChannels = Field(..., description="Contact channels")
    locations: list[Location] = Field(default_factory=list, description="First entry is the home location")
    is_all_locations: bool = Field(default=False, description="Match every location")
    created_at: int = Field(..., description="Epoch millis")
    expires_at: int = Field(..., description="Epoch millis")
    is_approved: bool = Field(default=True, description="Moderation gate")
    reports: int = Field(default=0, ge=0, description="Number of user reports")
    reviews: list[Review] = Field(default_factory=list, description="Newest first")
    insights: AdInsights = Field(default_factory=AdInsights)

    @model_validator(mode="after")
    def _check_lifecycle(self) -> Ad:
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        if not self.locations and not self.is_all_locations:
            raise ValueError("locations must not be empty unless is_all_locations is set")
        return self

    @property
    def cover_image(self) -> str | None:
        return self.images[0] if self.images else None

    @property
    def primary_location(self) -> Location | None:
        return self.locations[0] if self.locations else None

    def is_active(self, now: int | None = None) -> bool:
        return (now_ms() if now is None else now) < self.expires_at

    def is_visible(self, now: int | None = None) -> bool:
        return self.is_approved and self.is_active(now)

    def to_record(self) -> dict:
        """Serialize for the storage port."""
        return self.model_dump(mode="json")


class SearchResult(BaseModel):
    """Ranked ad IDs and a human-readable explanation from the search collaborator."""

    ad_ids: list[str] = Field(
        ...,
        validation_alias=AliasChoices("ad_ids", "adIds"),
        description="Ad IDs ordered by relevance",
    )
    explanation: str = Field(default="", description="Why these ads match")

    @field_validator("explanation", mode="before")
    @classmethod
    def _coerce_explanation(cls, value: object) -> str:
        return value if isinstance(value, str) else ""


SortOrder = Literal["distance", "newest"]
