"""Create-time input for ads and the normalization rules applied to it."""

from __future__ import annotations

import re
from urllib.parse import quote

from pydantic import BaseModel, Field, field_validator

from .listing import Category, ContactChannels, Location
from .places import find_place

_NON_DIGIT_RE = re.compile(r"\D")

# platform -> (profile host, handle prefix in canonical URL)
_SOCIAL_PROFILES: dict[str, tuple[str, str]] = {
    "instagram": ("instagram.com", ""),
    "tiktok": ("tiktok.com", "@"),
    "facebook": ("facebook.com", ""),
    "youtube": ("youtube.com", "@"),
}


class PlaceRef(BaseModel):
    """State + city pair chosen from the place catalog."""

    state: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)


class ContactInput(BaseModel):
    """Raw contact fields as typed by the ad owner."""

    phone: str = Field(..., description="Call line, local or international format")
    whatsapp: str = Field(..., description="WhatsApp line, local or international format")
    instagram: str | None = None
    tiktok: str | None = None
    facebook: str | None = None
    youtube: str | None = None
    email: str | None = None
    website: str | None = None
    ticket_link: str | None = None

    @field_validator("phone", "whatsapp")
    @classmethod
    def _required_line(cls, value: str) -> str:
        if not _NON_DIGIT_RE.sub("", value or ""):
            raise ValueError("call line and WhatsApp line are mandatory")
        return value


class AdDraft(BaseModel):
    """Everything needed to create an ad; lifecycle fields are assigned by the store."""

    id: str | None = Field(default=None, description="Optional caller-chosen identifier")
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(default="")
    title: str = Field(..., min_length=1)
    description: str = Field(default="")
    category: Category
    keywords: list[str] | str = Field(default_factory=list, description="List or comma-separated string")
    images: list[str] = Field(default_factory=list)
    contact: ContactInput
    location: Location = Field(..., description="Primary (home) location")
    extra_locations: list[PlaceRef] = Field(default_factory=list)
    is_all_locations: bool = False


def parse_keywords(raw: list[str] | str) -> list[str]:
    """Split/trim/lower-case keywords, dropping empties and keeping order."""
    items = raw.split(",") if isinstance(raw, str) else raw
    return [k.strip().lower() for k in items if k and k.strip()]


def normalize_phone(raw: str, country_prefix: str = "+234") -> str:
    """Digits only, local trunk '0' dropped, country prefix applied once."""
    digits = _NON_DIGIT_RE.sub("", raw)
    prefix_digits = _NON_DIGIT_RE.sub("", country_prefix)
    if raw.strip().startswith("+") and digits.startswith(prefix_digits):
        digits = digits[len(prefix_digits):]
    if digits.startswith("0"):
        digits = digits[1:]
    return f"{country_prefix}{digits}"


def social_handle(raw: str | None, platform: str) -> str:
    """Extract a bare handle from '@name', 'name' or a full profile URL."""
    if not raw:
        return ""
    clean = raw.strip()
    host = _SOCIAL_PROFILES[platform][0]
    if host in clean:
        clean = clean.split(f"{host}/")[-1]
        clean = clean.split("?")[0].rstrip("/")
    return clean.replace("@", "")


def social_url(raw: str | None, platform: str) -> str | None:
    handle = social_handle(raw, platform)
    if not handle:
        return None
    host, prefix = _SOCIAL_PROFILES[platform]
    return f"https://www.{host}/{prefix}{handle}"


def normalize_contact(
    contact: ContactInput,
    category: Category,
    country_prefix: str = "+234",
) -> ContactChannels:
    return ContactChannels(
        phone=normalize_phone(contact.phone, country_prefix),
        whatsapp=normalize_phone(contact.whatsapp, country_prefix),
        instagram=social_url(contact.instagram, "instagram"),
        tiktok=social_url(contact.tiktok, "tiktok"),
        facebook=social_url(contact.facebook, "facebook"),
        youtube=social_url(contact.youtube, "youtube"),
        email=contact.email or None,
        website=contact.website or None,
        ticket_link=(contact.ticket_link or None) if category == Category.events else None,
    )


def resolve_locations(draft: AdDraft, max_extra: int = 2) -> list[Location]:
    """Primary location followed by catalog-resolved extras.

    Extras are ignored for all-locations ads. Raises ValueError for too many
    extras or a state/city pair missing from the catalog.
    """
    locations = [draft.location]
    if draft.is_all_locations:
        return locations
    if len(draft.extra_locations) > max_extra:
        raise ValueError(f"at most {max_extra} additional locations are allowed")
    for ref in draft.extra_locations:
        place = find_place(ref.state, ref.city)
        if place is None:
            raise ValueError(f"unknown location: {ref.city}, {ref.state}")
        locations.append(place)
    return locations


def whatsapp_link(whatsapp: str, ad_title: str) -> str:
    """wa.me deep link with a greeting that names the ad."""
    number = whatsapp.replace("+", "").replace(" ", "")
    message = (
        "I'm contacting you from [Ard]. I saw your post, your ad about "
        f'"{ad_title}", and I want some more information.'
    )
    return f"https://wa.me/{number}?text={quote(message)}"
