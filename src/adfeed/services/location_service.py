"""LocationService: resolves the user's location, falling back to a default city."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field

from ..config.runtime import RuntimeSettings
from ..domain.listing import Coordinate, Location
from ..domain.places import find_place


class ResolvedLocation(BaseModel):
    location: Location
    is_fallback: bool = Field(default=False, description="True when detection was denied or failed")


class LocationService:
    def __init__(self, fallback: Location) -> None:
        self._fallback = fallback

    @classmethod
    def from_settings(cls, settings: RuntimeSettings) -> LocationService:
        fallback = find_place(settings.fallback_state, settings.fallback_city)
        if fallback is None:
            raise ValueError(
                f"fallback location {settings.fallback_city}, {settings.fallback_state} is not in the place catalog"
            )
        return cls(fallback)

    @property
    def fallback(self) -> Location:
        return self._fallback

    def resolve(self, detected: Coordinate | None) -> ResolvedLocation:
        """Use the detected coordinate when valid; otherwise the configured city."""
        if detected is not None and math.isfinite(detected.lat) and math.isfinite(detected.lng):
            return ResolvedLocation(
                location=Location(lat=detected.lat, lng=detected.lng, city="Near You", state="Detected"),
            )
        return ResolvedLocation(location=self._fallback, is_fallback=True)

    def choose(self, state: str, city: str) -> ResolvedLocation | None:
        """A city picked by the user from the catalog; None if unknown."""
        place = find_place(state, city)
        if place is None:
            return None
        return ResolvedLocation(location=place)
