"""Pydantic-based runtime settings for the feed engine.

Loads from environment variables (with optional .env file).
Invalid values fail fast on first access.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class StorageBackend(str, Enum):
    memory = "memory"
    sqlite = "sqlite"


class SearchBackend(str, Enum):
    gemini = "gemini"
    embedding = "embedding"


class RuntimeSettings(BaseSettings):
    """All configuration for the engine, validated at startup."""

    model_config = {"env_prefix": "", "env_file": ".env", "env_file_encoding": "utf-8"}

    # --- Storage ---
    storage_backend: StorageBackend = Field(
        default=StorageBackend.sqlite,
        description="Where ads live: 'memory' (process-local) or 'sqlite'",
    )
    ads_db_path: str = Field(default="data/ads.db", description="SQLite path for ad storage")

    # --- Lifecycle ---
    ad_ttl_hours: int = Field(default=24, ge=1, description="Lifetime of a new or renewed ad")
    auto_approve: bool = Field(default=True, description="Approve new ads without moderation")
    phone_country_prefix: str = Field(default="+234", description="Prefix applied to contact lines")
    max_extra_locations: int = Field(default=2, ge=0, description="Locations allowed beyond the primary")

    # --- Feed ---
    carousel_group_size: int = Field(default=6, ge=1, description="Ads per carousel slot")
    rotation_min_seconds: float = Field(default=3.0, gt=0, description="Shortest slot rotation delay")
    rotation_max_seconds: float = Field(default=6.0, gt=0, description="Longest slot rotation delay")
    default_radius_km: float = Field(default=50.0, gt=0, description="Initial radius filter")
    radius_sentinel_km: float = Field(
        default=100.0,
        gt=0,
        description="Radius at or above which distance filtering is disabled",
    )
    fallback_state: str = Field(default="Lagos", description="State used when location is denied")
    fallback_city: str = Field(default="Lagos Island", description="City used when location is denied")
    recent_reviews_limit: int = Field(default=5, ge=1, description="Reviews shown on the dashboard")

    # --- Search ---
    search_backend: SearchBackend = Field(default=SearchBackend.gemini, description="AI search collaborator")
    gemini_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_API_KEY", "API_KEY"),
        description="Gemini API key; search degrades gracefully without it",
    )
    gemini_model_id: str = Field(default="gemini-3-flash-preview", description="Gemini model identifier")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST base URL",
    )
    embedding_model_id: str = Field(
        default="BAAI/bge-small-en-v1.5",
        description="Embedding model for offline search",
    )
    search_min_similarity: float = Field(
        default=0.55,
        ge=-1.0,
        le=1.0,
        description="Cosine similarity cut-off for offline search",
    )
    search_timeout_seconds: float = Field(default=15.0, gt=0, description="Bound on one search call")

    # --- MCP ---
    require_studio_key: bool = Field(
        default=False,
        description="Refuse to start the studio tools unless ADFEED_STUDIO_KEY is set",
    )

    @field_validator("phone_country_prefix")
    @classmethod
    def _prefix_format(cls, v: str) -> str:
        if not v.startswith("+") or not v[1:].isdigit():
            raise ValueError(f"phone_country_prefix must look like '+234', got {v!r}")
        return v

    @model_validator(mode="after")
    def _rotation_range(self) -> RuntimeSettings:
        if self.rotation_min_seconds > self.rotation_max_seconds:
            raise ValueError("rotation_min_seconds must not exceed rotation_max_seconds")
        if self.default_radius_km > self.radius_sentinel_km:
            raise ValueError("default_radius_km must not exceed radius_sentinel_km")
        return self


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return the singleton RuntimeSettings (cached after first call)."""
    return RuntimeSettings()
