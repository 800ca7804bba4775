"""Port: storage for ad records."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AdRepositoryPort(Protocol):
    """Full-snapshot storage of JSON-able ad records.

    Records are plain dicts so a corrupt row can be skipped by the caller
    instead of failing the whole listing. ``list_ads`` returns newest-saved
    first. Expiry is not this layer's concern.
    """

    # --- queries ---

    def list_ads(self) -> list[dict]: ...

    def get_ad(self, ad_id: str) -> dict | None: ...

    # --- mutations ---

    def save_ad(self, record: dict) -> dict: ...

    def update_ad(self, ad_id: str, updates: dict) -> dict | None: ...

    def delete_ad(self, ad_id: str) -> bool: ...

    def add_review(self, ad_id: str, review: dict) -> bool: ...
