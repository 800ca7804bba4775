"""Adapter: process-local AdRepositoryPort."""

from __future__ import annotations

import copy
import threading


class InMemoryAdRepository:
    """Keeps records in insertion order, newest first. Returns copies only."""

    def __init__(self, records: list[dict] | None = None) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, dict] = {}
        for record in records or []:
            self._records[str(record.get("id", id(record)))] = copy.deepcopy(record)

    def list_ads(self) -> list[dict]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records.values()]

    def get_ad(self, ad_id: str) -> dict | None:
        with self._lock:
            record = self._records.get(ad_id)
            return copy.deepcopy(record) if record is not None else None

    def save_ad(self, record: dict) -> dict:
        ad_id = record["id"]
        with self._lock:
            if ad_id in self._records:
                self._records[ad_id] = copy.deepcopy(record)
            else:
                self._records = {ad_id: copy.deepcopy(record), **self._records}
        return copy.deepcopy(record)

    def update_ad(self, ad_id: str, updates: dict) -> dict | None:
        with self._lock:
            record = self._records.get(ad_id)
            if record is None:
                return None
            record.update(copy.deepcopy(updates))
            return copy.deepcopy(record)

    def delete_ad(self, ad_id: str) -> bool:
        with self._lock:
            return self._records.pop(ad_id, None) is not None

    def add_review(self, ad_id: str, review: dict) -> bool:
        with self._lock:
            record = self._records.get(ad_id)
            if record is None:
                return False
            record["reviews"] = [copy.deepcopy(review), *(record.get("reviews") or [])]
            return True
