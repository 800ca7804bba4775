"""Adapter: SQLite-backed AdRepositoryPort."""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path


class SqliteAdRepository:
    """Stores each ad as a JSON payload row; list order is newest-saved first."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._ensure_parent_dir()
        self._init_schema()

    def _ensure_parent_dir(self) -> None:
        path = Path(self._db_path)
        if path.parent.exists():
            return
        path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS ads (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    ad_id TEXT NOT NULL UNIQUE,
                    payload TEXT NOT NULL
                )
                """
            )

    @staticmethod
    def _decode(row: sqlite3.Row) -> dict:
        try:
            record = json.loads(row["payload"])
        except ValueError:
            record = None
        if not isinstance(record, dict):
            # Keep the id so the caller can report which row is corrupt.
            return {"id": row["ad_id"], "_corrupt": True}
        return record

    def list_ads(self) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute("SELECT ad_id, payload FROM ads ORDER BY seq DESC").fetchall()
        return [self._decode(row) for row in rows]

    def get_ad(self, ad_id: str) -> dict | None:
        with self._connect() as conn:
            row = conn.execute("SELECT ad_id, payload FROM ads WHERE ad_id = ?", (ad_id,)).fetchone()
        return self._decode(row) if row is not None else None

    def save_ad(self, record: dict) -> dict:
        payload = json.dumps(record)
        with self._connect() as conn:
            updated = conn.execute(
                "UPDATE ads SET payload = ? WHERE ad_id = ?",
                (payload, record["id"]),
            ).rowcount
            if not updated:
                conn.execute(
                    "INSERT INTO ads (ad_id, payload) VALUES (?, ?)",
                    (record["id"], payload),
                )
        return record

    def update_ad(self, ad_id: str, updates: dict) -> dict | None:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT ad_id, payload FROM ads WHERE ad_id = ?", (ad_id,)).fetchone()
            if row is None:
                return None
            record = self._decode(row)
            record.update(updates)
            conn.execute(
                "UPDATE ads SET payload = ? WHERE ad_id = ?",
                (json.dumps(record), ad_id),
            )
        return record

    def delete_ad(self, ad_id: str) -> bool:
        with self._connect() as conn:
            deleted = conn.execute("DELETE FROM ads WHERE ad_id = ?", (ad_id,)).rowcount
        return deleted > 0

    def add_review(self, ad_id: str, review: dict) -> bool:
        with self._connect() as conn:
            conn.execute("BEGIN IMMEDIATE")
            row = conn.execute("SELECT ad_id, payload FROM ads WHERE ad_id = ?", (ad_id,)).fetchone()
            if row is None:
                return False
            record = self._decode(row)
            record["reviews"] = [review, *(record.get("reviews") or [])]
            conn.execute(
                "UPDATE ads SET payload = ? WHERE ad_id = ?",
                (json.dumps(record), ad_id),
            )
        return True
