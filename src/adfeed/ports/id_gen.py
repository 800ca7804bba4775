"""Port: ID generation strategies."""

from __future__ import annotations

import uuid
from typing import Protocol, runtime_checkable


@runtime_checkable
class IdProvider(Protocol):
    """Generate a unique identifier for a new ad or review."""

    def new_id(self) -> str: ...


# ---------------------------------------------------------------------------
# Default implementations (pure stdlib, no infra deps)
# ---------------------------------------------------------------------------


class UuidIdProvider:
    """Short random IDs taken from uuid4."""

    def __init__(self, length: int = 12) -> None:
        self._length = length

    def new_id(self) -> str:
        return uuid.uuid4().hex[: self._length]


class SequentialIdProvider:
    """Predictable IDs (``<prefix>1``, ``<prefix>2``...) for seeding and tests."""

    def __init__(self, prefix: str = "ad-") -> None:
        self._prefix = prefix
        self._next = 0

    def new_id(self) -> str:
        self._next += 1
        return f"{self._prefix}{self._next}"
