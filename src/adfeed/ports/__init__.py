"""Port interfaces (Protocols).

Application services depend only on these, never on concrete adapters.
No sqlite, httpx, fastembed or other infrastructure imports allowed here.
"""

from .ad_repository import AdRepositoryPort
from .embedding import EmbeddingProvider
from .id_gen import IdProvider, SequentialIdProvider, UuidIdProvider
from .search_provider import (
    MissingCredentialsError,
    SearchCandidate,
    SearchProviderError,
    SearchProviderPort,
    SearchQuery,
    UnsupportedQueryError,
)

__all__ = [
    "AdRepositoryPort",
    "EmbeddingProvider",
    "IdProvider",
    "MissingCredentialsError",
    "SearchCandidate",
    "SearchProviderError",
    "SearchProviderPort",
    "SearchQuery",
    "SequentialIdProvider",
    "UnsupportedQueryError",
    "UuidIdProvider",
]
