"""Concrete adapter implementations."""

from .embedding_search_provider import EmbeddingSearchProvider
from .fastembed_provider import FastEmbedProvider
from .gemini_search_provider import GeminiSearchProvider
from .memory_ad_repository import InMemoryAdRepository
from .sqlite_ad_repository import SqliteAdRepository

__all__ = [
    "EmbeddingSearchProvider",
    "FastEmbedProvider",
    "GeminiSearchProvider",
    "InMemoryAdRepository",
    "SqliteAdRepository",
]
