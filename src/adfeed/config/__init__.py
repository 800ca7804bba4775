"""Runtime configuration."""

from .runtime import RuntimeSettings, SearchBackend, StorageBackend, get_settings

__all__ = ["RuntimeSettings", "SearchBackend", "StorageBackend", "get_settings"]
