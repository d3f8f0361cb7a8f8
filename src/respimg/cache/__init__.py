"""Rendered-variant cache."""

from .store import DEFAULT_CACHE_DIRECTORY, CacheEntryError, CacheStore, cache_key

__all__ = ["CacheEntryError", "CacheStore", "DEFAULT_CACHE_DIRECTORY", "cache_key"]
