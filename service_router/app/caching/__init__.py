"""
Router caching package.

One Redis-backed store holding the single shared ``page`` entry.
"""

from .cache_store import CacheStore

__all__ = ["CacheStore"]
