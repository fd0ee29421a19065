"""Cache module - Entries and the namespaced cache front end."""

from stowcache_core.cache.entry import CacheEntry
from stowcache_core.cache.cache import Cache

__all__ = [
    "CacheEntry",
    "Cache",
]
