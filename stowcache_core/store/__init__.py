"""Store module - Storage drivers."""

from stowcache_core.store.config import (
    DriverConfig,
    LocalConfig,
    RedisConfig,
    MemcachedConfig,
)
from stowcache_core.store.keys import KeyLocator, validate_key, validate_ttl
from stowcache_core.store.driver import CacheDriver
from stowcache_core.store.gc import GarbageCollector
from stowcache_core.store.local import LocalDriver
from stowcache_core.store.redis import RedisDriver
from stowcache_core.store.memcached import MemcachedDriver

__all__ = [
    "DriverConfig",
    "LocalConfig",
    "RedisConfig",
    "MemcachedConfig",
    "KeyLocator",
    "validate_key",
    "validate_ttl",
    "CacheDriver",
    "GarbageCollector",
    "LocalDriver",
    "RedisDriver",
    "MemcachedDriver",
]
