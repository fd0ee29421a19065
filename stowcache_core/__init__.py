"""StowCache - One Cache Vocabulary over Local, Redis and Memcached Storage.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A caching layer with:
- A single get/set/has/delete contract for every driver
- A file-based local driver with an in-memory hot index
- Lazy expiry plus probabilistic garbage collection
- Atomic file writes safe for concurrent processes
- Redis and Memcached pass-through drivers
- Namespaced cache instances and a named-instance manager

Architecture:
    ┌─────────────────────────────────────────────────────────────────┐
    │                        StowCache System                         │
    ├─────────────────────────────────────────────────────────────────┤
    │  ┌──────────────┐   ┌──────────────┐   ┌──────────────┐         │
    │  │ CacheManager │──▶│    Cache     │──▶│  namespace:  │  FRONT  │
    │  │ named routes │   │ remember/add │   │     key      │  END    │
    │  └──────────────┘   └──────┬───────┘   └──────────────┘         │
    │                            │                                    │
    │  ┌─────────────────────────┴─────────────────────────┐          │
    │  │                 CacheDriver contract              │          │
    │  │   ┌─────────┐      ┌─────────┐      ┌───────────┐ │ DRIVERS  │
    │  │   │  Local  │      │  Redis  │      │ Memcached │ │          │
    │  │   └────┬────┘      └─────────┘      └───────────┘ │          │
    │  └────────┼──────────────────────────────────────────┘          │
    │           │                                                     │
    │  ┌────────┴──────────────────────────────────────────┐          │
    │  │  hot index ─▶ KeyLocator ─▶ EntryCodec ─▶ files    │  LOCAL   │
    │  │                     GarbageCollector sweep         │  STORE   │
    │  └───────────────────────────────────────────────────┘          │
    └─────────────────────────────────────────────────────────────────┘

Example Usage:
    from stowcache_core import Cache, CacheManager, LocalDriver

    # Local file cache
    with LocalDriver(storage_path="/var/cache/myapp", default_ttl=300) as driver:
        cache = Cache(driver, namespace="users")
        cache.set("1", {"name": "Ada"})
        user = cache.get("1")
        visits = cache.increment("visits")

    # Named instances
    manager = CacheManager()
    manager.configure({
        "default": "local",
        "local": {"storage_path": "/var/cache/myapp"},
        "redis": {"host": "redis.local"},
    })
    manager.set("greeting", "hello", ttl=60)
    token = manager.get("redis:token")
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from stowcache_core.errors import (
    CacheError,
    InvalidKeyError,
    InvalidTtlError,
    ConfigurationError,
    StorageUnavailableError,
)
from stowcache_core.cache.entry import CacheEntry
from stowcache_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    PickleSerializer,
    MsgPackSerializer,
    EntryCodec,
    get_serializer,
)
from stowcache_core.store.config import (
    DriverConfig,
    LocalConfig,
    RedisConfig,
    MemcachedConfig,
)
from stowcache_core.store.driver import CacheDriver
from stowcache_core.store.gc import GarbageCollector
from stowcache_core.store.keys import KeyLocator
from stowcache_core.store.local import LocalDriver
from stowcache_core.store.redis import RedisDriver
from stowcache_core.store.memcached import MemcachedDriver
from stowcache_core.cache.cache import Cache
from stowcache_core.cache.manager import CacheManager

__all__ = [
    # Errors
    "CacheError",
    "InvalidKeyError",
    "InvalidTtlError",
    "ConfigurationError",
    "StorageUnavailableError",
    # Cache
    "Cache",
    "CacheEntry",
    "CacheManager",
    # Drivers
    "CacheDriver",
    "DriverConfig",
    "LocalConfig",
    "LocalDriver",
    "RedisConfig",
    "RedisDriver",
    "MemcachedConfig",
    "MemcachedDriver",
    "GarbageCollector",
    "KeyLocator",
    # Protocol
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "EntryCodec",
    "get_serializer",
]
