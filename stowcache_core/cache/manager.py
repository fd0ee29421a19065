"""StowCache Manager - Registry of Named Cache Instances.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Type, Union

from stowcache_core.cache.cache import Cache
from stowcache_core.errors import ConfigurationError
from stowcache_core.store.config import DriverConfig, LocalConfig, MemcachedConfig, RedisConfig
from stowcache_core.store.driver import CacheDriver
from stowcache_core.store.local import LocalDriver
from stowcache_core.store.memcached import MemcachedDriver
from stowcache_core.store.redis import RedisDriver

logger = logging.getLogger(__name__)

Number = Union[int, float]

# Driver name prefix -> (driver class, config class)
DRIVER_TYPES: Dict[str, Tuple[Type[CacheDriver], Type[DriverConfig]]] = {
    "local": (LocalDriver, LocalConfig),
    "redis": (RedisDriver, RedisConfig),
    "memcached": (MemcachedDriver, MemcachedConfig),
}


class CacheManager:
    """Registry of named cache instances.

    The application owns one manager and passes it to whoever needs a
    cache. Drivers are picked by name prefix, so ``"local"``,
    ``"local_sessions"`` and ``"local-tmp"`` are all local drivers.

    Keys given to the routed operations may name a driver:
    ``manager.get("redis:user:1")`` reads ``user:1`` from the ``redis``
    instance; keys whose first segment is not a known driver go to the
    default instance unchanged.

    Example:
        manager = CacheManager()
        manager.configure({
            "default": "local",
            "local": {"storage_path": "/var/cache/app", "default_ttl": 600},
            "redis": {"host": "redis.local"},
        })
        manager.set("greeting", "hello")
        manager.get("redis:session:42")
    """

    DEFAULT_DRIVER = "local"

    def __init__(self, default: str = DEFAULT_DRIVER):
        """Initialize manager.

        Args:
            default: Name of the default instance
        """
        self._drivers: Dict[str, Cache] = {}
        self._unnamed: List[Cache] = []
        self._default = default
        self._lock = threading.RLock()

    @property
    def default_driver_name(self) -> str:
        return self._default

    @default_driver_name.setter
    def default_driver_name(self, name: str) -> None:
        self._default = name

    def configure(self, config: Mapping[str, Any]) -> None:
        """Create named instances from a configuration mapping.

        A ``"default"`` entry holding a string selects the default instance;
        every other entry maps an instance name to its driver options.

        Args:
            config: Instance name -> options

        Raises:
            ConfigurationError: If a name matches no driver type
            StorageUnavailableError: If a driver cannot reach its storage
        """
        for name, driver_config in config.items():
            if name == "default":
                if isinstance(driver_config, str):
                    self._default = driver_config
                continue

            driver = self.create_driver(name, driver_config or {})
            self.register(name, Cache(driver, namespace="", manager=self, unnamed=False))

    @staticmethod
    def driver_type_for(name: str) -> str:
        """Get the driver type a name selects.

        Raises:
            ConfigurationError: If the name matches no driver type
        """
        for prefix in DRIVER_TYPES:
            if name.startswith(prefix):
                return prefix
        raise ConfigurationError(f"Unknown driver type: {name}")

    def create_driver(self, name: str, options: Mapping[str, Any]) -> CacheDriver:
        """Build and connect a driver for an instance name.

        Args:
            name: Instance name
            options: Driver options

        Returns:
            Driver instance
        """
        driver_class, config_class = DRIVER_TYPES[self.driver_type_for(name)]
        driver = driver_class(config_class.from_dict(options))

        connect = getattr(driver, "connect", None)
        if connect is not None:
            connect()

        logger.info(f"Created {driver.driver_type} driver {name!r}")
        return driver

    def register(self, name: str, cache: Cache) -> None:
        """Register a cache under a name, replacing any previous one."""
        with self._lock:
            previous = self._drivers.get(name)
            self._drivers[name] = cache
        if previous is not None and previous is not cache:
            previous.close()

    def driver(self, name: Optional[str] = None) -> Cache:
        """Get a named instance, creating it with default options if needed.

        Args:
            name: Instance name, None for the default

        Returns:
            Cache instance
        """
        name = name or self._default

        with self._lock:
            cache = self._drivers.get(name)
            if cache is None:
                cache = Cache(self.create_driver(name, {}), manager=self)
                self._drivers[name] = cache
            return cache

    def drivers(self) -> Dict[str, Cache]:
        with self._lock:
            return dict(self._drivers)

    def add_unnamed_instance(self, cache: Cache) -> None:
        with self._lock:
            self._unnamed.append(cache)

    def unnamed_instances(self) -> List[Cache]:
        with self._lock:
            return list(self._unnamed)

    def parse_key(self, key: str) -> Tuple[str, str]:
        """Split an optional driver name off a key.

        Args:
            key: ``"<driver>:<key>"`` or a plain key

        Returns:
            (driver name, key)
        """
        if ":" in key:
            driver_name, real_key = key.split(":", 1)
            if driver_name in self._drivers or driver_name in DRIVER_TYPES:
                return driver_name, real_key

        return self._default, key

    def _route(self, key: str) -> Tuple[Cache, str]:
        driver_name, real_key = self.parse_key(key)
        return self.driver(driver_name), real_key

    # Routed operations

    def get(self, key: str, default: Any = None) -> Any:
        cache, key = self._route(key)
        return cache.get(key, default)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        cache, key = self._route(key)
        return cache.set(key, value, ttl)

    def has(self, key: str) -> bool:
        cache, key = self._route(key)
        return cache.has(key)

    def delete(self, key: str) -> bool:
        cache, key = self._route(key)
        return cache.delete(key)

    def pull(self, key: str, default: Any = None) -> Any:
        cache, key = self._route(key)
        return cache.pull(key, default)

    def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        cache, key = self._route(key)
        return cache.add(key, value, ttl)

    def forever(self, key: str, value: Any) -> bool:
        cache, key = self._route(key)
        return cache.forever(key, value)

    def remember(self, key: str, callback: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        cache, key = self._route(key)
        return cache.remember(key, callback, ttl)

    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        cache, key = self._route(key)
        return cache.increment(key, delta)

    def decrement(self, key: str, delta: Number = 1) -> Optional[Number]:
        cache, key = self._route(key)
        return cache.decrement(key, delta)

    def clear(self, name: Optional[str] = None) -> bool:
        return self.driver(name).clear()

    def get_stats(self, name: Optional[str] = None) -> Dict[str, Any]:
        return self.driver(name).get_stats()

    # Lifecycle

    def close(self) -> None:
        """Close every registered driver."""
        with self._lock:
            caches = list(self._drivers.values())
            self._drivers.clear()
            self._unnamed.clear()

        for cache in caches:
            try:
                cache.close()
            except Exception as e:
                logger.error(f"Error closing {cache!r}: {e}")

    def __contains__(self, name: str) -> bool:
        return name in self._drivers

    def __enter__(self) -> "CacheManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"CacheManager(default={self._default!r}, drivers={sorted(self._drivers)})"


__all__ = ["CacheManager", "DRIVER_TYPES"]
