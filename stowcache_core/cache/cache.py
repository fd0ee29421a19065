"""StowCache Cache - Namespaced Front End over a Driver.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Optional, Union

if TYPE_CHECKING:
    from stowcache_core.cache.manager import CacheManager
    from stowcache_core.store.driver import CacheDriver

logger = logging.getLogger(__name__)

Number = Union[int, float]


class Cache:
    """Cache front end bound to one driver and one namespace.

    Every key is stored as ``"<namespace>:<key>"`` so several logical
    caches can share a driver. Miss and failure semantics are the
    driver's: None for a miss, False for a failed write.

    Example:
        cache = Cache(LocalDriver(storage_path="/var/cache/app"), namespace="users")

        cache.set("1", {"name": "Ada"}, ttl=300)
        user = cache.remember("2", lambda: load_user(2), ttl=300)

        @cache.cached(ttl=60)
        def expensive_operation(id):
            return compute(id)
    """

    def __init__(
        self,
        driver: "CacheDriver",
        namespace: str = "app",
        manager: Optional["CacheManager"] = None,
        unnamed: bool = True,
    ):
        """Initialize cache.

        Args:
            driver: Storage driver
            namespace: Key namespace, empty for none
            manager: Manager tracking unnamed instances
            unnamed: Whether this instance is not registered under a name
        """
        self._driver = driver
        self._namespace = namespace
        self._manager = manager
        self._unnamed = unnamed

        if unnamed and manager is not None:
            manager.add_unnamed_instance(self)

    @property
    def driver(self) -> "CacheDriver":
        return self._driver

    @property
    def namespace(self) -> str:
        return self._namespace

    @property
    def storage_path(self) -> str:
        return self._driver.storage_path

    @property
    def driver_type(self) -> str:
        return self._driver.driver_type

    def is_unnamed(self) -> bool:
        return self._unnamed

    def with_namespace(self, namespace: str) -> "Cache":
        """Get a cache over the same driver with another namespace."""
        return Cache(self._driver, namespace, manager=self._manager, unnamed=self._unnamed)

    def _make_key(self, key: str) -> str:
        if not self._namespace:
            return key
        return f"{self._namespace}:{key}"

    # Driver operations

    def get(self, key: str, default: Any = None) -> Any:
        """Get value from cache.

        Args:
            key: Cache key
            default: Value returned on a miss

        Returns:
            Cached value or default
        """
        value = self._driver.get(self._make_key(key))
        return default if value is None else value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value in cache.

        Args:
            key: Cache key
            value: Value to cache
            ttl: TTL in seconds, None for the driver default, 0 for no expiry

        Returns:
            True if successful
        """
        return self._driver.set(self._make_key(key), value, ttl)

    def delete(self, key: str) -> bool:
        return self._driver.delete(self._make_key(key))

    def has(self, key: str) -> bool:
        return self._driver.has(self._make_key(key))

    def clear(self) -> bool:
        """Clear the whole driver, every namespace included."""
        return self._driver.clear()

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Get multiple values.

        Args:
            keys: Keys without namespace

        Returns:
            Dict of key -> value, None for misses
        """
        keys = list(keys)
        results = self._driver.get_multiple([self._make_key(k) for k in keys])
        return {key: results.get(self._make_key(key)) for key in keys}

    def set_multiple(self, values: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        return self._driver.set_multiple(
            {self._make_key(k): v for k, v in values.items()}, ttl
        )

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        return self._driver.delete_multiple([self._make_key(k) for k in keys])

    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        return self._driver.increment(self._make_key(key), delta)

    def decrement(self, key: str, delta: Number = 1) -> Optional[Number]:
        return self._driver.decrement(self._make_key(key), delta)

    def get_stats(self) -> Dict[str, Any]:
        return self._driver.get_stats()

    def is_connected(self) -> bool:
        return self._driver.is_connected()

    # Composite operations

    def remember(self, key: str, callback: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Get value or compute, store and return it.

        Args:
            key: Cache key
            callback: Factory called on a miss
            ttl: TTL for the computed value

        Returns:
            Cached or computed value
        """
        value = self.get(key)
        if value is not None:
            return value

        value = callback()
        self.set(key, value, ttl)
        return value

    def pull(self, key: str, default: Any = None) -> Any:
        """Get value and delete it."""
        value = self.get(key, default)
        self.delete(key)
        return value

    def add(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Set value only if key is absent.

        Not atomic: another writer may store the key between the check and
        the write.
        """
        if self.has(key):
            return False
        return self.set(key, value, ttl)

    def forever(self, key: str, value: Any) -> bool:
        """Set value that never expires."""
        return self.set(key, value, 0)

    def cached(
        self,
        ttl: Optional[int] = None,
        key_builder: Optional[Callable[..., str]] = None,
    ):
        """Decorator to cache function results.

        Results equal to None are not cached.

        Args:
            ttl: Cache TTL
            key_builder: Function to build cache key from the call arguments

        Returns:
            Decorator function
        """
        def decorator(func: Callable) -> Callable:
            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                if key_builder:
                    cache_key = key_builder(*args, **kwargs)
                else:
                    key_parts = [func.__name__]
                    key_parts.extend(str(a) for a in args)
                    key_parts.extend(f"{k}={v}" for k, v in sorted(kwargs.items()))
                    cache_key = ":".join(key_parts)

                return self.remember(cache_key, lambda: func(*args, **kwargs), ttl)

            wrapper.cache = self
            return wrapper

        return decorator

    def close(self) -> None:
        self._driver.close()

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __enter__(self) -> "Cache":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Cache(driver={self.driver_type!r}, namespace={self._namespace!r})"


__all__ = ["Cache"]
