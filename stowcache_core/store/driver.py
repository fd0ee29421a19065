"""StowCache Driver - Abstract Driver Contract.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Union

from stowcache_core.store.config import DriverConfig
from stowcache_core.store.keys import validate_key, validate_ttl

logger = logging.getLogger(__name__)

Number = Union[int, float]


class CacheDriver(ABC):
    """Abstract storage driver.

    Implementations provide different storage strategies:
    - LocalDriver: File-based persistence with an in-memory hot index
    - RedisDriver: Redis backend
    - MemcachedDriver: Memcached backend

    All drivers share the same miss and failure semantics so callers can
    swap them freely: a miss is None, a failed write is False, a failed
    counter update is None. Only invalid keys and TTLs raise.
    """

    driver_type = "abstract"

    def __init__(self, config: Optional[DriverConfig] = None):
        """Initialize driver.

        Args:
            config: Driver configuration
        """
        self.config = config or DriverConfig()

    # Validation helpers

    def _validate_key(self, key: str) -> None:
        validate_key(key)

    def _validate_ttl(self, ttl: Optional[int]) -> None:
        validate_ttl(ttl)

    def _effective_ttl(self, ttl: Optional[int]) -> int:
        return ttl if ttl is not None else self.config.default_ttl

    # Contract

    @abstractmethod
    def get(self, key: str) -> Any:
        """Get value by key.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value.

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to live, None for the default, 0 for no expiry

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete value.

        Args:
            key: Cache key

        Returns:
            True if no entry remains
        """
        pass

    @abstractmethod
    def clear(self) -> bool:
        """Delete every entry owned by this driver.

        Returns:
            True if successful
        """
        pass

    @abstractmethod
    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        """Increment numeric value.

        Args:
            key: Cache key
            delta: Amount to add

        Returns:
            New value, or None on failure
        """
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """Get driver statistics.

        Returns:
            Statistics dict, always with a "driver" entry
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check whether the storage is usable right now."""
        pass

    def has(self, key: str) -> bool:
        """Check if key holds a live value."""
        return self.get(key) is not None

    def decrement(self, key: str, delta: Number = 1) -> Optional[Number]:
        """Decrement numeric value."""
        return self.increment(key, -delta)

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        """Get multiple values.

        Args:
            keys: Cache keys

        Returns:
            Dict of key -> value, None for misses
        """
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        return {key: self.get(key) for key in keys}

    def set_multiple(self, values: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """Store multiple values.

        Keys and TTL are validated up front; the writes themselves are
        independent, so a failure part way leaves earlier writes in place.

        Args:
            values: Dict of key -> value
            ttl: TTL for all values

        Returns:
            True if every write succeeded
        """
        self._validate_ttl(ttl)
        for key in values:
            self._validate_key(key)

        success = True
        for key, value in values.items():
            if not self.set(key, value, ttl):
                success = False
        return success

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        """Delete multiple values.

        Args:
            keys: Cache keys

        Returns:
            True if every delete succeeded
        """
        keys = list(keys)
        for key in keys:
            self._validate_key(key)

        success = True
        for key in keys:
            if not self.delete(key):
                success = False
        return success

    # Configuration

    def set_default_ttl(self, ttl: int) -> "CacheDriver":
        """Set the TTL used when writes pass none.

        Args:
            ttl: Default TTL in seconds, 0 = never expire

        Returns:
            Self for chaining
        """
        self._validate_ttl(ttl)
        self.config = dataclasses.replace(self.config, default_ttl=ttl)
        return self

    def get_config(self) -> Dict[str, Any]:
        """Get a copy of the driver configuration."""
        return self.config.to_dict()

    @property
    def storage_path(self) -> str:
        """Storage location, only meaningful for file-backed drivers."""
        return ""

    # Lifecycle

    def close(self) -> None:
        """Release driver resources."""

    def __enter__(self) -> "CacheDriver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __contains__(self, key: str) -> bool:
        """Check if key exists."""
        return self.has(key)


__all__ = ["CacheDriver", "Number"]
