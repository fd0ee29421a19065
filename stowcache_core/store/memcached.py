"""StowCache Memcached Driver - Memcached Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, Iterable, Optional

from stowcache_core.errors import StorageUnavailableError
from stowcache_core.store.config import MemcachedConfig
from stowcache_core.store.driver import CacheDriver, Number

logger = logging.getLogger(__name__)


def _stat(stats: Dict[Any, Any], name: str) -> Any:
    return stats.get(name.encode("ascii"), stats.get(name, 0))


class MemcachedDriver(CacheDriver):
    """Memcached cache driver.

    Forwards every operation to a single Memcached server through
    pymemcache; values are pickled, integers are stored as plain numbers
    so INCR/DECR apply to them.

    Memcached reads TTLs above 30 days as absolute timestamps. Counters
    cannot go below zero on the server.

    Example:
        cache = MemcachedDriver(MemcachedConfig(host="memcached.local"))
        cache.set("key", "value", ttl=60)
    """

    driver_type = "memcached"

    def __init__(
        self,
        config: Optional[MemcachedConfig] = None,
        client: Optional[Any] = None,
        **overrides: Any,
    ):
        """Initialize Memcached driver.

        Args:
            config: Memcached configuration
            client: Pre-built pymemcache compatible client
            **overrides: Individual MemcachedConfig options
        """
        config = config or MemcachedConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        super().__init__(config)
        self.config: MemcachedConfig = config
        self._client: Optional[Any] = client

    def connect(self) -> "MemcachedDriver":
        """Connect and verify the server answers.

        Raises:
            StorageUnavailableError: If Memcached cannot be reached
        """
        try:
            self._ensure_connected().version()
        except ImportError as e:
            raise StorageUnavailableError(
                "pymemcache package not installed. Run: pip install pymemcache"
            ) from e
        except Exception as e:
            self._client = None
            raise StorageUnavailableError(
                f"Memcached connection to {self.config.host}:{self.config.port} failed: {e}"
            ) from e
        logger.info(f"Connected to Memcached at {self.config.host}:{self.config.port}")
        return self

    def _ensure_connected(self) -> Any:
        if self._client is not None:
            return self._client

        from pymemcache import serde
        from pymemcache.client.base import Client

        self._client = Client(
            (self.config.host, self.config.port),
            serde=serde.pickle_serde,
            connect_timeout=self.config.timeout,
            timeout=self.config.timeout,
            key_prefix=self.config.prefix,
            default_noreply=False,
        )
        return self._client

    def get(self, key: str) -> Any:
        self._validate_key(key)

        try:
            return self._ensure_connected().get(key)

        except Exception as e:
            logger.error(f"Memcached get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._validate_key(key)
        self._validate_ttl(ttl)

        try:
            return bool(
                self._ensure_connected().set(key, value, expire=self._effective_ttl(ttl), noreply=False)
            )

        except Exception as e:
            logger.error(f"Memcached set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        self._validate_key(key)

        try:
            self._ensure_connected().delete(key, noreply=False)
            return True

        except Exception as e:
            logger.error(f"Memcached delete error for {key}: {e}")
            return False

    def clear(self) -> bool:
        """Flush the whole server, not only this prefix."""
        try:
            return bool(self._ensure_connected().flush_all(noreply=False))

        except Exception as e:
            logger.error(f"Memcached clear error: {e}")
            return False

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        if not keys:
            return {}

        try:
            found = self._ensure_connected().get_many(keys)
        except Exception as e:
            logger.error(f"Memcached get_many error: {e}")
            found = {}

        return {key: found.get(key) for key in keys}

    def set_multiple(self, values: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        self._validate_ttl(ttl)
        for key in values:
            self._validate_key(key)
        if not values:
            return True

        try:
            failed = self._ensure_connected().set_many(
                values, expire=self._effective_ttl(ttl), noreply=False
            )
            if failed:
                logger.error(f"Memcached set_many failed for {failed}")
            return not failed

        except Exception as e:
            logger.error(f"Memcached set_many error: {e}")
            return False

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        if not keys:
            return True

        try:
            self._ensure_connected().delete_many(keys, noreply=False)
            return True

        except Exception as e:
            logger.error(f"Memcached delete_many error: {e}")
            return False

    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        """Increment with INCR/DECR.

        A missing key starts from ``delta``, floored at 0 like DECR itself,
        and that starting value is returned.
        """
        self._validate_key(key)

        if not isinstance(delta, int) or isinstance(delta, bool):
            logger.error(f"Memcached counters only accept integer deltas, got {delta!r}")
            return None

        try:
            client = self._ensure_connected()
            if delta < 0:
                result = client.decr(key, -delta, noreply=False)
            else:
                result = client.incr(key, delta, noreply=False)

        except Exception as e:
            logger.error(f"Memcached increment error for {key}: {e}")
            return None

        if result is None:
            initial = max(delta, 0)
            return initial if self.set(key, initial) else None
        return int(result)

    def get_stats(self) -> Dict[str, Any]:
        try:
            stats = self._ensure_connected().stats()
        except Exception as e:
            return {"driver": self.driver_type, "connected": False, "error": str(e)}

        return {
            "driver": self.driver_type,
            "connected": True,
            "host": self.config.host,
            "port": self.config.port,
            "pid": _stat(stats, "pid"),
            "uptime": _stat(stats, "uptime"),
            "bytes": _stat(stats, "bytes"),
            "get_hits": _stat(stats, "get_hits"),
            "get_misses": _stat(stats, "get_misses"),
        }

    def is_connected(self) -> bool:
        try:
            self._ensure_connected().version()
            return True
        except Exception:
            return False

    def close(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.error(f"Memcached close error: {e}")
            self._client = None

    def __repr__(self) -> str:
        return f"MemcachedDriver(host={self.config.host}, port={self.config.port})"


__all__ = ["MemcachedDriver"]
