"""StowCache Redis Driver - Redis Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Dict, Iterable, Optional

from stowcache_core.errors import StorageUnavailableError
from stowcache_core.protocol.serializer import get_serializer
from stowcache_core.store.config import RedisConfig
from stowcache_core.store.driver import CacheDriver, Number

logger = logging.getLogger(__name__)

INTEGER_VALUE = re.compile(rb"-?\d+")
FLOAT_VALUE = re.compile(rb"-?\d+\.\d+(e[+-]?\d+)?")


class RedisDriver(CacheDriver):
    """Redis cache driver.

    Forwards every operation to Redis; expiry is enforced by the server.

    Notes:
    - Keys are prefixed with the configured prefix.
    - Integers are stored as plain decimal strings so INCRBY/DECRBY work on
      them; other values go through the configured serializer.
    - Client errors are logged and reported as misses or failed writes.

    Example:
        cache = RedisDriver(RedisConfig(host="redis.local"))
        cache.set("key", {"a": 1}, ttl=60)
        value = cache.get("key")
    """

    driver_type = "redis"

    def __init__(
        self,
        config: Optional[RedisConfig] = None,
        client: Optional[Any] = None,
        **overrides: Any,
    ):
        """Initialize Redis driver.

        Args:
            config: Redis configuration
            client: Pre-built redis.Redis compatible client
            **overrides: Individual RedisConfig options
        """
        config = config or RedisConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        super().__init__(config)
        self.config: RedisConfig = config
        self._serializer = get_serializer(config.serializer)
        self._client: Optional[Any] = client

    def connect(self) -> "RedisDriver":
        """Connect and verify the server answers.

        Returns:
            Self for chaining

        Raises:
            StorageUnavailableError: If Redis cannot be reached
        """
        try:
            self._ensure_connected().ping()
        except ImportError as e:
            raise StorageUnavailableError("Redis package not installed. Run: pip install redis") from e
        except Exception as e:
            self._client = None
            raise StorageUnavailableError(
                f"Redis connection to {self.config.host}:{self.config.port} failed: {e}"
            ) from e
        logger.info(f"Connected to Redis at {self.config.host}:{self.config.port}")
        return self

    def _ensure_connected(self) -> Any:
        """Ensure Redis client exists.

        Returns:
            Redis client
        """
        if self._client is not None:
            return self._client

        import redis

        self._client = redis.Redis(
            host=self.config.host,
            port=self.config.port,
            db=self.config.database,
            password=self.config.password,
            socket_timeout=self.config.timeout,
            socket_connect_timeout=self.config.timeout,
            decode_responses=False,
        )
        return self._client

    def _make_key(self, key: str) -> str:
        return f"{self.config.prefix}{key}"

    def _encode(self, value: Any) -> bytes:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value).encode("ascii")
        return self._serializer.serialize(value)

    def _decode(self, data: Any) -> Any:
        if isinstance(data, str):
            data = data.encode("utf-8")
        if INTEGER_VALUE.fullmatch(data):
            return int(data)
        if FLOAT_VALUE.fullmatch(data):
            return float(data)
        return self._serializer.deserialize(data)

    def get(self, key: str) -> Any:
        self._validate_key(key)

        try:
            data = self._ensure_connected().get(self._make_key(key))
            if data is None:
                return None
            return self._decode(data)

        except Exception as e:
            logger.error(f"Redis get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        self._validate_key(key)
        self._validate_ttl(ttl)
        ttl = self._effective_ttl(ttl)

        try:
            client = self._ensure_connected()
            data = self._encode(value)

            if ttl > 0:
                return bool(client.set(self._make_key(key), data, ex=ttl))
            return bool(client.set(self._make_key(key), data))

        except Exception as e:
            logger.error(f"Redis set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        self._validate_key(key)

        try:
            self._ensure_connected().delete(self._make_key(key))
            return True

        except Exception as e:
            logger.error(f"Redis delete error for {key}: {e}")
            return False

    def has(self, key: str) -> bool:
        self._validate_key(key)

        try:
            return self._ensure_connected().exists(self._make_key(key)) > 0

        except Exception as e:
            logger.error(f"Redis exists error for {key}: {e}")
            return False

    def clear(self) -> bool:
        """Delete every key under the configured prefix."""
        try:
            client = self._ensure_connected()
            batch = []
            for redis_key in client.scan_iter(match=f"{self.config.prefix}*", count=100):
                batch.append(redis_key)
                if len(batch) >= 100:
                    client.delete(*batch)
                    batch = []
            if batch:
                client.delete(*batch)
            return True

        except Exception as e:
            logger.error(f"Redis clear error: {e}")
            return False

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Any]:
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        if not keys:
            return {}

        try:
            values = self._ensure_connected().mget([self._make_key(k) for k in keys])
        except Exception as e:
            logger.error(f"Redis mget error: {e}")
            return {key: None for key in keys}

        result: Dict[str, Any] = {}
        for key, data in zip(keys, values):
            try:
                result[key] = None if data is None else self._decode(data)
            except Exception as e:
                logger.error(f"Redis decode error for {key}: {e}")
                result[key] = None
        return result

    def set_multiple(self, values: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        self._validate_ttl(ttl)
        for key in values:
            self._validate_key(key)
        if not values:
            return True
        ttl = self._effective_ttl(ttl)

        try:
            pipe = self._ensure_connected().pipeline()
            for key, value in values.items():
                if ttl > 0:
                    pipe.set(self._make_key(key), self._encode(value), ex=ttl)
                else:
                    pipe.set(self._make_key(key), self._encode(value))
            return all(pipe.execute())

        except Exception as e:
            logger.error(f"Redis pipeline error: {e}")
            return False

    def delete_multiple(self, keys: Iterable[str]) -> bool:
        keys = list(keys)
        for key in keys:
            self._validate_key(key)
        if not keys:
            return True

        try:
            self._ensure_connected().delete(*[self._make_key(k) for k in keys])
            return True

        except Exception as e:
            logger.error(f"Redis delete multiple error: {e}")
            return False

    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        """Increment with INCRBY (INCRBYFLOAT for float deltas).

        The server keeps the key's remaining TTL.
        """
        self._validate_key(key)

        try:
            client = self._ensure_connected()
            if isinstance(delta, float):
                return float(client.incrbyfloat(self._make_key(key), delta))
            return int(client.incrby(self._make_key(key), delta))

        except Exception as e:
            logger.error(f"Redis increment error for {key}: {e}")
            return None

    def decrement(self, key: str, delta: Number = 1) -> Optional[Number]:
        self._validate_key(key)

        if isinstance(delta, float):
            return self.increment(key, -delta)

        try:
            return int(self._ensure_connected().decrby(self._make_key(key), delta))

        except Exception as e:
            logger.error(f"Redis decrement error for {key}: {e}")
            return None

    def get_stats(self) -> Dict[str, Any]:
        try:
            info = self._ensure_connected().info()
        except Exception as e:
            return {"driver": self.driver_type, "connected": False, "error": str(e)}

        return {
            "driver": self.driver_type,
            "connected": True,
            "redis_version": info.get("redis_version", "unknown"),
            "used_memory": info.get("used_memory", 0),
            "connected_clients": info.get("connected_clients", 0),
            "keyspace_hits": info.get("keyspace_hits", 0),
            "keyspace_misses": info.get("keyspace_misses", 0),
        }

    def is_connected(self) -> bool:
        try:
            return bool(self._ensure_connected().ping())
        except Exception:
            return False

    def close(self) -> None:
        """Close Redis connection."""
        if self._client is not None:
            try:
                self._client.close()
            except Exception as e:
                logger.error(f"Redis close error: {e}")
            self._client = None

    def __repr__(self) -> str:
        return f"RedisDriver(host={self.config.host}, port={self.config.port})"


__all__ = ["RedisDriver"]
