"""StowCache Driver Configuration.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Mapping, Optional, Type, TypeVar

from stowcache_core.errors import ConfigurationError, InvalidTtlError
from stowcache_core.store.keys import TEMP_SUFFIX

logger = logging.getLogger(__name__)

C = TypeVar("C", bound="DriverConfig")


def _default_storage_path() -> str:
    return os.path.join(tempfile.gettempdir(), "stowcache")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


@dataclass
class DriverConfig:
    """Options shared by every driver.

    Attributes:
        default_ttl: TTL applied when a write passes none, 0 = never expire
    """

    default_ttl: int = 3600

    def __post_init__(self):
        if not _is_int(self.default_ttl) or self.default_ttl < 0:
            raise InvalidTtlError(f"default_ttl must be a non-negative integer: {self.default_ttl!r}")

    @classmethod
    def from_dict(cls: Type[C], data: Optional[Mapping[str, Any]] = None) -> C:
        """Create from a plain mapping, ignoring unknown options.

        Args:
            data: Option mapping

        Returns:
            Config instance
        """
        data = dict(data or {})
        known = {f.name for f in fields(cls)}

        for name in sorted(set(data) - known):
            logger.warning(f"Ignoring unknown {cls.__name__} option: {name}")

        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class LocalConfig(DriverConfig):
    """Local file driver configuration.

    Attributes:
        storage_path: Directory holding the entry files
        file_extension: Suffix identifying entry files
        serializer: Serializer format name
        gc_probability: Sweep runs when randint(1, gc_divisor) <= gc_probability
        gc_divisor: See gc_probability
        gc_temp_max_age: Seconds after which a sweep removes a leftover temp file
    """

    storage_path: str = field(default_factory=_default_storage_path)
    file_extension: str = ".cache"
    serializer: str = "pickle"
    gc_probability: int = 1
    gc_divisor: int = 100
    gc_temp_max_age: int = 3600

    def __post_init__(self):
        super().__post_init__()
        self.storage_path = os.fspath(self.storage_path)

        if not self.file_extension:
            raise ConfigurationError("file_extension cannot be empty")
        if os.sep in self.file_extension or "/" in self.file_extension:
            raise ConfigurationError(f"Invalid file_extension: {self.file_extension!r}")
        if self.file_extension.endswith(TEMP_SUFFIX) or TEMP_SUFFIX.endswith(self.file_extension):
            raise ConfigurationError(
                f"file_extension {self.file_extension!r} would match temp files ({TEMP_SUFFIX!r})"
            )

        for name in ("gc_probability", "gc_divisor", "gc_temp_max_age"):
            if not _is_int(getattr(self, name)):
                raise ConfigurationError(f"{name} must be an integer: {getattr(self, name)!r}")
        if self.gc_divisor < 1:
            raise ConfigurationError(f"gc_divisor must be positive: {self.gc_divisor}")
        if not 0 <= self.gc_probability <= self.gc_divisor:
            raise ConfigurationError(
                f"gc_probability must be between 0 and gc_divisor ({self.gc_divisor}): "
                f"{self.gc_probability}"
            )
        if self.gc_temp_max_age < 1:
            raise ConfigurationError(f"gc_temp_max_age must be positive: {self.gc_temp_max_age}")


@dataclass
class RedisConfig(DriverConfig):
    """Redis driver configuration.

    Attributes:
        host: Redis host
        port: Redis port
        timeout: Socket and connect timeout in seconds
        password: Redis password
        database: Redis database number
        prefix: Key prefix
        serializer: Serializer format name for non-integer values
    """

    host: str = "127.0.0.1"
    port: int = 6379
    timeout: float = 2.5
    password: Optional[str] = None
    database: int = 0
    prefix: str = "cache:"
    serializer: str = "pickle"


@dataclass
class MemcachedConfig(DriverConfig):
    """Memcached driver configuration.

    Attributes:
        host: Memcached host
        port: Memcached port
        timeout: Socket and connect timeout in seconds
        prefix: Key prefix
    """

    host: str = "127.0.0.1"
    port: int = 11211
    timeout: float = 2.5
    prefix: str = "cache:"


__all__ = ["DriverConfig", "LocalConfig", "RedisConfig", "MemcachedConfig"]
