"""StowCache Entry - Cache Entry with Absolute Expiry.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from stowcache_core.errors import CorruptEntryError

REQUIRED_FIELDS = ("key", "value", "expires_at", "created_at")


def _is_timestamp(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class CacheEntry:
    """A stored value with its expiry metadata.

    Attributes:
        key: Logical (already namespaced) key, kept for integrity checks
        value: Cached value
        expires_at: Absolute epoch seconds, 0 means never
        created_at: Epoch seconds of the write
    """

    key: str
    value: Any
    expires_at: float = 0
    created_at: float = field(default_factory=time.time)

    @classmethod
    def create(cls, key: str, value: Any, ttl: int = 0) -> "CacheEntry":
        """Build an entry expiring ``ttl`` seconds from now.

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to live, 0 for no expiry

        Returns:
            CacheEntry instance
        """
        now = time.time()
        expires_at = now + ttl if ttl > 0 else 0
        return cls(key=key, value=value, expires_at=expires_at, created_at=now)

    @property
    def never_expires(self) -> bool:
        """Check if entry has no expiry."""
        return self.expires_at == 0

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if entry has expired.

        Args:
            now: Reference time, defaults to the current time

        Returns:
            True if expired
        """
        if self.expires_at <= 0:
            return False
        if now is None:
            now = time.time()
        return self.expires_at < now

    @property
    def remaining_ttl(self) -> Optional[float]:
        """Get remaining TTL in seconds, None if the entry never expires."""
        if self.never_expires:
            return None
        return max(0.0, self.expires_at - time.time())

    @property
    def age_seconds(self) -> float:
        """Get entry age in seconds."""
        return time.time() - self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation
        """
        return {
            "key": self.key,
            "value": self.value,
            "expires_at": self.expires_at,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Any) -> "CacheEntry":
        """Create from dictionary.

        Args:
            data: Decoded payload

        Returns:
            CacheEntry instance

        Raises:
            CorruptEntryError: If the payload does not have the entry shape
        """
        if not isinstance(data, dict):
            raise CorruptEntryError(f"Expected a mapping, got {type(data).__name__}")

        missing = [name for name in REQUIRED_FIELDS if name not in data]
        if missing:
            raise CorruptEntryError(f"Missing fields: {', '.join(missing)}")

        if not isinstance(data["key"], str):
            raise CorruptEntryError("Entry key is not a string")
        if not _is_timestamp(data["expires_at"]) or data["expires_at"] < 0:
            raise CorruptEntryError("Invalid expires_at")
        if not _is_timestamp(data["created_at"]):
            raise CorruptEntryError("Invalid created_at")

        return cls(
            key=data["key"],
            value=data["value"],
            expires_at=data["expires_at"],
            created_at=data["created_at"],
        )

    def __repr__(self) -> str:
        if self.never_expires:
            return f"CacheEntry(key={self.key!r}, ttl=forever)"
        return f"CacheEntry(key={self.key!r}, ttl={self.remaining_ttl:.1f}s)"


__all__ = ["CacheEntry"]
