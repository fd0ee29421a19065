"""StowCache Keys - Key Validation and Storage Location Mapping.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import re
from pathlib import Path
from typing import Any, Union

from stowcache_core.errors import InvalidKeyError, InvalidTtlError

# Temp files written before the atomic rename into place
TEMP_PREFIX = "tmp_"
TEMP_SUFFIX = ".tmp"

# Path separators, braces, parentheses and "@"
UNSAFE_KEY_CHARS = re.compile(r"[{}()/\\@]")


def validate_key(key: Any) -> None:
    """Reject keys that are empty or unsafe to store.

    Args:
        key: Cache key

    Raises:
        InvalidKeyError: If the key is invalid
    """
    if not isinstance(key, str):
        raise InvalidKeyError(f"Cache key must be a string, got {type(key).__name__}")
    if not key:
        raise InvalidKeyError("Cache key cannot be empty")
    if UNSAFE_KEY_CHARS.search(key):
        raise InvalidKeyError(f"Invalid characters in cache key: {key!r}")


def validate_ttl(ttl: Any) -> None:
    """Reject negative or non-integer TTLs. None means "use the default".

    Args:
        ttl: Time to live in seconds

    Raises:
        InvalidTtlError: If the TTL is invalid
    """
    if ttl is None:
        return
    if not isinstance(ttl, int) or isinstance(ttl, bool):
        raise InvalidTtlError(f"TTL must be an integer, got {type(ttl).__name__}")
    if ttl < 0:
        raise InvalidTtlError(f"TTL cannot be negative: {ttl}")


class KeyLocator:
    """Maps cache keys to entry files.

    One file per key, named by the SHA-256 digest of the key so that any
    valid key yields a safe, fixed-length file name.

    Example:
        locator = KeyLocator("/var/cache/app", ".cache")
        locator.locate("user:1")  # /var/cache/app/<sha256>.cache
    """

    def __init__(self, directory: Union[str, Path], extension: str):
        self.directory = Path(directory)
        self.extension = extension

    @property
    def pattern(self) -> str:
        """Glob pattern matching entry files."""
        return f"*{self.extension}"

    @property
    def temp_pattern(self) -> str:
        """Glob pattern matching in-flight or abandoned temp files."""
        return f"{TEMP_PREFIX}*{TEMP_SUFFIX}"

    def digest(self, key: str) -> str:
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def locate(self, key: str) -> Path:
        """Get file path for key.

        Args:
            key: Cache key

        Returns:
            File path

        Raises:
            InvalidKeyError: If the key is invalid
        """
        validate_key(key)
        return self.directory / f"{self.digest(key)}{self.extension}"

    def __repr__(self) -> str:
        return f"KeyLocator(directory={str(self.directory)!r}, extension={self.extension!r})"


__all__ = [
    "KeyLocator",
    "validate_key",
    "validate_ttl",
    "UNSAFE_KEY_CHARS",
    "TEMP_PREFIX",
    "TEMP_SUFFIX",
]
