"""StowCache Errors - Exception Taxonomy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Only invalid input and unusable storage reach the caller. Misses, expired
and corrupt entries are silent; failed writes come back as ``False``.
"""

from __future__ import annotations


class CacheError(Exception):
    """Base exception for all cache errors."""


class InvalidKeyError(CacheError, ValueError):
    """Key is empty, not a string, or contains unsafe characters."""


class InvalidTtlError(CacheError, ValueError):
    """TTL is negative or not an integer."""


class ConfigurationError(CacheError, ValueError):
    """Driver option, driver name or serializer name is invalid."""


class StorageUnavailableError(CacheError):
    """Storage location or server cannot be used."""


class CorruptEntryError(CacheError):
    """Stored entry could not be decoded.

    Internal to the drivers: the local driver turns it into a miss and
    removes the offending file.
    """


__all__ = [
    "CacheError",
    "InvalidKeyError",
    "InvalidTtlError",
    "ConfigurationError",
    "StorageUnavailableError",
    "CorruptEntryError",
]
