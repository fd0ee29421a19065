"""StowCache Serializer - Value and Entry Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import json
import logging
import pickle
from abc import ABC, abstractmethod
from typing import Any, Optional

from stowcache_core.cache.entry import CacheEntry
from stowcache_core.errors import ConfigurationError, CorruptEntryError

logger = logging.getLogger(__name__)


class Serializer(ABC):
    """Abstract serializer for cache values.

    Implementations handle different serialization formats.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""
        pass

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: Value to serialize

        Returns:
            Serialized bytes
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: Serialized bytes

        Returns:
            Deserialized value
        """
        pass


class JSONSerializer(Serializer):
    """JSON serializer.

    Good for human-readable data and interoperability.
    Limited to JSON-compatible types.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, value: Any) -> bytes:
        return json.dumps(value).encode("utf-8")

    def deserialize(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))


class PickleSerializer(Serializer):
    """Pickle serializer.

    Supports any Python object.
    Not safe for untrusted data.
    """

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        """Initialize pickle serializer.

        Args:
            protocol: Pickle protocol version
        """
        self.protocol = protocol

    @property
    def format_name(self) -> str:
        return "pickle"

    def serialize(self, value: Any) -> bytes:
        return pickle.dumps(value, protocol=self.protocol)

    def deserialize(self, data: bytes) -> Any:
        return pickle.loads(data)


class MsgPackSerializer(Serializer):
    """MessagePack serializer.

    Compact binary format, faster than JSON.
    Requires msgpack package.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    def serialize(self, value: Any) -> bytes:
        import msgpack

        return msgpack.packb(value, use_bin_type=True)

    def deserialize(self, data: bytes) -> Any:
        import msgpack

        return msgpack.unpackb(data, raw=False)


class SerializerRegistry:
    """Registry of serializers."""

    def __init__(self):
        self._serializers: dict[str, Serializer] = {}
        self._default: str = "pickle"

        self.register(JSONSerializer())
        self.register(PickleSerializer())
        self.register(MsgPackSerializer())

    def register(self, serializer: Serializer) -> None:
        """Register a serializer.

        Args:
            serializer: Serializer to register
        """
        self._serializers[serializer.format_name] = serializer

    def get(self, format_name: str) -> Serializer:
        """Get serializer by format.

        Args:
            format_name: Format name

        Returns:
            Serializer instance

        Raises:
            ConfigurationError: If format not found
        """
        if format_name not in self._serializers:
            raise ConfigurationError(f"Unknown serializer format: {format_name}")
        return self._serializers[format_name]

    def get_default(self) -> Serializer:
        """Get default serializer."""
        return self._serializers[self._default]

    def list_formats(self) -> list[str]:
        """List available formats."""
        return list(self._serializers.keys())


# Global registry
_registry = SerializerRegistry()


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get serializer by format.

    Args:
        format_name: Format name or None for default

    Returns:
        Serializer instance
    """
    if format_name is None:
        return _registry.get_default()
    return _registry.get(format_name)


class EntryCodec:
    """Encodes cache entries to bytes and back.

    Decoding fails closed: anything that is not a well-formed entry raises
    CorruptEntryError, whatever the underlying serializer complained about.

    Example:
        codec = EntryCodec(get_serializer("pickle"))
        blob = codec.encode(CacheEntry.create("user:1", {"name": "Ada"}))
        entry = codec.decode(blob, key="user:1")
    """

    def __init__(self, serializer: Optional[Serializer] = None):
        self.serializer = serializer or get_serializer()

    @property
    def format_name(self) -> str:
        return self.serializer.format_name

    def encode(self, entry: CacheEntry) -> bytes:
        """Serialize an entry.

        Args:
            entry: Cache entry

        Returns:
            Serialized bytes
        """
        return self.serializer.serialize(entry.to_dict())

    def decode(self, data: bytes, key: Optional[str] = None) -> CacheEntry:
        """Deserialize an entry.

        Args:
            data: Serialized bytes
            key: Expected key; a stored entry for another key is corrupt

        Returns:
            CacheEntry instance

        Raises:
            CorruptEntryError: If the payload is not a valid entry
        """
        if not data:
            raise CorruptEntryError("Empty payload")

        try:
            payload = self.serializer.deserialize(data)
        except Exception as e:
            raise CorruptEntryError(f"Cannot deserialize entry: {e}") from e

        entry = CacheEntry.from_dict(payload)

        if key is not None and entry.key != key:
            raise CorruptEntryError(
                f"Entry key mismatch: expected {key!r}, found {entry.key!r}"
            )

        return entry

    def __repr__(self) -> str:
        return f"EntryCodec(format={self.format_name!r})"


__all__ = [
    "Serializer",
    "JSONSerializer",
    "PickleSerializer",
    "MsgPackSerializer",
    "SerializerRegistry",
    "EntryCodec",
    "get_serializer",
]
