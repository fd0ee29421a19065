"""StowCache Local Driver - File-Based Storage with an In-Memory Hot Index.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
import math
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from stowcache_core.cache.entry import CacheEntry
from stowcache_core.errors import CorruptEntryError, StorageUnavailableError
from stowcache_core.protocol.serializer import EntryCodec, get_serializer
from stowcache_core.store.config import LocalConfig
from stowcache_core.store.driver import CacheDriver, Number
from stowcache_core.store.gc import GarbageCollector
from stowcache_core.store.keys import TEMP_PREFIX, TEMP_SUFFIX, KeyLocator

logger = logging.getLogger(__name__)


def _as_number(value: Any) -> Optional[Number]:
    """Get the numeric value of an int, float or numeric string.

    Returns:
        The number, or None for anything else (booleans included)
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class HotEntry:
    """Encoded entry held in the hot index.

    Hits decode a fresh value, so callers never share an object with the
    cache.
    """

    expires_at: float
    data: bytes

    def is_expired(self) -> bool:
        return self.expires_at > 0 and self.expires_at < time.time()


class LocalDriver(CacheDriver):
    """File-based cache driver.

    Persists each entry to its own file under the storage directory and
    keeps the entries it has written or read in a private hot index.

    Features:
    - One file per key, named by the SHA-256 digest of the key
    - Atomic writes (unique temp file in the same directory + os.replace)
    - Lazy expiry: expired and corrupt entries are removed by the read that
      finds them
    - Probabilistic garbage collection on close or on a schedule

    Several processes may share a directory. Writers of the same key race
    and the last rename wins; readers never see a partial file. Hot indexes
    are per instance, so another process's writes may not be seen until the
    hot copy expires.

    Example:
        with LocalDriver(storage_path="/var/cache/myapp", default_ttl=300) as cache:
            cache.set("user:1", {"name": "Ada"})
            user = cache.get("user:1")
    """

    driver_type = "local"

    def __init__(self, config: Optional[LocalConfig] = None, **overrides: Any):
        """Initialize local driver.

        Args:
            config: Local driver configuration
            **overrides: Individual LocalConfig options

        Raises:
            StorageUnavailableError: If the storage directory is unusable
        """
        config = config or LocalConfig()
        if overrides:
            config = dataclasses.replace(config, **overrides)
        super().__init__(config)
        self.config: LocalConfig = config

        self._hot: Dict[str, HotEntry] = {}
        self._lock = threading.RLock()
        self._gc: Optional[GarbageCollector] = None
        self._gc_interval: Optional[float] = None
        self._closed = False

        self._configure()

    def _configure(self) -> None:
        """Rebuild locator, codec and collector from the current config."""
        self._ensure_directory()
        locator = KeyLocator(self.config.storage_path, self.config.file_extension)
        codec = EntryCodec(get_serializer(self.config.serializer))
        self._locator, self._codec = locator, codec

        if self._gc is not None:
            self._gc.stop()
        self._gc = GarbageCollector(
            self._locator,
            self._codec,
            probability=self.config.gc_probability,
            divisor=self.config.gc_divisor,
            temp_max_age=self.config.gc_temp_max_age,
        )
        if self._gc_interval is not None:
            self._gc.start(self._gc_interval)

    def _ensure_directory(self) -> None:
        path = Path(self.config.storage_path)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create cache directory {path}: {e}") from e

        if not path.is_dir() or not os.access(path, os.R_OK | os.W_OK):
            raise StorageUnavailableError(f"Cache directory is not readable and writable: {path}")

    # Fluent configuration

    def _reconfigure(self, **changes: Any) -> "LocalDriver":
        previous = self.config
        self.config = dataclasses.replace(self.config, **changes)
        try:
            self._configure()
        except Exception:
            self.config = previous
            raise
        return self

    def set_storage_path(self, path: str) -> "LocalDriver":
        """Move storage to another directory.

        The hot index is kept; it still reflects this instance's writes.

        Raises:
            StorageUnavailableError: If the directory is unusable
        """
        return self._reconfigure(storage_path=os.fspath(path))

    def set_file_extension(self, extension: str) -> "LocalDriver":
        """Set the suffix of entry files."""
        return self._reconfigure(file_extension=extension)

    def set_serializer(self, serializer: str) -> "LocalDriver":
        """Set the serializer format used for new and existing files."""
        return self._reconfigure(serializer=serializer)

    def set_garbage_collection(self, probability: int, divisor: int) -> "LocalDriver":
        """Set the sweep probability to probability/divisor."""
        return self._reconfigure(gc_probability=probability, gc_divisor=divisor)

    @property
    def storage_path(self) -> str:
        return self.config.storage_path

    @property
    def locator(self) -> KeyLocator:
        return self._locator

    @property
    def hot_index_size(self) -> int:
        return len(self._hot)

    # Core operations

    def get(self, key: str) -> Any:
        """Get value by key.

        Resolution order: live hot copy, then the entry file. A corrupt file
        is removed, an expired entry is deleted; both read as a miss.

        Args:
            key: Cache key

        Returns:
            Cached value or None
        """
        path = self._locator.locate(key)

        with self._lock:
            hot = self._hot.get(key)
            if hot is not None and hot.is_expired():
                del self._hot[key]
                hot = None

        if hot is not None:
            try:
                return self._codec.decode(hot.data, key=key).value
            except CorruptEntryError as e:
                logger.warning(f"Dropping unreadable hot copy of {key}: {e}")
                with self._lock:
                    self._hot.pop(key, None)

        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Error reading {key}: {e}")
            return None

        try:
            entry = self._codec.decode(data, key=key)
        except CorruptEntryError as e:
            logger.warning(f"Removing corrupt entry {key}: {e}")
            with self._lock:
                self._hot.pop(key, None)
            self._unlink(path)
            return None

        if entry.is_expired():
            self.delete(key)
            return None

        with self._lock:
            self._hot[key] = HotEntry(entry.expires_at, data)

        return entry.value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store value.

        The encoded entry goes to the hot index before the file is written
        and is kept even when persisting fails, so this instance keeps
        serving the value until it expires. Later changes to ``value`` by
        the caller do not reach the cache.

        Args:
            key: Cache key
            value: Value to store
            ttl: Seconds to live, None for the default, 0 for no expiry

        Returns:
            True if the entry file was written
        """
        self._validate_ttl(ttl)
        path = self._locator.locate(key)

        entry = CacheEntry.create(key, value, self._effective_ttl(ttl))

        try:
            data = self._codec.encode(entry)
        except Exception as e:
            logger.error(f"Error serializing {key}: {e}")
            return False

        with self._lock:
            self._hot[key] = HotEntry(entry.expires_at, data)

        return self._write_atomic(key, path, data)

    def _write_atomic(self, key: str, path: Path, data: bytes) -> bool:
        temp_path: Optional[str] = None
        try:
            fd, temp_path = tempfile.mkstemp(
                prefix=TEMP_PREFIX,
                suffix=TEMP_SUFFIX,
                dir=self.config.storage_path,
            )
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(temp_path, path)
            return True

        except OSError as e:
            logger.error(f"Error writing {key}: {e}")
            if temp_path is not None:
                self._unlink(Path(temp_path))
            return False

    def delete(self, key: str) -> bool:
        """Delete entry.

        Args:
            key: Cache key

        Returns:
            True if no entry file remains
        """
        path = self._locator.locate(key)

        with self._lock:
            self._hot.pop(key, None)

        return self._unlink(path)

    def _unlink(self, path: Path) -> bool:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Error deleting {path}: {e}")
            return False
        return True

    def clear(self) -> bool:
        """Delete every entry file and empty the hot index.

        Keeps going after a failed removal.

        Returns:
            True if every file was removed
        """
        with self._lock:
            self._hot.clear()

        try:
            paths = list(self._locator.directory.glob(self._locator.pattern))
        except OSError as e:
            logger.error(f"Error listing {self.storage_path}: {e}")
            return False

        success = True
        for path in paths:
            if path.is_file() and not self._unlink(path):
                success = False
        return success

    def increment(self, key: str, delta: Number = 1) -> Optional[Number]:
        """Increment numeric value.

        A missing entry counts as 0 and numeric strings such as ``"5"``
        count as their number. The result is written with the default
        TTL, so incrementing restarts the entry's expiry.

        Args:
            key: Cache key
            delta: Amount to add

        Returns:
            New value, or None if the current value is not a number or the
            write failed
        """
        stored = self.get(key)
        current = 0 if stored is None else _as_number(stored)
        if current is None:
            logger.debug(f"Cannot increment non-numeric value at {key}")
            return None

        new_value = current + delta
        return new_value if self.set(key, new_value) else None

    def get_stats(self) -> Dict[str, Any]:
        """Get storage statistics.

        Returns:
            Stats dict; counters are zero when the directory cannot be read
        """
        file_count = 0
        total_bytes = 0

        try:
            for path in self._locator.directory.glob(self._locator.pattern):
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    continue
                if path.is_file():
                    file_count += 1
                    total_bytes += stat.st_size
        except OSError as e:
            logger.error(f"Error reading stats for {self.storage_path}: {e}")
            file_count = 0
            total_bytes = 0

        return {
            "driver": self.driver_type,
            "file_count": file_count,
            "total_bytes": total_bytes,
            "hot_index_size": self.hot_index_size,
            "storage_path": self.storage_path,
        }

    def is_connected(self) -> bool:
        """Check the storage directory exists and is readable and writable."""
        path = self.config.storage_path
        return os.path.isdir(path) and os.access(path, os.R_OK | os.W_OK)

    # Garbage collection and lifecycle

    def collect_garbage(self, force: bool = False) -> int:
        """Remove expired entry files.

        Args:
            force: Sweep regardless of the configured probability

        Returns:
            Number of files removed
        """
        if force:
            return self._gc.collect()
        return self._gc.maybe_collect()

    def start_gc(self, interval: float) -> "LocalDriver":
        """Trigger garbage collection every ``interval`` seconds until close."""
        self._gc_interval = interval
        self._gc.start(interval)
        return self

    def stop_gc(self) -> None:
        """Stop periodic garbage collection."""
        self._gc_interval = None
        self._gc.stop()

    def close(self) -> None:
        """Stop periodic collection and run one best-effort sweep."""
        if self._closed:
            return
        self._closed = True
        self.stop_gc()

        try:
            self._gc.maybe_collect()
        except Exception as e:
            logger.error(f"GC on close failed: {e}")

    def __repr__(self) -> str:
        return f"LocalDriver(path={self.storage_path!r}, hot={self.hot_index_size})"


__all__ = ["LocalDriver"]
