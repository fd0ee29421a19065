"""StowCache Garbage Collector - Probabilistic Sweep of Expired Entry Files.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Optional

from stowcache_core.errors import CorruptEntryError
from stowcache_core.protocol.serializer import EntryCodec
from stowcache_core.store.keys import KeyLocator

logger = logging.getLogger(__name__)


class GarbageCollector:
    """Removes expired entry files from a storage directory.

    The sweep is advisory. Expired entries are also removed when a read
    finds them, so a skipped or failed sweep only costs disk space. Files
    that cannot be read or decoded are left alone.

    Temp files older than ``temp_max_age`` seconds are removed too; they
    are left behind when a writer dies between creating the temp file and
    renaming it into place.

    Example:
        gc = GarbageCollector(locator, codec, probability=1, divisor=100)
        gc.maybe_collect()   # sweeps about once every 100 calls
        gc.start(interval=300.0)
        ...
        gc.stop()
    """

    def __init__(
        self,
        locator: KeyLocator,
        codec: EntryCodec,
        probability: int = 1,
        divisor: int = 100,
        temp_max_age: float = 3600.0,
    ):
        """Initialize collector.

        Args:
            locator: Locator of the swept directory
            codec: Codec used to read entry files
            probability: Numerator of the sweep probability
            divisor: Denominator of the sweep probability
            temp_max_age: Age in seconds after which a temp file is abandoned
        """
        self.locator = locator
        self.codec = codec
        self.probability = probability
        self.divisor = divisor
        self.temp_max_age = temp_max_age

        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    def should_run(self) -> bool:
        """Draw whether this trigger performs a sweep."""
        if self.probability <= 0 or self.divisor <= 0:
            return False
        return random.randint(1, self.divisor) <= self.probability

    def maybe_collect(self) -> int:
        """Sweep with the configured probability.

        Returns:
            Number of files removed
        """
        if not self.should_run():
            return 0
        return self.collect()

    def collect(self) -> int:
        """Sweep the directory now.

        Returns:
            Number of files removed
        """
        removed = 0
        now = time.time()

        try:
            paths = list(self.locator.directory.glob(self.locator.pattern))
        except OSError as e:
            logger.error(f"GC cannot list {self.locator.directory}: {e}")
            return 0

        for path in paths:
            try:
                if not path.is_file():
                    continue
                entry = self.codec.decode(path.read_bytes())
            except (OSError, CorruptEntryError):
                continue

            if not entry.is_expired(now):
                continue

            try:
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"GC cannot remove {path}: {e}")

        removed += self._collect_temp_files(now)

        logger.debug(f"GC swept {len(paths)} files in {self.locator.directory}, removed {removed}")
        return removed

    def _collect_temp_files(self, now: float) -> int:
        removed = 0

        try:
            paths = list(self.locator.directory.glob(self.locator.temp_pattern))
        except OSError as e:
            logger.error(f"GC cannot list {self.locator.directory}: {e}")
            return 0

        for path in paths:
            try:
                if now - path.stat().st_mtime <= self.temp_max_age:
                    continue
                path.unlink()
                removed += 1
            except FileNotFoundError:
                pass
            except OSError as e:
                logger.error(f"GC cannot remove temp file {path}: {e}")

        return removed

    def start(self, interval: float) -> None:
        """Run maybe_collect every ``interval`` seconds on a daemon thread.

        Args:
            interval: Seconds between triggers
        """
        if self._thread is not None:
            return
        if interval <= 0:
            raise ValueError(f"GC interval must be positive: {interval}")

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._loop,
            args=(interval,),
            daemon=True,
            name=f"GC-{self.locator.directory.name}",
        )
        self._thread.start()
        logger.info(f"GC started for {self.locator.directory} every {interval}s")

    def stop(self) -> None:
        """Stop the periodic thread, if running."""
        if self._thread is None:
            return

        self._stop_event.set()
        self._thread.join(timeout=5.0)
        self._thread = None
        logger.info(f"GC stopped for {self.locator.directory}")

    @property
    def running(self) -> bool:
        return self._thread is not None

    def _loop(self, interval: float) -> None:
        while not self._stop_event.wait(interval):
            try:
                self.maybe_collect()
            except Exception as e:
                logger.error(f"GC error: {e}")

    def __repr__(self) -> str:
        return (
            f"GarbageCollector(path={str(self.locator.directory)!r}, "
            f"probability={self.probability}/{self.divisor})"
        )


__all__ = ["GarbageCollector"]
