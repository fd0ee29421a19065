"""Shared fixtures.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import time

import pytest

from stowcache_core.store.local import LocalDriver


class FakeClock:
    """Controllable replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock(monkeypatch):
    """Freeze time.time and let the test move it forward."""
    fake = FakeClock()
    monkeypatch.setattr(time, "time", fake)
    return fake


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "cache"


@pytest.fixture
def driver(storage_dir):
    """Local driver with garbage collection disabled."""
    local = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
    yield local
    local.close()
