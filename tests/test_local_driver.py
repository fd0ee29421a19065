"""Tests for LocalDriver.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import os
import pickle
import shutil
import threading

import pytest

from stowcache_core.errors import (
    ConfigurationError,
    InvalidKeyError,
    InvalidTtlError,
    StorageUnavailableError,
)
from stowcache_core.store import local as local_module
from stowcache_core.store.local import LocalDriver


def entry_files(directory, extension=".cache"):
    return sorted(p for p in directory.iterdir() if p.name.endswith(extension))


class TestLocalDriverBasics:
    """Tests for get/set/delete/has."""

    def test_round_trip(self, driver):
        """Test set then get returns the value."""
        value = {"name": "Ada", "tags": ["math", "engines"], "meta": {"born": 1815}}

        assert driver.set("user:1", value)
        assert driver.get("user:1") == value

    def test_round_trip_from_disk(self, driver, storage_dir):
        """Test a second instance reads what the first wrote."""
        driver.set("user:1", [1, 2, {"three": 3}])

        other = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        assert other.get("user:1") == [1, 2, {"three": 3}]
        assert other.hot_index_size == 1

    def test_miss(self, driver):
        """Test a missing key reads as None."""
        assert driver.get("missing") is None
        assert not driver.has("missing")

    def test_delete(self, driver, storage_dir):
        """Test delete removes hot copy and file."""
        driver.set("key", "value")
        assert len(entry_files(storage_dir)) == 1

        assert driver.delete("key")
        assert driver.get("key") is None
        assert not driver.has("key")
        assert entry_files(storage_dir) == []

    def test_delete_twice(self, driver):
        """Test deleting an absent key still succeeds."""
        driver.set("key", "value")

        assert driver.delete("key")
        assert driver.delete("key")

    def test_one_file_per_key(self, driver, storage_dir):
        """Test overwriting a key keeps a single file."""
        driver.set("key", "first")
        driver.set("key", "second")

        assert len(entry_files(storage_dir)) == 1
        assert driver.get("key") == "second"

    def test_file_name_is_digest(self, driver, storage_dir):
        """Test the entry file is named by the key digest."""
        driver.set("user:1", "x")

        path = driver.locator.locate("user:1")
        assert path.parent == storage_dir
        assert path.exists()
        assert len(path.stem) == 64

    def test_contains(self, driver):
        """Test the in operator."""
        driver.set("key", "value")
        assert "key" in driver
        assert "other" not in driver


class TestHotIndexIsolation:
    """Tests that callers never share objects with the hot index."""

    def test_mutating_value_after_set(self, driver, storage_dir):
        """Test changes to the stored object do not reach the cache."""
        value = {"a": 1}
        driver.set("key", value)
        value["a"] = 2

        assert driver.get("key") == {"a": 1}

        other = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        assert other.get("key") == driver.get("key")

    def test_mutating_hot_hit(self, driver):
        """Test changes to a returned value do not reach the cache."""
        driver.set("key", [1, 2])

        got = driver.get("key")
        got.append(3)

        assert driver.get("key") == [1, 2]
        assert driver.get("key") is not driver.get("key")

    def test_mutating_value_read_from_disk(self, driver, storage_dir):
        """Test values first read from disk are also copied on every hit."""
        driver.set("key", {"tags": ["a"]})

        other = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        other.get("key")["tags"].append("b")

        assert other.get("key") == {"tags": ["a"]}

    def test_failed_persist_keeps_encoded_copy(self, driver, monkeypatch):
        """Test the hot copy kept after a failed write is still isolated."""
        monkeypatch.setattr(driver, "_write_atomic", lambda key, path, data: False)
        value = {"a": 1}

        assert driver.set("key", value) is False
        value["a"] = 2
        assert driver.get("key") == {"a": 1}


class TestValidation:
    """Tests for key and TTL validation."""

    @pytest.mark.parametrize("key", ["", "a/b", "a\\b", "{a}", "(a)", "user@host", 42, None])
    def test_invalid_keys(self, driver, key):
        """Test unsafe keys are rejected by every keyed operation."""
        with pytest.raises(InvalidKeyError):
            driver.get(key)
        with pytest.raises(InvalidKeyError):
            driver.set(key, "value")
        with pytest.raises(InvalidKeyError):
            driver.delete(key)
        with pytest.raises(InvalidKeyError):
            driver.has(key)
        with pytest.raises(InvalidKeyError):
            driver.increment(key)

    def test_colons_and_dots_allowed(self, driver):
        """Test namespaced keys are valid."""
        assert driver.set("app:users.1:profile", "x")
        assert driver.get("app:users.1:profile") == "x"

    def test_negative_ttl(self, driver, storage_dir):
        """Test negative TTL raises before anything is written."""
        with pytest.raises(InvalidTtlError):
            driver.set("key", "value", ttl=-1)

        assert driver.hot_index_size == 0
        assert entry_files(storage_dir) == []

    def test_non_integer_ttl(self, driver):
        """Test non-integer TTL is rejected."""
        with pytest.raises(InvalidTtlError):
            driver.set("key", "value", ttl=1.5)


class TestExpiry:
    """Tests for TTL handling."""

    def test_ttl_boundary(self, driver, clock):
        """Test an entry expires after its TTL and its file is removed."""
        driver.set("key", "value", ttl=1)
        path = driver.locator.locate("key")

        assert driver.get("key") == "value"

        clock.advance(1.5)
        assert driver.get("key") is None
        assert not path.exists()
        assert driver.hot_index_size == 0

    def test_expired_on_disk_only(self, driver, storage_dir, clock):
        """Test another instance also purges an expired file on read."""
        driver.set("key", "value", ttl=1)
        clock.advance(5)

        other = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        assert other.get("key") is None
        assert not driver.locator.locate("key").exists()

    def test_zero_ttl_never_expires(self, driver, clock):
        """Test ttl=0 keeps the entry forever."""
        driver.set("key", "value", ttl=0)

        clock.advance(10 ** 9)
        assert driver.get("key") == "value"

    def test_default_ttl(self, storage_dir, clock):
        """Test the configured default applies when no TTL is given."""
        driver = LocalDriver(storage_path=str(storage_dir), default_ttl=10, gc_probability=0)
        driver.set("key", "value")

        clock.advance(9)
        assert driver.get("key") == "value"

        clock.advance(2)
        assert driver.get("key") is None

    def test_zero_default_ttl(self, storage_dir, clock):
        """Test a default of 0 means entries never expire."""
        driver = LocalDriver(storage_path=str(storage_dir), default_ttl=0, gc_probability=0)
        driver.set("key", "value")

        clock.advance(10 ** 6)
        assert driver.get("key") == "value"

    def test_has_purges_expired(self, driver, clock):
        """Test has() carries the lazy expiry side effect."""
        driver.set("key", "value", ttl=1)
        clock.advance(2)

        assert not driver.has("key")
        assert not driver.locator.locate("key").exists()


class TestCorruption:
    """Tests for corrupt entry handling."""

    def test_garbage_bytes(self, driver):
        """Test garbage in an entry file reads as a miss and is removed."""
        path = driver.locator.locate("key")
        path.write_bytes(b"\x00\xffnot an entry")

        assert driver.get("key") is None
        assert not path.exists()

    def test_empty_file(self, driver):
        """Test an empty entry file is treated as corrupt."""
        path = driver.locator.locate("key")
        path.write_bytes(b"")

        assert driver.get("key") is None
        assert not path.exists()

    def test_wrong_shape(self, driver):
        """Test a valid pickle without entry fields is corrupt."""
        path = driver.locator.locate("key")
        path.write_bytes(pickle.dumps([1, 2, 3]))

        assert driver.get("key") is None
        assert not path.exists()

    def test_missing_expiry(self, driver):
        """Test an entry without expires_at is corrupt."""
        path = driver.locator.locate("key")
        path.write_bytes(pickle.dumps({"key": "key", "value": 1, "created_at": 0}))

        assert driver.get("key") is None
        assert not path.exists()

    def test_key_mismatch(self, driver, storage_dir):
        """Test a file holding another key's entry is corrupt."""
        driver.set("a", "value-a")
        shutil.copy(driver.locator.locate("a"), driver.locator.locate("b"))

        other = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        assert other.get("b") is None
        assert not other.locator.locate("b").exists()
        assert other.get("a") == "value-a"


class TestWriteFailures:
    """Tests for failed persistence."""

    def test_failed_persist_keeps_hot_copy(self, driver, monkeypatch):
        """Test set returns False but the value stays readable in-process."""
        def broken_mkstemp(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(local_module.tempfile, "mkstemp", broken_mkstemp)

        assert driver.set("key", "value") is False
        assert driver.get("key") == "value"
        assert not driver.locator.locate("key").exists()

    def test_failed_rename_cleans_temp_file(self, driver, storage_dir, monkeypatch):
        """Test a failed rename leaves no temp file behind."""
        def broken_replace(src, dst):
            raise OSError("rename failed")

        monkeypatch.setattr(local_module.os, "replace", broken_replace)

        assert driver.set("key", "value") is False
        assert list(storage_dir.iterdir()) == []

    def test_unserializable_value(self, storage_dir):
        """Test a value the serializer rejects fails the write."""
        driver = LocalDriver(storage_path=str(storage_dir), serializer="json", gc_probability=0)

        assert driver.set("key", object()) is False
        assert entry_files(storage_dir) == []


class TestBatchOperations:
    """Tests for multi-key operations."""

    def test_get_multiple(self, driver):
        """Test every requested key appears in the result."""
        driver.set("a", 1)
        driver.set("b", 2)

        assert driver.get_multiple(["a", "b", "c"]) == {"a": 1, "b": 2, "c": None}

    def test_set_multiple(self, driver, clock):
        """Test set_multiple writes each value with the shared TTL."""
        assert driver.set_multiple({"a": 1, "b": [2]}, ttl=5)
        assert driver.get("b") == [2]

        clock.advance(6)
        assert driver.get_multiple(["a", "b"]) == {"a": None, "b": None}

    def test_delete_multiple(self, driver, storage_dir):
        """Test delete_multiple removes every key."""
        driver.set_multiple({"a": 1, "b": 2, "c": 3})

        assert driver.delete_multiple(["a", "b", "missing"])
        assert driver.get_multiple(["a", "b", "c"]) == {"a": None, "b": None, "c": 3}
        assert len(entry_files(storage_dir)) == 1

    def test_invalid_key_stops_batch(self, driver, storage_dir):
        """Test a bad key rejects the whole batch before any write."""
        with pytest.raises(InvalidKeyError):
            driver.set_multiple({"good": 1, "bad/key": 2})

        assert driver.get("good") is None
        assert entry_files(storage_dir) == []

    def test_invalid_ttl_stops_batch(self, driver):
        """Test a negative batch TTL raises before any write."""
        with pytest.raises(InvalidTtlError):
            driver.set_multiple({"a": 1}, ttl=-5)
        assert driver.get("a") is None

    def test_partial_failure(self, driver, monkeypatch):
        """Test batch result is False when one write fails."""
        original = driver._write_atomic

        def flaky_write(key, path, data):
            if key == "b":
                return False
            return original(key, path, data)

        monkeypatch.setattr(driver, "_write_atomic", flaky_write)

        assert driver.set_multiple({"a": 1, "b": 2}) is False
        assert driver.locator.locate("a").exists()
        assert not driver.locator.locate("b").exists()


class TestCounters:
    """Tests for increment and decrement."""

    def test_counter_sequence(self, driver):
        """Test increments from absent and a decrement back to zero."""
        assert driver.increment("counter") == 1
        assert driver.increment("counter") == 2
        assert driver.increment("counter") == 3
        assert driver.increment("counter") == 4
        assert driver.decrement("counter", 4) == 0
        assert driver.get("counter") == 0

    def test_increment_by_delta(self, driver):
        """Test custom increments."""
        driver.set("counter", 10)
        assert driver.increment("counter", 5) == 15
        assert driver.decrement("counter", 20) == -5

    def test_float_values(self, driver):
        """Test floats are numeric."""
        driver.set("ratio", 1.5)
        assert driver.increment("ratio", 1) == pytest.approx(2.5)

    def test_non_numeric(self, driver):
        """Test non-numeric values fail and stay unchanged."""
        driver.set("text_key", "hello")

        assert driver.increment("text_key") is None
        assert driver.decrement("text_key") is None
        assert driver.get("text_key") == "hello"

    def test_bool_is_not_numeric(self, driver):
        """Test booleans are not counters."""
        driver.set("flag", True)
        assert driver.increment("flag") is None
        assert driver.get("flag") is True

    @pytest.mark.parametrize(
        "stored, expected",
        [("5", 6), (" 41 ", 42), ("2.5", 3.5), ("-3", -2), ("1e3", 1001.0)],
    )
    def test_numeric_strings(self, driver, stored, expected):
        """Test strings holding a number count as that number."""
        driver.set("counter", stored)

        assert driver.increment("counter") == pytest.approx(expected)
        assert driver.get("counter") == pytest.approx(expected)

    @pytest.mark.parametrize("stored", ["abc", "", "nan", "inf", "5 apples"])
    def test_non_numeric_strings(self, driver, stored):
        """Test other strings fail and stay unchanged."""
        driver.set("counter", stored)

        assert driver.increment("counter") is None
        assert driver.get("counter") == stored

    def test_increment_resets_ttl(self, storage_dir, clock):
        """Test the new value gets the default TTL, not the remaining one."""
        driver = LocalDriver(storage_path=str(storage_dir), default_ttl=0, gc_probability=0)
        driver.set("counter", 1, ttl=5)
        driver.increment("counter")

        clock.advance(100)
        assert driver.get("counter") == 2

    def test_increment_persist_failure(self, driver, monkeypatch):
        """Test a failed write reports failure."""
        monkeypatch.setattr(driver, "_write_atomic", lambda key, path, data: False)
        assert driver.increment("counter") is None


class TestClearAndStats:
    """Tests for clear, stats and connectivity."""

    def test_clear(self, driver):
        """Test clear empties files and hot index."""
        driver.set_multiple({"a": 1, "b": 2, "c": 3})

        assert driver.clear()

        stats = driver.get_stats()
        assert stats["file_count"] == 0
        assert stats["hot_index_size"] == 0
        assert driver.get("a") is None

    def test_clear_keeps_foreign_files(self, driver, storage_dir):
        """Test clear only removes files with the entry extension."""
        other = storage_dir / "notes.txt"
        other.write_text("keep me")
        driver.set("a", 1)

        assert driver.clear()
        assert other.exists()

    def test_stats(self, driver, storage_dir):
        """Test stats counters."""
        driver.set("a", "x" * 100)
        driver.set("b", "y")
        (storage_dir / "notes.txt").write_text("ignored")

        stats = driver.get_stats()
        assert stats["driver"] == "local"
        assert stats["file_count"] == 2
        assert stats["total_bytes"] > 100
        assert stats["hot_index_size"] == 2
        assert stats["storage_path"] == str(storage_dir)

    def test_stats_unreadable_directory(self, driver, storage_dir):
        """Test stats never raise when the directory is gone."""
        driver.set("a", 1)
        shutil.rmtree(storage_dir)

        stats = driver.get_stats()
        assert stats["file_count"] == 0
        assert stats["total_bytes"] == 0

    def test_is_connected(self, driver, storage_dir):
        """Test connectivity follows the directory."""
        assert driver.is_connected()

        shutil.rmtree(storage_dir)
        assert not driver.is_connected()

    def test_reads_and_writes_after_directory_removed(self, driver, storage_dir):
        """Test I/O failures degrade to misses and False."""
        shutil.rmtree(storage_dir)

        assert driver.get("key") is None
        assert driver.set("key", "value") is False


class TestConfiguration:
    """Tests for construction and fluent setters."""

    def test_creates_directory(self, tmp_path):
        """Test missing directories are created."""
        path = tmp_path / "a" / "b" / "c"
        LocalDriver(storage_path=str(path))
        assert path.is_dir()

    def test_unusable_directory(self, tmp_path):
        """Test construction fails when the directory cannot be created."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(StorageUnavailableError):
            LocalDriver(storage_path=str(blocker / "cache"))

    def test_invalid_gc_settings(self, storage_dir):
        """Test GC probability must not exceed the divisor."""
        with pytest.raises(ConfigurationError):
            LocalDriver(storage_path=str(storage_dir), gc_probability=5, gc_divisor=2)

    def test_file_extension(self, driver, storage_dir):
        """Test entry files use the configured extension."""
        driver.set_file_extension(".dat").set("key", "value")

        assert len(entry_files(storage_dir, ".dat")) == 1
        assert driver.get_stats()["file_count"] == 1

    @pytest.mark.parametrize("extension", [".tmp", "tmp", "p", ".cache.tmp"])
    def test_extension_matching_temp_files(self, driver, extension):
        """Test extensions that would match temp files are rejected."""
        with pytest.raises(ConfigurationError):
            driver.set_file_extension(extension)
        assert driver.get_config()["file_extension"] == ".cache"

    def test_storage_path(self, driver, tmp_path):
        """Test moving storage creates and uses the new directory."""
        new_path = tmp_path / "moved"
        driver.set_storage_path(str(new_path)).set("key", "value")

        assert driver.storage_path == str(new_path)
        assert len(entry_files(new_path)) == 1

    def test_serializer(self, driver, storage_dir):
        """Test the JSON serializer stores nested values."""
        driver.set_serializer("json").set("key", {"a": [1, 2, {"b": None}]})

        other = LocalDriver(storage_path=str(storage_dir), serializer="json", gc_probability=0)
        assert other.get("key") == {"a": [1, 2, {"b": None}]}

    def test_unknown_serializer(self, driver):
        """Test unknown serializer names are rejected."""
        with pytest.raises(ConfigurationError):
            driver.set_serializer("yaml")

        assert driver.get_config()["serializer"] == "pickle"
        assert driver.set("key", "value")
        assert driver.get("key") == "value"

    def test_default_ttl_setter(self, driver, clock):
        """Test set_default_ttl applies to later writes."""
        driver.set_default_ttl(1).set("key", "value")

        clock.advance(2)
        assert driver.get("key") is None
        assert driver.get_config()["default_ttl"] == 1

    def test_negative_default_ttl(self, driver):
        """Test the default TTL cannot be negative."""
        with pytest.raises(InvalidTtlError):
            driver.set_default_ttl(-1)


class TestConcurrency:
    """Tests for concurrent writers."""

    def test_concurrent_writers_same_key(self, storage_dir):
        """Test racing writers leave exactly one complete value."""
        value_a = {"writer": "A", "payload": "a" * 50_000}
        value_b = {"writer": "B", "payload": "b" * 50_000}
        errors = []

        def writer(value):
            try:
                local = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
                for _ in range(50):
                    local.set("shared", value)
            except Exception as e:
                errors.append(e)

        threads = [
            threading.Thread(target=writer, args=(value,))
            for value in (value_a, value_b, value_a, value_b)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors

        reader = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
        assert reader.get("shared") in (value_a, value_b)
        assert len(entry_files(storage_dir)) == 1
        assert not [p for p in storage_dir.iterdir() if p.name.endswith(".tmp")]

    def test_concurrent_readers_never_see_partial_files(self, storage_dir):
        """Test readers get a whole value or nothing during writes."""
        values = [{"n": n, "payload": str(n) * 20_000} for n in range(5)]
        seen = []
        stop = threading.Event()

        def write():
            local = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
            for _ in range(20):
                for value in values:
                    local.set("shared", value)
            stop.set()

        def read():
            while not stop.is_set():
                local = LocalDriver(storage_path=str(storage_dir), gc_probability=0)
                seen.append(local.get("shared"))

        threads = [threading.Thread(target=write), threading.Thread(target=read)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert all(v is None or v in values for v in seen)

    def test_thread_safety_different_keys(self, driver):
        """Test threads working on their own keys do not interfere."""
        errors = []

        def worker(n):
            try:
                for i in range(50):
                    key = f"key-{n}-{i}"
                    driver.set(key, i)
                    assert driver.get(key) == i
                    driver.delete(key)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert not errors
        assert driver.get_stats()["file_count"] == 0


class TestLifecycle:
    """Tests for close and garbage collection hooks."""

    def test_close_sweeps(self, storage_dir, clock):
        """Test close runs a sweep when the draw says so."""
        driver = LocalDriver(storage_path=str(storage_dir), gc_probability=1, gc_divisor=1)
        driver.set("old", 1, ttl=1)
        driver.set("new", 2, ttl=100)

        clock.advance(10)
        driver.close()

        assert not driver.locator.locate("old").exists()
        assert driver.locator.locate("new").exists()

    def test_context_manager(self, storage_dir, clock):
        """Test the with block closes the driver."""
        with LocalDriver(storage_path=str(storage_dir), gc_probability=1, gc_divisor=1) as driver:
            driver.set("old", 1, ttl=1)
            clock.advance(5)

        assert not driver.locator.locate("old").exists()

    def test_collect_garbage_force(self, driver, clock):
        """Test forced collection ignores the probability."""
        driver.set("old", 1, ttl=1)
        clock.advance(5)

        assert driver.collect_garbage() == 0
        assert driver.collect_garbage(force=True) == 1

    def test_close_is_idempotent(self, driver):
        """Test closing twice is harmless."""
        driver.close()
        driver.close()

    def test_created_directory_is_accessible(self, storage_dir):
        """Test the created directory is accessible."""
        driver = LocalDriver(storage_path=str(storage_dir))
        assert os.access(driver.storage_path, os.R_OK | os.W_OK)
