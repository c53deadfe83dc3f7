from __future__ import annotations

from datetime import timedelta

from stage_cache import InMemoryCacheStore, StageCache, fingerprint_payload


class _BrokenStore:
    def get(self, key):
        raise RuntimeError("store offline")

    def set(self, key, value, ttl_seconds):
        raise RuntimeError("store offline")


def test_fingerprint_is_deterministic_and_byte_exact():
    assert fingerprint_payload("Book dentist") == fingerprint_payload(b"Book dentist")
    assert fingerprint_payload("Book dentist") != fingerprint_payload("Book dentist ")
    assert len(fingerprint_payload(b"")) == 64


def test_entry_expires_at_write_time_plus_ttl(cache_store, clock):
    cache_store.set("k", "v", 600)

    entry = cache_store.entry("k")
    assert entry is not None
    assert entry.expires_at == clock.now + timedelta(seconds=600)

    clock.advance(599)
    assert cache_store.get("k") == "v"

    # an entry is already gone at exactly its expiry instant
    clock.advance(1)
    assert cache_store.get("k") is None
    assert cache_store.entry("k") is None


def test_sweep_drops_only_expired_entries(cache_store, clock):
    cache_store.set("short", 1, 10)
    cache_store.set("long", 2, 100)
    clock.advance(50)

    assert cache_store.sweep() == 1
    assert len(cache_store) == 1
    assert cache_store.get("long") == 2


def test_stage_cache_keys_by_fingerprint_and_stage(stage_cache):
    fingerprint = fingerprint_payload("hello")
    stage_cache.set(fingerprint, "text_extraction", "raw")

    assert stage_cache.get(fingerprint, "text_extraction") == "raw"
    assert stage_cache.get(fingerprint, "entity_extraction") is None
    assert stage_cache.get(fingerprint_payload("other"), "text_extraction") is None


def test_stage_cache_uses_default_ttl(clock):
    store = InMemoryCacheStore(clock=clock)
    cache = StageCache(store, default_ttl_seconds=30)
    cache.set("fp", "normalization", "value")

    clock.advance(29)
    assert cache.get("fp", "normalization") == "value"
    clock.advance(1)
    assert cache.get("fp", "normalization") is None


def test_failing_store_reads_as_miss_and_ignores_writes():
    cache = StageCache(_BrokenStore())

    cache.set("fp", "text_extraction", "value")
    assert cache.get("fp", "text_extraction") is None


def test_write_after_sweep_interval_drops_expired_entries(clock):
    store = InMemoryCacheStore(clock=clock, sweep_interval_seconds=60)
    for index in range(20):
        store.set(f"old-{index}", index, 30)
    clock.advance(45)
    store.set("fresh-1", "a", 30)
    # interval not reached yet, so the expired entries are still held
    assert len(store) == 21

    clock.advance(15)
    store.set("fresh-2", "b", 30)

    assert len(store) == 2
    assert store.get("fresh-1") == "a"
    assert store.get("fresh-2") == "b"
