import fnmatch
import unittest

from conftest import FakeClock

from mythbuster.infra.cache import REDIS_PREFIX, ResponseCache, cache_key


class _FakeRedis:
    def __init__(self):
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        for key in keys:
            self.store.pop(key, None)

    def scan_iter(self, match="*"):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, match)]


class _BrokenRedis:
    def get(self, key):
        raise ConnectionError("down")

    def setex(self, key, ttl, value):
        raise ConnectionError("down")

    def delete(self, *keys):
        raise ConnectionError("down")

    def scan_iter(self, match="*"):
        raise ConnectionError("down")


class ResponseCacheTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = ResponseCache(redis_client=None, maxsize=16, now_fn=self.clock)

    def test_get_after_set_returns_value(self):
        self.cache.set("k", {"success": True}, 60)
        self.assertEqual(self.cache.get("k"), {"success": True})

    def test_expired_entry_is_evicted_and_key_reusable(self):
        self.cache.set("k", "v1", 60)
        self.clock.advance(61)
        self.assertIsNone(self.cache.get("k"))
        self.assertEqual(len(self.cache), 0)
        self.cache.set("k", "v2", 60)
        self.assertEqual(self.cache.get("k"), "v2")

    def test_entry_expires_exactly_at_deadline(self):
        self.cache.set("k", "v", 60)
        self.clock.advance(59)
        self.assertEqual(self.cache.get("k"), "v")
        self.clock.advance(1)
        self.assertIsNone(self.cache.get("k"))

    def test_zero_ttl_is_never_stored(self):
        self.assertIsNone(self.cache.set("k", "v", 0))
        self.assertIsNone(self.cache.get("k"))
        self.assertEqual(len(self.cache), 0)

    def test_zero_ttl_set_drops_existing_value(self):
        self.cache.set("k", "old", 60)
        self.assertIsNone(self.cache.set("k", "new", 0))
        self.assertIsNone(self.cache.get("k"))
        self.assertEqual(len(self.cache), 0)
        self.cache.set("k", "again", 60)
        self.assertEqual(self.cache.get("k"), "again")

    def test_overwrite_with_new_ttl_replaces_entry(self):
        self.cache.set("k", "short", 10)
        self.cache.set("k", "long", 100)
        self.clock.advance(50)
        self.assertEqual(self.cache.get("k"), "long")
        self.assertNotIn("k", self.cache.memory_by_ttl[10])

    def test_clear_drops_everything(self):
        self.cache.set("a", 1, 10)
        self.cache.set("b", 2, 100)
        self.assertEqual(self.cache.clear(), 2)
        self.assertIsNone(self.cache.get("a"))
        self.assertIsNone(self.cache.get("b"))

    def test_entry_records_absolute_expiry(self):
        entry = self.cache.set("k", "v", 30)
        self.assertEqual(entry.expires_at - entry.created_at, 30)
        self.assertEqual(entry.created_at, self.clock.now)


class RedisTierTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.redis = _FakeRedis()

    def test_second_process_reads_shared_entry(self):
        writer = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        reader = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        writer.set("verify_myth:x", {"data": 1}, 60)
        self.assertEqual(self.redis.ttls[REDIS_PREFIX + "verify_myth:x"], 60)
        self.assertEqual(reader.get("verify_myth:x"), {"data": 1})

    def test_shared_entry_respects_expiry(self):
        writer = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        reader = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        writer.set("k", "v", 60)
        self.clock.advance(60)
        self.assertIsNone(reader.get("k"))
        self.assertNotIn(REDIS_PREFIX + "k", self.redis.store)

    def test_zero_ttl_set_drops_shared_entry(self):
        cache = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        cache.set("k", "old", 60)
        cache.set("k", "new", 0)
        self.assertNotIn(REDIS_PREFIX + "k", self.redis.store)
        self.assertIsNone(cache.get("k"))

    def test_clear_removes_prefixed_keys_only(self):
        cache = ResponseCache(redis_client=self.redis, maxsize=16, now_fn=self.clock)
        cache.set("k", "v", 60)
        self.redis.store["other:key"] = "keep"
        cache.clear()
        self.assertEqual(list(self.redis.store), ["other:key"])

    def test_redis_failures_fall_back_to_memory(self):
        cache = ResponseCache(redis_client=_BrokenRedis(), maxsize=16, now_fn=self.clock)
        cache.set("k", "v", 60)
        self.assertEqual(cache.get("k"), "v")
        self.assertIsNone(cache.get("missing"))
        self.assertEqual(cache.clear(), 1)


def test_cache_key_joins_non_empty_parts():
    assert cache_key("track_myth", "space-myths", "0") == "track_myth:space-myths:0"
    assert cache_key("verify_myth", "") == "verify_myth"
