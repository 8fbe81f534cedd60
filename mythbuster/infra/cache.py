from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from threading import RLock
from typing import Any, Callable

import redis
from cachetools import TTLCache


logger = logging.getLogger("response_cache")

REDIS_PREFIX = "mythbuster:"


@dataclass
class CacheEntry:
    key: str
    value: Any
    created_at: float
    expires_at: float

    def to_json(self) -> str:
        return json.dumps(
            {"key": self.key, "value": self.value, "created_at": self.created_at, "expires_at": self.expires_at}
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> "CacheEntry":
        data = json.loads(raw)
        return cls(
            key=data["key"],
            value=data["value"],
            created_at=float(data["created_at"]),
            expires_at=float(data["expires_at"]),
        )


@dataclass
class ResponseCache:
    """Process-wide key -> value store with absolute per-entry expiry.

    Entries live in one ``cachetools.TTLCache`` bucket per distinct TTL. A read at
    or after ``expires_at`` evicts the entry and reports a miss, so a stale value is
    never returned. When a Redis client is attached it acts as a shared second tier;
    Redis failures are logged and the memory tier keeps serving.
    """

    redis_client: redis.Redis | None
    maxsize: int
    now_fn: Callable[[], float] = time.time
    memory_by_ttl: dict[int, TTLCache] = field(default_factory=dict)
    key_ttl_index: dict[str, int] = field(default_factory=dict)
    lock: RLock = field(default_factory=RLock)

    def _bucket(self, ttl_seconds: int) -> TTLCache:
        cache = self.memory_by_ttl.get(ttl_seconds)
        if cache is None:
            cache = TTLCache(maxsize=self.maxsize, ttl=ttl_seconds, timer=self.now_fn)
            self.memory_by_ttl[ttl_seconds] = cache
        return cache

    def _memory_entry(self, key: str) -> CacheEntry | None:
        ttl = self.key_ttl_index.get(key)
        if ttl is None:
            return None
        cache = self.memory_by_ttl.get(ttl)
        if cache is None:
            return None
        return cache.get(key)

    def _evict(self, key: str) -> None:
        ttl = self.key_ttl_index.pop(key, None)
        if ttl is not None and ttl in self.memory_by_ttl:
            self.memory_by_ttl[ttl].pop(key, None)
        if self.redis_client is not None:
            try:
                self.redis_client.delete(REDIS_PREFIX + key)
            except Exception as exc:
                logger.warning("redis delete failed for %s: %s", key, exc)

    def get(self, key: str):
        now = self.now_fn()
        with self.lock:
            entry = self._memory_entry(key)
            if entry is not None:
                if now >= entry.expires_at:
                    logger.debug("cache expired key=%s", key)
                    self._evict(key)
                    return None
                return entry.value
            self.key_ttl_index.pop(key, None)
        if self.redis_client is None:
            return None
        try:
            raw = self.redis_client.get(REDIS_PREFIX + key)
        except Exception as exc:
            logger.warning("redis get failed for %s: %s", key, exc)
            return None
        if not raw:
            return None
        shared = CacheEntry.from_json(raw)
        if now >= shared.expires_at:
            self._evict(key)
            return None
        return shared.value

    def set(self, key: str, value, ttl_seconds: int) -> CacheEntry | None:
        if ttl_seconds <= 0:
            with self.lock:
                self._evict(key)
            return None
        now = self.now_fn()
        entry = CacheEntry(key=key, value=value, created_at=now, expires_at=now + ttl_seconds)
        with self.lock:
            previous = self.key_ttl_index.get(key)
            if previous is not None and previous != ttl_seconds:
                self.memory_by_ttl[previous].pop(key, None)
            self._bucket(ttl_seconds)[key] = entry
            self.key_ttl_index[key] = ttl_seconds
        if self.redis_client is not None:
            try:
                self.redis_client.setex(REDIS_PREFIX + key, ttl_seconds, entry.to_json())
            except Exception as exc:
                logger.warning("redis setex failed for %s: %s", key, exc)
        return entry

    def clear(self) -> int:
        with self.lock:
            dropped = len(self.key_ttl_index)
            for cache in self.memory_by_ttl.values():
                cache.clear()
            self.memory_by_ttl.clear()
            self.key_ttl_index.clear()
        if self.redis_client is not None:
            try:
                keys = list(self.redis_client.scan_iter(match=REDIS_PREFIX + "*"))
                if keys:
                    self.redis_client.delete(*keys)
            except Exception as exc:
                logger.warning("redis clear failed: %s", exc)
        logger.info("response cache cleared (%s entries)", dropped)
        return dropped

    def __len__(self) -> int:
        with self.lock:
            return len(self.key_ttl_index)


def init_cache(redis_url: str | None, maxsize: int, now_fn: Callable[[], float] = time.time) -> ResponseCache:
    client = None
    if redis_url:
        try:
            client = redis.from_url(redis_url, socket_timeout=1)
            client.ping()
        except Exception as exc:
            logger.warning("redis unavailable at %s, using memory cache only: %s", redis_url, exc)
            client = None
    return ResponseCache(redis_client=client, maxsize=maxsize, now_fn=now_fn)


def cache_key(*parts: str) -> str:
    return ":".join([p for p in parts if p])


def now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())
