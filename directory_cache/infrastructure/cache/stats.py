"""
Cache Statistics

Hit/miss instrumentation per tier and per key, plus per-key source query
counts. Two views of the same events are kept:

- An in-process snapshot (``get_stats()``) with per-key detail for the
  operational dashboard
- Prometheus counters and a latency histogram, scraped from /metrics

Purely observational: nothing in the cache path reads these numbers to make
a decision.
"""

import copy
from datetime import datetime, timezone
from typing import Any

from prometheus_client import Counter, Histogram

from directory_cache.core.config.constants import STATS_MAX_TRACKED_KEYS, CacheSource, CacheTier
from directory_cache.infrastructure.cache.keys import CacheKeyBuilder

# ============================================================================
# Metric Definitions
# ============================================================================

CACHE_HITS = Counter(
    'directory_cache_hits_total',
    'Total cache hits',
    ['tier']  # memory or redis
)

CACHE_MISSES = Counter(
    'directory_cache_misses_total',
    'Total cache misses',
    ['tier']
)

SOURCE_QUERIES = Counter(
    'directory_cache_source_queries_total',
    'Page aggregates fetched from the relational store',
    ['entity']  # person, town, homepage
)

LOOKUP_DURATION = Histogram(
    'directory_cache_lookup_duration_seconds',
    'Read-through latency by serving source',
    ['source'],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _empty_tier() -> dict[str, Any]:
    return {"hits": 0, "misses": 0, "hit_rate": 0.0, "by_key": {}}


class StatsRecorder:
    """
    Records cache events.

    Snapshot shape:
        {
            "memory":   {"hits", "misses", "hit_rate", "by_key": {key: KeyStats}},
            "redis":    {"hits", "misses", "hit_rate", "by_key": {key: KeyStats}},
            "database": {"queries", "by_key": {key: count}},
            "last_reset": ISO timestamp,
        }

    KeyStats: hits, misses, last_access, size, and when known ttl (seconds),
    cached_at and expires_at. Redis hits report remaining_ttl instead of ttl,
    since the server only knows the time left.

    Each by_key map holds at most ``max_tracked_keys`` keys; the oldest
    tracked key is dropped to make room. Totals and hit rates are unaffected.
    """

    def __init__(self, max_tracked_keys: int = STATS_MAX_TRACKED_KEYS):
        self._max_tracked_keys = max_tracked_keys
        self._stats: dict[str, Any] = {}
        self.reset()

    def record_hit(self, tier: CacheTier, key: str, entry_info: dict[str, Any] | None = None) -> None:
        self._record(tier, key, hit=True, entry_info=entry_info)
        CACHE_HITS.labels(tier=tier.value).inc()

    def record_miss(self, tier: CacheTier, key: str) -> None:
        self._record(tier, key, hit=False, entry_info=None)
        CACHE_MISSES.labels(tier=tier.value).inc()

    def record_database_query(self, key: str, entity: str | None = None) -> None:
        database = self._stats["database"]
        database["queries"] += 1
        by_key = database["by_key"]
        if key not in by_key:
            self._make_room(by_key)
        by_key[key] = by_key.get(key, 0) + 1
        SOURCE_QUERIES.labels(entity=entity or CacheKeyBuilder.entity_of(key)).inc()

    def record_lookup(self, source: CacheSource, latency_ms: float) -> None:
        LOOKUP_DURATION.labels(source=source.value).observe(latency_ms / 1000)

    def get_stats(self) -> dict[str, Any]:
        """Deep copy of the current snapshot."""
        return copy.deepcopy(self._stats)

    def reset(self) -> None:
        """Zero every counter and timestamp. Prometheus counters are monotonic and untouched."""
        self._stats = {
            CacheTier.MEMORY.value: _empty_tier(),
            CacheTier.REDIS.value: _empty_tier(),
            "database": {"queries": 0, "by_key": {}},
            "last_reset": _now_iso(),
        }

    def _record(
        self,
        tier: CacheTier,
        key: str,
        hit: bool,
        entry_info: dict[str, Any] | None,
    ) -> None:
        tier_stats = self._stats[tier.value]
        by_key = tier_stats["by_key"]
        if key not in by_key:
            self._make_room(by_key)
        key_stats = by_key.setdefault(key, {"hits": 0, "misses": 0, "last_access": None, "size": 0})

        if hit:
            tier_stats["hits"] += 1
            key_stats["hits"] += 1
        else:
            tier_stats["misses"] += 1
            key_stats["misses"] += 1

        key_stats["last_access"] = _now_iso()
        if entry_info:
            for field in ("size", "ttl", "remaining_ttl", "cached_at", "expires_at"):
                if entry_info.get(field) is not None:
                    key_stats[field] = entry_info[field]

        total = tier_stats["hits"] + tier_stats["misses"]
        tier_stats["hit_rate"] = tier_stats["hits"] / total * 100 if total else 0.0

    def _make_room(self, by_key: dict[str, Any]) -> None:
        # dicts keep insertion order, so the first key is the oldest tracked
        while by_key and len(by_key) >= self._max_tracked_keys:
            del by_key[next(iter(by_key))]
