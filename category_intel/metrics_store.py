"""Capped FIFO storage for performance metrics.

Keeps only the newest ``max_metrics`` entries; the oldest is evicted first.
Redis-backed when a reachable REDIS_URL is configured (shared across
processes), otherwise an in-process deque guarded by a lock.
"""
import json
import logging
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

import redis

logger = logging.getLogger(__name__)

DEFAULT_MAX_METRICS = 1000


@dataclass
class PerformanceMetric:
    event: str
    duration_ms: int
    timestamp: int = field(default_factory=lambda: int(time.time() * 1000))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def from_json(cls, raw: str) -> "PerformanceMetric":
        return cls(**json.loads(raw))


class MemoryMetricsStore:
    """Thread-safe ring buffer of metrics."""

    blocking = False

    def __init__(self, max_metrics: int = DEFAULT_MAX_METRICS):
        self.max_metrics = max_metrics
        self._metrics: deque[PerformanceMetric] = deque(maxlen=max_metrics)
        self._lock = threading.Lock()

    def append(self, metric: PerformanceMetric):
        with self._lock:
            self._metrics.append(metric)

    def all(self) -> list[PerformanceMetric]:
        """All stored metrics, oldest first."""
        with self._lock:
            return list(self._metrics)

    def recent(self, limit: int = 50) -> list[PerformanceMetric]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._metrics)[-limit:]

    def clear(self):
        with self._lock:
            self._metrics.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)


class RedisMetricsStore:
    """Metrics list in Redis, newest at the head, trimmed on every write.

    Calls are synchronous; ``PerformanceTracker`` runs writes in a worker
    thread so the event loop is not held for the round-trip.
    """

    blocking = True

    def __init__(
        self,
        client: "redis.Redis",
        key: str = "category_intel:metrics",
        max_metrics: int = DEFAULT_MAX_METRICS,
    ):
        self.redis = client
        self.key = key
        self.max_metrics = max_metrics

    def append(self, metric: PerformanceMetric):
        pipe = self.redis.pipeline()
        pipe.lpush(self.key, metric.to_json())
        pipe.ltrim(self.key, 0, self.max_metrics - 1)
        pipe.execute()

    def all(self) -> list[PerformanceMetric]:
        items = self.redis.lrange(self.key, 0, -1)
        return [PerformanceMetric.from_json(i) for i in reversed(items)]

    def recent(self, limit: int = 50) -> list[PerformanceMetric]:
        if limit <= 0:
            return []
        items = self.redis.lrange(self.key, 0, limit - 1)
        return [PerformanceMetric.from_json(i) for i in reversed(items)]

    def clear(self):
        self.redis.delete(self.key)

    def __len__(self) -> int:
        return int(self.redis.llen(self.key))


def make_metrics_store(redis_url: Optional[str] = None, max_metrics: int = DEFAULT_MAX_METRICS):
    """Redis store when ``redis_url`` is reachable, otherwise in-memory."""
    if redis_url:
        try:
            client = redis.from_url(redis_url, decode_responses=True)
            client.ping()
            return RedisMetricsStore(client, max_metrics=max_metrics)
        except redis.RedisError as e:
            logger.warning("Redis unavailable at %s (%s), keeping metrics in memory", redis_url, e)
    return MemoryMetricsStore(max_metrics)
