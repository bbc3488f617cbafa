"""Counters for the ETA engine.

Injected into the engine so provider and broadcast failures are countable
without changing what callers see.
"""

import logging
from collections import Counter, deque
from typing import Any

logger = logging.getLogger(__name__)


class ETAMetrics:
    """Collects ETA engine counters and provider latency samples."""

    def __init__(self, max_latency_samples: int = 1000) -> None:
        self.provider_queries = 0
        self.provider_failures: Counter[str] = Counter()
        self.cache_hits = 0
        self.countdown_reads = 0
        self.broadcasts = 0
        self.broadcast_failures: Counter[str] = Counter()
        self.provider_latency_ms: deque[float] = deque(maxlen=max_latency_samples)

    def record_provider_query(self, latency_ms: float) -> None:
        self.provider_queries += 1
        self.provider_latency_ms.append(latency_ms)

    def record_provider_failure(self, reason: str) -> None:
        self.provider_failures[reason] += 1

    def record_cache_hit(self) -> None:
        self.cache_hits += 1

    def record_countdown(self) -> None:
        self.countdown_reads += 1

    def record_broadcast(self) -> None:
        self.broadcasts += 1

    def record_broadcast_failure(self, event_name: str) -> None:
        self.broadcast_failures[event_name] += 1

    def get_stats(self) -> dict[str, Any]:
        """Snapshot of all counters.

        Returns:
            Dictionary with query, failure, cache and broadcast counts and
            average provider latency.
        """
        samples = list(self.provider_latency_ms)
        avg_latency = sum(samples) / len(samples) if samples else 0.0
        return {
            "provider_queries": self.provider_queries,
            "provider_failures": dict(self.provider_failures),
            "provider_failures_total": sum(self.provider_failures.values()),
            "provider_latency_avg_ms": round(avg_latency, 2),
            "cache_hits": self.cache_hits,
            "countdown_reads": self.countdown_reads,
            "broadcasts": self.broadcasts,
            "broadcast_failures": dict(self.broadcast_failures),
        }
