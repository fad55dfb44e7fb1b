# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Thread-safe ingest and query telemetry counters."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict


@dataclass
class IngestStats:
    """Accumulated write-path statistics."""

    batches: int = 0
    triples: int = 0
    stored: int = 0
    duplicates: int = 0
    rejected: int = 0
    latency_ms_sum: float = 0.0

    def update(
        self, *, triples: int, stored: int, duplicates: int, rejected: int, latency_ms: float
    ) -> None:
        """Add one ingest batch."""

        self.batches += 1
        self.triples += max(0, triples)
        self.stored += max(0, stored)
        self.duplicates += max(0, duplicates)
        self.rejected += max(0, rejected)
        self.latency_ms_sum += max(0.0, latency_ms)

    def snapshot(self) -> Dict[str, int | float]:
        avg = (self.latency_ms_sum / self.batches) if self.batches else 0.0
        return {
            "batches": self.batches,
            "triples": self.triples,
            "stored": self.stored,
            "duplicates": self.duplicates,
            "rejected": self.rejected,
            "avg_latency_ms": avg,
        }


@dataclass
class QueryStats:
    """Accumulated inference statistics."""

    requests: int = 0
    found: int = 0
    path_length_sum: int = 0
    latency_ms_sum: float = 0.0

    def update(self, *, found: bool, path_length: int, latency_ms: float) -> None:
        """Add one query observation."""

        self.requests += 1
        if found:
            self.found += 1
            self.path_length_sum += max(0, path_length)
        self.latency_ms_sum += max(0.0, latency_ms)

    def snapshot(self) -> Dict[str, int | float]:
        """Return counters with hit rate, mean path length and latency."""

        requests = self.requests
        return {
            "requests": requests,
            "found": self.found,
            "not_found": requests - self.found,
            "hit_rate": (self.found / requests) if requests else 0.0,
            "avg_path_length": (self.path_length_sum / self.found) if self.found else 0.0,
            "avg_latency_ms": (self.latency_ms_sum / requests) if requests else 0.0,
        }


class TelemetryRegistry:
    """Thread-safe container for ingest and query stats."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ingest = IngestStats()
        self._query = QueryStats()

    def record_ingest(self, **metrics: int | float) -> None:
        with self._lock:
            self._ingest.update(**metrics)  # type: ignore[arg-type]

    def record_query(self, **metrics: int | float | bool) -> None:
        with self._lock:
            self._query.update(**metrics)  # type: ignore[arg-type]

    def reset(self) -> None:
        """Reset all counters to zero."""

        with self._lock:
            self._ingest = IngestStats()
            self._query = QueryStats()

    def all_snapshots(self) -> Dict[str, Dict[str, int | float]]:
        """Return snapshots for the ingest and query paths."""

        with self._lock:
            return {"ingest": self._ingest.snapshot(), "query": self._query.snapshot()}


__all__ = ["IngestStats", "QueryStats", "TelemetryRegistry"]
