# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Shared infrastructure: I/O, SQLite, locking, provenance and telemetry."""

from .decisions import EdgeDecision
from .io import (
    atomic_write_file,
    atomic_write_jsonl,
    read_jsonl,
)
from .locks import LockRegistry, ReadWriteLock
from .provenance import ProvenanceLogger, log_decisions
from .sqlite import SQLiteExecMixin
from .telemetry import IngestStats, QueryStats, TelemetryRegistry

__all__ = [
    "EdgeDecision",
    "atomic_write_file",
    "atomic_write_jsonl",
    "read_jsonl",
    "LockRegistry",
    "ReadWriteLock",
    "ProvenanceLogger",
    "log_decisions",
    "SQLiteExecMixin",
    "IngestStats",
    "QueryStats",
    "TelemetryRegistry",
]
