# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Ingest/query façade over the relationship graph.

Summary
-------
:class:`RelationshipMemory` is the single entry point for callers: it
accepts extracted triple batches, answers relation queries and lists,
resets, exports and restores a user's graph. Each user has one
reader/writer lock; a whole ingest batch holds the writer side so readers
never observe a half-applied batch, while different users never contend.

Side Effects
------------
Writes to the configured backend; optional NDJSON provenance records;
telemetry counters.

Examples
--------
>>> mem = RelationshipMemory()
>>> mem.ingest("u1", [("yo", "hermano", "Juan"), ("María", "esposa", "Juan")]).stored
4
>>> mem.query("u1", "yo", "María").label
'cuñada'
>>> mem.describe("u1", "yo", "María")
'María es tu cuñada'
"""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from relmem.common import io
from relmem.common.locks import LockRegistry
from relmem.common.provenance import ProvenanceLogger, log_decisions
from relmem.common.telemetry import TelemetryRegistry

from .backend import build_backend
from .entities import SELF, Canonicalizer
from .errors import InvalidEdgeError
from .inference import InferenceEngine, InferenceResult
from .kg import Edge, GraphStore
from .phrasing import describe_result, group_by_category

_log = logging.getLogger(__name__)

EXPORT_SCHEMA = "relmem.v1"


@dataclass(frozen=True)
class IngestReport:
    """Outcome of one ingest batch.

    ``stored`` counts every newly written edge, inverse edges included.
    """

    stored: int
    duplicates: int
    rejected: int
    elapsed_ms: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class RelationshipMemory:
    """Per-user relationship memory.

    Parameters
    ----------
    store : Optional[GraphStore], optional
        Graph store; an in-memory SQLite store by default.
    engine : Optional[InferenceEngine], optional
        Path inference engine.
    provenance : Optional[ProvenanceLogger], optional
        Receives one record per edge decision.
    """

    def __init__(
        self,
        store: Optional[GraphStore] = None,
        engine: Optional[InferenceEngine] = None,
        *,
        provenance: Optional[ProvenanceLogger] = None,
    ) -> None:
        self.store = store or GraphStore()
        self.engine = engine or InferenceEngine()
        self.provenance = provenance
        self.locks = LockRegistry()
        self.telemetry = TelemetryRegistry()

    @classmethod
    def from_config(cls, cfg: Any) -> "RelationshipMemory":
        """Build a memory from a :func:`relmem.config.load_config` result."""

        canonicalizer = Canonicalizer(
            fold_diacritics=bool(cfg.graph.fold_diacritics),
            self_aliases=list(cfg.graph.self_aliases or []),
        )
        store = GraphStore(
            build_backend(str(cfg.store.backend), str(cfg.store.db_path)),
            canonicalizer=canonicalizer,
            inverse_categories=list(cfg.graph.inverse_categories),
        )
        provenance = ProvenanceLogger(cfg.provenance_dir) if cfg.get("provenance_dir") else None
        return cls(store, InferenceEngine(int(cfg.graph.max_hops)), provenance=provenance)

    @property
    def canonicalizer(self) -> Canonicalizer:
        return self.store.canonicalizer

    # ------------------------------------------------------------------
    # Writes
    def ingest(self, user_id: str, triples: Iterable[Any]) -> IngestReport:
        """Store a batch of extracted triples for ``user_id``.

        Invalid triples are dropped and counted, duplicates skipped, and
        unknown relation labels kept as ``generic`` relations.

        Raises
        ------
        GraphCorruptionError
            If the batch would break inverse closure; nothing is stored.
        """

        items = list(triples)
        start = time.perf_counter()
        with self.locks.write(user_id):
            result = self.store.add_edges(user_id, items)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        log_decisions(self.provenance, user_id, result.decisions)
        self.telemetry.record_ingest(
            triples=len(items),
            stored=result.count,
            duplicates=result.duplicates,
            rejected=result.rejected,
            latency_ms=elapsed_ms,
        )
        _log.info(
            "ingest %s: %d triple(s), %d stored, %d duplicate, %d rejected",
            user_id,
            len(items),
            result.count,
            result.duplicates,
            result.rejected,
        )
        return IngestReport(result.count, result.duplicates, result.rejected, elapsed_ms)

    def reset(self, user_id: str) -> None:
        """Delete ``user_id``'s graph."""

        with self.locks.write(user_id):
            self.store.reset(user_id)
        if self.provenance is not None:
            self.provenance.log(user_id=user_id, action="reset", reason="explicit")

    # ------------------------------------------------------------------
    # Reads
    def _record_query(self, result: InferenceResult, start: float) -> None:
        self.telemetry.record_query(
            found=result.found,
            path_length=result.path_length,
            latency_ms=(time.perf_counter() - start) * 1000.0,
        )

    def query(self, user_id: str, a: str, b: str) -> InferenceResult:
        """Return how ``b`` relates to ``a``; ``NOT_FOUND`` is a value."""

        start = time.perf_counter()
        ka = self.canonicalizer.canonicalize(user_id, a)
        kb = self.canonicalizer.canonicalize(user_id, b)
        with self.locks.read(user_id):
            result = self.engine.infer(self.store.graph(user_id), ka, kb)
        self._record_query(result, start)
        return result

    def describe(self, user_id: str, a: str, b: str) -> Optional[str]:
        """Return a Spanish sentence for :meth:`query`, or ``None``.

        The path and the display names are read under one lock so a
        concurrent ingest cannot land between them.
        """

        start = time.perf_counter()
        ka = self.canonicalizer.canonicalize(user_id, a)
        kb = self.canonicalizer.canonicalize(user_id, b)
        with self.locks.read(user_id):
            graph = self.store.graph(user_id)
            result = self.engine.infer(graph, ka, kb)
            a_name, b_name = graph.name(ka), graph.name(kb)
        self._record_query(result, start)
        if not result.found:
            return None
        return describe_result(
            result, a_name, b_name, a_is_self=ka == SELF, b_is_self=kb == SELF
        )

    def list_all(self, user_id: str) -> List[Edge]:
        """Return every stored edge of ``user_id`` in insertion order."""

        with self.locks.read(user_id):
            return self.store.get_all_edges(user_id)

    def names(self, user_id: str) -> Dict[str, str]:
        """Return ``{entity_key: display_name}`` for ``user_id``."""

        with self.locks.read(user_id):
            graph = self.store.graph(user_id)
            return {node: graph.name(node) for node in graph.graph.nodes}

    def list_grouped(self, user_id: str) -> Dict[str, List[Dict[str, str]]]:
        """Return stated (non-inverse) edges grouped by category."""

        edges = [e for e in self.list_all(user_id) if not e.derived]
        return group_by_category(edges, self.names(user_id))

    def verify(self, user_id: str) -> List[Edge]:
        """Return edges lacking their required inverse (normally empty)."""

        with self.locks.read(user_id):
            return self.store.verify(user_id)

    def stats(self) -> Dict[str, Dict[str, int | float]]:
        return self.telemetry.all_snapshots()

    # ------------------------------------------------------------------
    # Snapshots
    def export(self, user_id: str, directory: str | Path) -> Path:
        """Write ``user_id``'s graph to ``directory/<user_id>/relationships.jsonl``."""

        path = Path(directory) / user_id / "relationships.jsonl"
        path.parent.mkdir(parents=True, exist_ok=True)
        with self.locks.read(user_id):
            graph = self.store.graph(user_id)
            records: List[Dict[str, Any]] = [
                {"schema": EXPORT_SCHEMA, "type": "node", "key": node, "name": graph.name(node)}
                for node in graph.graph.nodes
            ]
            records.extend(
                {"schema": EXPORT_SCHEMA, "type": "edge", **edge.to_dict()} for edge in graph.edges()
            )
        io.atomic_write_jsonl(path, records)
        _log.info("exported %d record(s) for %s to %s", len(records), user_id, path)
        return path

    def restore(self, user_id: str, path: str | Path) -> IngestReport:
        """Load an :meth:`export` snapshot into ``user_id``'s graph.

        Edges already present are skipped and counted as duplicates; edges
        that would be rejected at ingest are counted as rejected.

        Raises
        ------
        InvalidEdgeError
            With reason ``"malformed"`` if a record lacks its keys or names
            an unknown relation; nothing is stored.
        """

        start = time.perf_counter()
        edges: List[Edge] = []
        names: Dict[str, str] = {}
        for rec in io.read_jsonl(path):
            if not isinstance(rec, Mapping):
                raise InvalidEdgeError("malformed", f"snapshot record is not an object: {rec!r}")
            kind = rec.get("type", "edge")
            if kind == "node":
                if not rec.get("key"):
                    raise InvalidEdgeError("malformed", f"node record without key: {rec!r}")
                names[str(rec["key"])] = str(rec.get("name") or rec["key"])
            elif kind == "edge":
                edges.append(Edge.from_dict(user_id, rec))
        with self.locks.write(user_id):
            result = self.store.restore(user_id, edges, names)
        elapsed_ms = (time.perf_counter() - start) * 1000.0
        log_decisions(self.provenance, user_id, result.decisions)
        return IngestReport(result.count, result.duplicates, result.rejected, elapsed_ms)


__all__ = ["IngestReport", "RelationshipMemory", "EXPORT_SCHEMA"]
