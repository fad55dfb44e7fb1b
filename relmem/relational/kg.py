# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Per-user relationship graph store.

Summary
-------
Keeps each user's directed labeled edges ``(subject, relation, object)`` in
a NetworkX ``MultiDiGraph`` keyed by insertion sequence and mirrors every
write to a :class:`~relmem.relational.backend.PersistenceStrategy`. Family
and social edges are written together with their inverse so that both
directions are reachable from either endpoint's outgoing edges.

Graphs are created lazily on first access for a user, mutated only by
:meth:`GraphStore.add_edges` (and :meth:`GraphStore.restore`) and deleted
only by :meth:`GraphStore.reset`. There are no cross-user edges.

Side Effects
------------
Writes to the configured backend.

Complexity
----------
``get_edges`` is ``O(out-degree)``; a batch write is linear in its size.

Examples
--------
>>> store = GraphStore()
>>> [str(e.relation) for e in store.add_edge("u1", "yo", "hijo", "Encarna")]
['child', 'parent']
>>> store.get_edges("u1", "encarna")[0].object
'@self'

See Also
--------
relmem.relational.inference.InferenceEngine
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import networkx as nx

from relmem.common.decisions import EdgeDecision

from .backend import PersistenceStrategy, SQLiteBackend
from .entities import SELF, Canonicalizer, display_name
from .errors import GraphCorruptionError, InvalidEdgeError
from .schema import INVERSE_CATEGORIES, Category, Relation, RelationNormalizer, label
from .tuples import RawTriple, coerce_triple

_log = logging.getLogger(__name__)

EdgeKey = Tuple[str, Relation, str]


def _text(value: Any) -> str:
    return "" if value is None else str(value)


@dataclass(frozen=True)
class Edge:
    """A stored fact: ``subject`` is ``relation`` of ``object``.

    Identity is ``(user_id, subject, relation, object)``; the remaining
    fields are metadata and do not take part in equality.
    """

    user_id: str
    subject: str
    relation: Relation
    object: str
    gender: Optional[str] = field(default=None, compare=False)
    derived: bool = field(default=False, compare=False)
    hint: Optional[str] = field(default=None, compare=False)
    seq: Optional[int] = field(default=None, compare=False)

    @property
    def key(self) -> EdgeKey:
        return (self.subject, self.relation, self.object)

    @property
    def category(self) -> Category:
        return self.relation.category

    def to_dict(self) -> Dict[str, Any]:
        """Return the outbound ``{entity1, relation, entity2}`` record."""

        return {
            "entity1": self.subject,
            "relation": str(self.relation),
            "entity2": self.object,
            "category": self.category.value,
            "label": label(self.relation, self.gender),
            "gender": self.gender,
            "derived": self.derived,
            "hint": self.hint,
        }

    @classmethod
    def from_dict(cls, user_id: str, rec: Dict[str, Any]) -> "Edge":
        """Rebuild an edge from :meth:`to_dict` output.

        Raises
        ------
        InvalidEdgeError
            With reason ``"malformed"`` if a key is missing or the relation
            tag is unknown.
        """

        try:
            return cls(
                user_id=user_id,
                subject=_text(rec["entity1"]),
                relation=Relation.parse(rec["relation"]),
                object=_text(rec["entity2"]),
                gender=rec.get("gender"),
                derived=bool(rec.get("derived", False)),
                hint=rec.get("hint"),
            )
        except (KeyError, ValueError, TypeError, AttributeError) as exc:
            raise InvalidEdgeError("malformed", f"bad edge record {rec!r}: {exc}") from exc


def _check_edge(subject: str, relation: Relation, obj: str) -> None:
    """Raise :class:`InvalidEdgeError` unless the canonical edge is storable."""

    if not subject:
        raise InvalidEdgeError("empty_subject")
    if not obj:
        raise InvalidEdgeError("empty_object")
    if relation.is_generic and not relation.name:
        raise InvalidEdgeError("empty_relation")
    if subject == obj:
        raise InvalidEdgeError("self_loop", f"{subject!r} cannot relate to itself")


def inverse_edge(
    edge: Edge,
    normalizer: RelationNormalizer,
    categories: Iterable[Category] = INVERSE_CATEGORIES,
) -> Optional[Edge]:
    """Return the inverse of ``edge`` if its category requires one.

    Parameters
    ----------
    edge : Edge
        Forward edge.
    normalizer : RelationNormalizer
        Supplies the inverse table.
    categories : Iterable[Category], optional
        Categories whose edges are stored in both directions.

    Returns
    -------
    Optional[Edge]
        ``(object, inverse(relation), subject)`` flagged as ``derived`` or
        ``None`` for categories outside ``categories``.

    Examples
    --------
    >>> e = Edge("u", "@self", Relation.parse("child"), "encarna")
    >>> str(inverse_edge(e, RelationNormalizer()).relation)
    'parent'
    """

    if normalizer.category(edge.relation) not in set(categories):
        return None
    return Edge(
        user_id=edge.user_id,
        subject=edge.object,
        relation=normalizer.inverse(edge.relation),
        object=edge.subject,
        derived=True,
        hint=edge.hint,
    )


class RelationshipGraph:
    """One user's edges.

    Summary
    -------
    Wraps a ``MultiDiGraph`` whose edge keys are the insertion ``seq`` and
    whose nodes carry a display ``name``. Outgoing edges are returned in
    insertion order, which the inference engine relies on for
    deterministic tie-breaking.
    """

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self.graph = nx.MultiDiGraph()
        self._index: Dict[EdgeKey, Edge] = {}

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, node: str) -> bool:
        return node in self.graph

    def add(self, edge: Edge, names: Optional[Dict[str, str]] = None) -> None:
        """Insert ``edge`` in memory; ``edge.seq`` must be set."""

        if edge.seq is None:
            raise ValueError("edge must carry a seq before insertion")
        names = names or {}
        for node in (edge.subject, edge.object):
            if node not in self.graph:
                self.graph.add_node(node, name=names.get(node, node))
        self.graph.add_edge(edge.subject, edge.object, key=edge.seq, edge=edge)
        self._index[edge.key] = edge

    def set_names(self, names: Dict[str, str]) -> None:
        for node, name in names.items():
            if node in self.graph and name:
                self.graph.nodes[node]["name"] = name

    def has_edge(self, key: EdgeKey) -> bool:
        return key in self._index

    def get(self, key: EdgeKey) -> Optional[Edge]:
        return self._index.get(key)

    def name(self, node: str) -> str:
        """Return the display name of ``node`` (the key when unknown)."""

        if node in self.graph:
            return self.graph.nodes[node].get("name") or node
        return node

    def edges_from(self, node: str) -> List[Edge]:
        """Return outgoing edges of ``node`` in insertion order."""

        if node not in self.graph:
            return []
        out = [data["edge"] for _, _, data in self.graph.out_edges(node, data=True)]
        out.sort(key=lambda e: e.seq)
        return out

    def edges(self) -> List[Edge]:
        """Return every edge in insertion order."""

        return sorted(self._index.values(), key=lambda e: e.seq)

    def __iter__(self) -> Iterator[Edge]:
        return iter(self.edges())

    def gender_of(self, node: str) -> Optional[str]:
        """Return the first grammatical gender recorded for ``node``."""

        for edge in self.edges_from(node):
            if edge.gender:
                return edge.gender
        return None

    def missing_inverses(
        self,
        normalizer: RelationNormalizer,
        categories: Iterable[Category] = INVERSE_CATEGORIES,
        edges: Optional[Iterable[Edge]] = None,
        pending: Iterable[EdgeKey] = (),
    ) -> List[Edge]:
        """Return edges whose required inverse is absent.

        ``pending`` holds keys about to be written in the same batch; they
        count as present.
        """

        cats = set(categories)
        pending_keys = set(pending)
        missing: List[Edge] = []
        for edge in self.edges() if edges is None else edges:
            inv = inverse_edge(edge, normalizer, cats)
            if inv is None:
                continue
            if inv.key not in self._index and inv.key not in pending_keys:
                missing.append(edge)
        return missing


@dataclass
class BatchResult:
    """Outcome of :meth:`GraphStore.add_edges`."""

    stored: List[Edge] = field(default_factory=list)
    duplicates: int = 0
    rejected: int = 0
    decisions: List[EdgeDecision] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of edges actually written, inverse edges included."""

        return len(self.stored)


class GraphStore:
    """All users' relationship graphs over one persistence backend.

    Parameters
    ----------
    backend : Optional[PersistenceStrategy], optional
        Storage; defaults to an in-memory SQLite database.
    canonicalizer : Optional[Canonicalizer], optional
        Entity key normalization.
    normalizer : Optional[RelationNormalizer], optional
        Relation vocabulary and inverse table.
    inverse_categories : Iterable[Category], optional
        Categories stored in both directions; family is always included.

    Notes
    -----
    The store does not lock. Callers serialize writes per user against
    reads of the same user; :class:`~relmem.relational.memory.RelationshipMemory`
    does so with one reader/writer lock per user.
    """

    def __init__(
        self,
        backend: Optional[PersistenceStrategy] = None,
        *,
        canonicalizer: Optional[Canonicalizer] = None,
        normalizer: Optional[RelationNormalizer] = None,
        inverse_categories: Iterable[Category] = INVERSE_CATEGORIES,
    ) -> None:
        self.backend = backend or SQLiteBackend()
        self.backend.init_db()
        self.canonicalizer = canonicalizer or Canonicalizer()
        self.normalizer = normalizer or RelationNormalizer(
            fold_diacritics=self.canonicalizer.fold_diacritics
        )
        # family edges are always stored in both directions
        self.inverse_categories = frozenset(Category(c) for c in inverse_categories) | {
            Category.FAMILY
        }
        self._graphs: Dict[str, RelationshipGraph] = {}

    # ------------------------------------------------------------------
    # Graph access
    def graph(self, user_id: str) -> RelationshipGraph:
        """Return ``user_id``'s graph, loading it from the backend once."""

        g = self._graphs.get(user_id)
        if g is not None:
            return g
        g = RelationshipGraph(user_id)
        names = self.backend.load_names(user_id)
        for edge in self.backend.load(user_id):
            g.add(edge, names)
        g.set_names(names)
        missing = g.missing_inverses(self.normalizer, self.inverse_categories)
        if missing:
            _log.warning(
                "loaded graph for %s has %d edge(s) without inverse", user_id, len(missing)
            )
        self._graphs[user_id] = g
        return g

    def get_edges(self, user_id: str, subject: str) -> List[Edge]:
        """Return outgoing edges of ``subject`` (a raw or canonical mention)."""

        key = self.canonicalizer.canonicalize(user_id, subject)
        return self.graph(user_id).edges_from(key)

    def get_all_edges(self, user_id: str) -> List[Edge]:
        return self.graph(user_id).edges()

    def users(self) -> List[str]:
        """Return ids of users with stored edges."""

        return sorted(set(self.backend.users()) | {u for u, g in self._graphs.items() if len(g)})

    # ------------------------------------------------------------------
    # Writes
    def build_edge(
        self,
        user_id: str,
        subject: str,
        relation: str,
        obj: str,
        hint: Optional[str] = None,
    ) -> Edge:
        """Canonicalize one raw triple into a forward :class:`Edge`.

        Raises
        ------
        InvalidEdgeError
            On an empty subject, relation or object, or a self-loop.
        """

        s = self.canonicalizer.canonicalize(user_id, subject)
        o = self.canonicalizer.canonicalize(user_id, obj)
        norm = self.normalizer.normalize(relation)
        _check_edge(s, norm.relation, o)
        return Edge(
            user_id=user_id,
            subject=s,
            relation=norm.relation,
            object=o,
            gender=norm.gender,
            hint=hint or None,
        )

    def add_edge(
        self,
        user_id: str,
        subject: str,
        relation: str,
        obj: str,
        hint: Optional[str] = None,
    ) -> List[Edge]:
        """Store one triple and, for family/social relations, its inverse.

        Returns
        -------
        List[Edge]
            Newly written edges; empty when the triple was already stored.

        Raises
        ------
        InvalidEdgeError
            When the triple is structurally invalid; nothing is stored.
        """

        edge = self.build_edge(user_id, subject, relation, obj, hint)
        names = {edge.subject: display_name(subject), edge.object: display_name(obj)}
        return self._write(user_id, [(edge, names)]).stored

    def add_edges(self, user_id: str, triples: Iterable[Any]) -> BatchResult:
        """Store a batch of raw triples atomically.

        Summary
        -------
        Invalid triples are dropped and counted; duplicates (against the
        graph or earlier in the batch) are skipped. The remaining edges
        and their inverses are checked for inverse closure, written to the
        backend in one transaction and only then applied in memory.

        Parameters
        ----------
        user_id : str
            Owner of the graph.
        triples : Iterable[Any]
            Items accepted by :func:`~relmem.relational.tuples.coerce_triple`.

        Returns
        -------
        BatchResult
            Stored edges, duplicate/rejected counts and per-edge decisions.

        Raises
        ------
        GraphCorruptionError
            If the planned batch would leave a family/social edge without
            its inverse. Nothing is written.
        """

        rejected = 0
        decisions: List[EdgeDecision] = []
        planned: List[Tuple[Edge, Dict[str, str]]] = []
        for item in triples:
            try:
                raw: RawTriple = coerce_triple(item)
                edge = self.build_edge(user_id, raw.entity1, raw.relation, raw.entity2, raw.type)
            except InvalidEdgeError as exc:
                rejected += 1
                decisions.append(EdgeDecision("reject", exc.reason))
                _log.warning("rejected triple for %s: %s (%r)", user_id, exc, item)
                continue
            names = {edge.subject: display_name(raw.entity1), edge.object: display_name(raw.entity2)}
            planned.append((edge, names))
        result = self._write(user_id, planned)
        result.rejected = rejected
        result.decisions = decisions + result.decisions
        return result

    def _plan(
        self, graph: RelationshipGraph, forward: Sequence[Tuple[Edge, Dict[str, str]]]
    ) -> Tuple[List[Edge], Dict[str, str], int, List[EdgeDecision]]:
        new: List[Edge] = []
        seen: set[EdgeKey] = set()
        names: Dict[str, str] = {}
        duplicates = 0
        decisions: List[EdgeDecision] = []
        for edge, edge_names in forward:
            inv = inverse_edge(edge, self.normalizer, self.inverse_categories)
            for candidate in (edge, inv):
                if candidate is None:
                    continue
                tag = (candidate.subject, str(candidate.relation), candidate.object)
                if graph.has_edge(candidate.key) or candidate.key in seen:
                    if not candidate.derived:
                        duplicates += 1
                        decisions.append(EdgeDecision("duplicate", "exists", tag))
                    continue
                seen.add(candidate.key)
                new.append(candidate)
                reason = "inverse" if candidate.derived else "new"
                decisions.append(EdgeDecision("insert", reason, tag))
            for node, name in edge_names.items():
                if node != SELF and node not in graph and name:
                    names.setdefault(node, name)
        return new, names, duplicates, decisions

    def _write(
        self, user_id: str, forward: Sequence[Tuple[Edge, Dict[str, str]]]
    ) -> BatchResult:
        graph = self.graph(user_id)
        new, names, duplicates, decisions = self._plan(graph, forward)
        self._check_closure(graph, new)
        if new:
            ids = self.backend.insert(new, names)
            new = [replace(e, seq=seq) for e, seq in zip(new, ids)]
            for edge in new:
                graph.add(edge, names)
            _log.debug("stored %d edge(s) for %s", len(new), user_id)
        return BatchResult(stored=new, duplicates=duplicates, decisions=decisions)

    def _check_closure(self, graph: RelationshipGraph, new: Sequence[Edge]) -> None:
        missing = graph.missing_inverses(
            self.normalizer,
            self.inverse_categories,
            edges=new,
            pending=(e.key for e in new),
        )
        if missing:
            _log.error("rejecting batch for %s: %d inverse edge(s) missing", graph.user_id, len(missing))
            raise GraphCorruptionError(missing)

    def restore(
        self,
        user_id: str,
        edges: Iterable[Edge],
        names: Optional[Dict[str, str]] = None,
    ) -> BatchResult:
        """Re-insert exported ``edges``, skipping ones already stored.

        Endpoints are canonicalized again so hand-edited snapshots land on
        the same keys as ingested triples; edges that would be invalid at
        ingest are dropped and counted as rejected. Exports normally carry
        both directions; inverses missing from the input are added after
        it so the restored graph stays closed.
        """

        graph = self.graph(user_id)
        new: List[Edge] = []
        seen: set[EdgeKey] = set()
        duplicates = 0
        rejected = 0
        decisions: List[EdgeDecision] = []
        for edge in edges:
            try:
                edge = self._restored_edge(user_id, edge)
            except InvalidEdgeError as exc:
                rejected += 1
                decisions.append(EdgeDecision("reject", exc.reason))
                _log.warning("rejected restored edge for %s: %s (%r)", user_id, exc, edge.key)
                continue
            tag = (edge.subject, str(edge.relation), edge.object)
            if graph.has_edge(edge.key) or edge.key in seen:
                duplicates += 1
                decisions.append(EdgeDecision("duplicate", "exists", tag))
                continue
            seen.add(edge.key)
            new.append(edge)
            decisions.append(EdgeDecision("insert", "restored", tag))
        for edge in list(new):
            inv = inverse_edge(edge, self.normalizer, self.inverse_categories)
            if inv is not None and not graph.has_edge(inv.key) and inv.key not in seen:
                seen.add(inv.key)
                new.append(inv)
                decisions.append(
                    EdgeDecision("insert", "inverse", (inv.subject, str(inv.relation), inv.object))
                )
        self._check_closure(graph, new)
        nodes = {e.subject for e in new} | {e.object for e in new}
        keyed = {self.canonicalizer.canonicalize(user_id, k): v for k, v in (names or {}).items()}
        names = {k: v for k, v in keyed.items() if k in nodes and k != SELF and v}
        if new:
            ids = self.backend.insert(new, names)
            new = [replace(e, seq=seq) for e, seq in zip(new, ids)]
            for edge in new:
                graph.add(edge, names)
            graph.set_names(names)
        _log.info(
            "restored %d edge(s) for %s (%d duplicate, %d rejected)",
            len(new),
            user_id,
            duplicates,
            rejected,
        )
        return BatchResult(stored=new, duplicates=duplicates, rejected=rejected, decisions=decisions)

    def _restored_edge(self, user_id: str, edge: Edge) -> Edge:
        s = self.canonicalizer.canonicalize(user_id, edge.subject)
        o = self.canonicalizer.canonicalize(user_id, edge.object)
        _check_edge(s, edge.relation, o)
        return replace(edge, user_id=user_id, subject=s, object=o, seq=None)

    def reset(self, user_id: str) -> None:
        """Delete every edge of ``user_id``; the only deletion path."""

        self.backend.clear(user_id)
        self._graphs.pop(user_id, None)
        _log.info("reset graph for %s", user_id)

    def verify(self, user_id: str) -> List[Edge]:
        """Return family/social edges of ``user_id`` lacking their inverse."""

        return self.graph(user_id).missing_inverses(self.normalizer, self.inverse_categories)


__all__ = [
    "Edge",
    "EdgeKey",
    "inverse_edge",
    "RelationshipGraph",
    "BatchResult",
    "GraphStore",
]
