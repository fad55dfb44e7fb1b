# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Bounded path inference over a user's relationship graph.

Summary
-------
Answers "how is B related to A?" by a breadth-first search from ``A`` over
outgoing edges, at most ``max_hops`` deep, and folds the relations met on
the first path found through a static composition table.

Walking an edge ``(s, r, o)`` from ``s`` reaches ``o``, which relates to
``s`` as ``inverse(r)``. These step relations are folded left to right, so
a path with steps ``parent, sibling`` reads "B is A's parent's sibling"
and composes to ``aunt_uncle``. A pair missing from the table degrades to a
``generic`` relation whose name describes the chain.

Complexity
----------
``O(V + E)`` of the subgraph within ``max_hops`` of ``A``.

Examples
--------
>>> from relmem.relational.kg import GraphStore
>>> store = GraphStore()
>>> _ = store.add_edge("u", "Juan", "hermano", "yo")
>>> _ = store.add_edge("u", "María", "esposa", "Juan")
>>> InferenceEngine().infer(store.graph("u"), "@self", "maria").label
'cuñada'

See Also
--------
relmem.relational.schema.inverse
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List, Mapping, Optional, Sequence, Tuple

from .kg import RelationshipGraph
from .schema import Category, Relation, RelationType, inverse, label

_log = logging.getLogger(__name__)

MAX_HOPS = 3

R = RelationType

COMPOSITION_RULES: Dict[Tuple[RelationType, RelationType], RelationType] = {
    (R.SPOUSE, R.SIBLING): R.SIBLING_IN_LAW,
    (R.SIBLING, R.SPOUSE): R.SIBLING_IN_LAW,
    (R.PARENT, R.SIBLING): R.AUNT_UNCLE,
    (R.SIBLING, R.CHILD): R.NIECE_NEPHEW,
    (R.PARENT, R.PARENT): R.GRANDPARENT,
    (R.CHILD, R.CHILD): R.GRANDCHILD,
    (R.AUNT_UNCLE, R.CHILD): R.COUSIN,
    (R.PARENT, R.NIECE_NEPHEW): R.COUSIN,
    (R.SPOUSE, R.PARENT): R.PARENT_IN_LAW,
    (R.CHILD, R.SPOUSE): R.CHILD_IN_LAW,
    (R.PARENT, R.CHILD): R.SIBLING,
    (R.SIBLING, R.SIBLING): R.SIBLING,
    (R.SIBLING, R.PARENT): R.PARENT,
    (R.CHILD, R.SIBLING): R.CHILD,
    (R.COUSIN, R.SIBLING): R.COUSIN,
    (R.SIBLING, R.COUSIN): R.COUSIN,
    (R.AUNT_UNCLE, R.SPOUSE): R.AUNT_UNCLE,
}

del R

_VIA = "relacionado a través de"


def _step_text(relation: Relation) -> str:
    return label(relation) or str(relation)


def _chain_phrase(parts: Sequence[str]) -> str:
    if len(parts) == 1:
        return f"{_VIA} {parts[0]}"
    return f"{_VIA} {', '.join(parts[:-1])} y {parts[-1]}"


def compose(
    steps: Sequence[Relation],
    rules: Mapping[Tuple[RelationType, RelationType], RelationType] = COMPOSITION_RULES,
) -> Relation:
    """Fold ``steps`` into one relation.

    Parameters
    ----------
    steps : Sequence[Relation]
        Step relations along a path, first hop first.
    rules : Mapping, optional
        ``(current, next) -> result`` composition table.

    Returns
    -------
    Relation
        The composed relation or, when some pair has no rule, a generic
        relation named "relacionado a través de a, b y c" listing every step.

    Raises
    ------
    ValueError
        If ``steps`` is empty.

    Examples
    --------
    >>> str(compose([Relation(RelationType.PARENT), Relation(RelationType.SIBLING)]))
    'aunt_uncle'
    >>> compose([Relation(RelationType.FRIEND), Relation(RelationType.SIBLING)]).name
    'relacionado a través de amigo/a y hermano/a'
    """

    if not steps:
        raise ValueError("cannot compose an empty path")
    current = steps[0]
    for nxt in steps[1:]:
        result = None
        if not current.is_generic and not nxt.is_generic:
            result = rules.get((current.type, nxt.type))
        if result is None:
            # why: once degraded the phrase lists every step, not partial results
            return Relation.generic(_chain_phrase([_step_text(s) for s in steps]))
        current = Relation(result)
    return current


@dataclass(frozen=True)
class InferenceResult:
    """Answer of :meth:`InferenceEngine.infer`; ``found=False`` is NotFound."""

    found: bool
    relation: Optional[Relation] = None
    label: Optional[str] = None
    path_length: int = 0
    path: Tuple[str, ...] = field(default=())

    @property
    def category(self) -> Optional[Category]:
        return self.relation.category if self.relation is not None else None

    def to_dict(self) -> Dict[str, Any]:
        if not self.found:
            return {"found": False}
        return {
            "found": True,
            "relation": self.label,
            "tag": str(self.relation),
            "path_length": self.path_length,
        }


NOT_FOUND = InferenceResult(found=False)


class InferenceEngine:
    """Breadth-first relation inference.

    Parameters
    ----------
    max_hops : int, optional
        Search depth, ``1..3``.
    rules : Mapping, optional
        Composition table; defaults to :data:`COMPOSITION_RULES`.
    """

    def __init__(
        self,
        max_hops: int = MAX_HOPS,
        rules: Optional[Mapping[Tuple[RelationType, RelationType], RelationType]] = None,
    ) -> None:
        if not 1 <= int(max_hops) <= MAX_HOPS:
            raise ValueError(f"max_hops must be between 1 and {MAX_HOPS}, got {max_hops}")
        self.max_hops = int(max_hops)
        self.rules = dict(COMPOSITION_RULES if rules is None else rules)

    def infer(self, graph: RelationshipGraph, a: str, b: str) -> InferenceResult:
        """Return how ``b`` relates to ``a`` (canonical keys) in ``graph``.

        Outgoing edges are explored in insertion order and the first path
        reaching ``b`` wins, so equal-length alternatives resolve the same
        way on every call.
        """

        if a == b or a not in graph or b not in graph:
            return NOT_FOUND
        queue: Deque[Tuple[str, List[Relation], List[str]]] = deque([(a, [], [a])])
        visited = {a}
        while queue:
            node, steps, path = queue.popleft()
            for edge in graph.edges_from(node):
                nxt = edge.object
                if nxt in visited:
                    continue
                visited.add(nxt)
                nsteps = steps + [inverse(edge.relation)]
                npath = path + [nxt]
                if nxt == b:
                    return self._result(graph, b, nsteps, npath)
                if len(nsteps) < self.max_hops:
                    queue.append((nxt, nsteps, npath))
        _log.debug("no path from %s to %s within %d hops", a, b, self.max_hops)
        return NOT_FOUND

    def _result(
        self, graph: RelationshipGraph, b: str, steps: List[Relation], path: List[str]
    ) -> InferenceResult:
        relation = compose(steps, self.rules)
        return InferenceResult(
            found=True,
            relation=relation,
            label=label(relation, graph.gender_of(b)),
            path_length=len(steps),
            path=tuple(path),
        )


__all__ = [
    "COMPOSITION_RULES",
    "MAX_HOPS",
    "compose",
    "InferenceResult",
    "NOT_FOUND",
    "InferenceEngine",
]
