# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Spanish phrasing of stored and inferred relations.

These helpers sit between the graph and a conversational front end: they
turn an :class:`~relmem.relational.inference.InferenceResult` into a
sentence, group a listing by category and recognise the two user requests
the memory answers directly ("¿qué relación hay entre X y Y?" and "dame
mis familiares").
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .entities import SELF, normalize_text
from .inference import InferenceResult
from .kg import Edge
from .schema import NORMALIZER_ORDER, Category, label

_SELF_WORD = "yo"
_RELATED = "relacionado "

CATEGORY_ORDER: Tuple[Category, ...] = NORMALIZER_ORDER + (Category.OTHER,)


def _name(key: str, names: Optional[Mapping[str, str]]) -> str:
    if key == SELF:
        return _SELF_WORD
    if names and names.get(key):
        return names[key]
    return key


def describe_result(
    result: InferenceResult,
    a_name: str,
    b_name: str,
    *,
    a_is_self: bool = False,
    b_is_self: bool = False,
) -> Optional[str]:
    """Return a Spanish sentence stating how ``b`` relates to ``a``.

    Parameters
    ----------
    result : InferenceResult
        Answer for the pair ``(a, b)``.
    a_name, b_name : str
        Display names of the endpoints.
    a_is_self, b_is_self : bool, optional
        Whether an endpoint is the conversation owner; the sentence then
        addresses the user directly.

    Returns
    -------
    Optional[str]
        ``None`` when nothing was found.

    Examples
    --------
    >>> from relmem.relational.schema import Relation, RelationType
    >>> r = InferenceResult(True, Relation(RelationType.SIBLING_IN_LAW), "cuñada", 2)
    >>> describe_result(r, "yo", "María", a_is_self=True)
    'María es tu cuñada'
    """

    if not result.found or not result.label:
        return None
    text = result.label
    if text.startswith(_RELATED):
        rest = text[len(_RELATED) :]
        if a_is_self:
            return f"{b_name} está relacionado contigo {rest}"
        if b_is_self:
            return f"Estás relacionado con {a_name} {rest}"
        return f"{b_name} está relacionado con {a_name} {rest}"
    if a_is_self:
        return f"{b_name} es tu {text}"
    if b_is_self:
        return f"Tú eres {text} de {a_name}"
    return f"{b_name} es {text} de {a_name}"


def edge_record(edge: Edge, names: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return ``{entity1, relation, entity2}`` with display names and label."""

    return {
        "entity1": _name(edge.subject, names),
        "relation": label(edge.relation, edge.gender) or str(edge.relation),
        "entity2": _name(edge.object, names),
    }


def group_by_category(
    edges: Iterable[Edge], names: Optional[Mapping[str, str]] = None
) -> Dict[str, List[Dict[str, str]]]:
    """Group ``edges`` by category, family first and ``other`` last.

    Empty categories are omitted. Type hints never move an edge: a
    ``generic`` relation stays under ``other`` whatever hint it carries.
    """

    buckets: Dict[Category, List[Dict[str, str]]] = {c: [] for c in CATEGORY_ORDER}
    for edge in edges:
        buckets[edge.category].append(edge_record(edge, names))
    return {c.value: rows for c, rows in buckets.items() if rows}


def format_summary(edges: Iterable[Edge], names: Optional[Mapping[str, str]] = None) -> str:
    """Render ``edges`` as "- juan es hermano de yo" lines."""

    lines = []
    for edge in edges:
        rec = edge_record(edge, names)
        lines.append(f"- {rec['entity1']} es {rec['relation']} de {rec['entity2']}")
    return "\n".join(lines)


_QUESTION = re.compile(
    r"(?:qué|que|cuál|cual)\s+(?:(?:es|sería|seria|hay)\s+)?(?:la\s+)?relaci[oó]n\s+"
    r"(?:hay\s+)?(?:entre|de)\s+(\w+)\s+(?:y|con)\s+(\w+)",
    re.IGNORECASE,
)


def parse_relationship_question(text: Optional[str]) -> Optional[Tuple[str, str]]:
    """Return ``(X, Y)`` from "¿qué relación hay entre X y Y?"-style questions.

    >>> parse_relationship_question("¿Cuál es la relación de María con Juan?")
    ('María', 'Juan')
    >>> parse_relationship_question("hola") is None
    True
    """

    if not text:
        return None
    match = _QUESTION.search(text)
    if match is None:
        return None
    return match.group(1), match.group(2)


_LISTING_TERMS = (
    "familiares",
    "familia",
    "parientes",
    "mis relaciones",
    "listado",
    "quienes son",
)


def is_listing_request(text: Optional[str]) -> bool:
    """Return whether ``text`` asks to list the user's relatives."""

    if not text or parse_relationship_question(text) is not None:
        return False
    folded = normalize_text(text)
    return any(term in folded for term in _LISTING_TERMS)


__all__ = [
    "CATEGORY_ORDER",
    "describe_result",
    "edge_record",
    "group_by_category",
    "format_summary",
    "parse_relationship_question",
    "is_listing_request",
]
