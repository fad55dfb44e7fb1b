# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Inbound triple shapes.

Summary
-------
The extraction adapter hands over already-parsed facts as
``{"entity1", "relation", "entity2", "type"?}`` mappings. This module
coerces the accepted shapes into :class:`RawTriple` and reads them from
JSON or JSONL files.

Examples
--------
>>> coerce_triple({"entity1": "yo", "relation": "hermano", "entity2": "Juan"})
RawTriple(entity1='yo', relation='hermano', entity2='Juan', type=None)
>>> coerce_triple(("yo", "esposa", "Ana", "family")).type
'family'
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Mapping, NamedTuple, Optional, Sequence

from relmem.common.io import read_jsonl

from .errors import InvalidEdgeError


class RawTriple(NamedTuple):
    """One extracted fact: ``entity1`` is ``relation`` of ``entity2``."""

    entity1: str
    relation: str
    entity2: str
    type: Optional[str] = None


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def coerce_triple(obj: Any) -> RawTriple:
    """Return ``obj`` as a :class:`RawTriple`.

    Parameters
    ----------
    obj : RawTriple | Mapping | Sequence
        A mapping with ``entity1``/``relation``/``entity2`` (and optional
        ``type``) keys, or a 3- or 4-element sequence in that order.

    Raises
    ------
    InvalidEdgeError
        If ``obj`` has none of the accepted shapes.
    """

    if isinstance(obj, RawTriple):
        return obj
    if isinstance(obj, Mapping):
        missing = [k for k in ("entity1", "relation", "entity2") if k not in obj]
        if missing:
            raise InvalidEdgeError("malformed", f"triple is missing keys: {', '.join(missing)}")
        hint = obj.get("type")
        return RawTriple(
            _text(obj["entity1"]),
            _text(obj["relation"]),
            _text(obj["entity2"]),
            None if hint is None else str(hint),
        )
    if isinstance(obj, Sequence) and not isinstance(obj, (str, bytes)):
        if len(obj) not in (3, 4):
            raise InvalidEdgeError("malformed", f"triple must have 3 or 4 items, got {len(obj)}")
        hint = obj[3] if len(obj) == 4 else None
        return RawTriple(
            _text(obj[0]),
            _text(obj[1]),
            _text(obj[2]),
            None if hint is None else str(hint),
        )
    raise InvalidEdgeError("malformed", f"unsupported triple type: {type(obj).__name__}")


def read_records(path: str | Path) -> List[Any]:
    """Return the raw, uncoerced records of a JSON array or a JSONL file.

    A JSON object with a ``"triples"`` or ``"relationships"`` key is also
    accepted, matching the extraction adapter's response envelope. Records
    are coerced one by one at ingest so a malformed entry is dropped and
    counted instead of failing the whole file.
    """

    file = Path(path)
    if file.suffix == ".jsonl":
        return list(read_jsonl(file))
    with open(file, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if isinstance(data, Mapping):
        data = data.get("triples", data.get("relationships", []))
    if not isinstance(data, list):
        raise InvalidEdgeError("malformed", f"{file} holds no list of triples")
    return data


__all__ = ["RawTriple", "coerce_triple", "read_records"]
