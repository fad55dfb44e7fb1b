"""Per-user relationship graph package.

Summary
-------
Extracted ``(entity1, relation, entity2)`` triples are canonicalized
(:mod:`~relmem.relational.entities`), mapped onto a closed relation
vocabulary with an inverse table (:mod:`~relmem.relational.schema`) and
stored per user in a NetworkX multigraph mirrored to SQLite
(:mod:`~relmem.relational.kg`, :mod:`~relmem.relational.backend`). Family
and social edges are stored in both directions. A bounded breadth-first
search composes relations along paths of up to three hops
(:mod:`~relmem.relational.inference`). :mod:`~relmem.relational.memory`
ties these together behind per-user reader/writer locks.

Complexity
----------
Sized for personal graphs of a few hundred edges; every operation runs in
milliseconds.

Examples
--------
>>> from relmem.relational.memory import RelationshipMemory
>>> mem = RelationshipMemory()
>>> _ = mem.ingest("u1", [("yo", "esposo", "Ana"), ("Ana", "hermana", "Pedro")])
>>> mem.query("u1", "yo", "Pedro").to_dict()["tag"]
'sibling_in_law'

See Also
--------
relmem.relational.schema : Relation vocabulary and inverse table.
relmem.relational.kg : Graph store.
relmem.relational.inference : Composition rules and path search.
relmem.relational.memory : Ingest/query façade.
"""

__all__ = [
    "backend",
    "entities",
    "errors",
    "inference",
    "kg",
    "memory",
    "phrasing",
    "schema",
    "tuples",
]
