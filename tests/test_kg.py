import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from relmem.relational.entities import SELF
from relmem.relational.errors import GraphCorruptionError, InvalidEdgeError
from relmem.relational.kg import Edge, GraphStore, inverse_edge
from relmem.relational.schema import Category, Relation, RelationNormalizer, RelationType


def keys(edges):
    return {(e.subject, str(e.relation), e.object) for e in edges}


def test_child_edge_stores_parent_inverse(store: GraphStore) -> None:
    stored = store.add_edge("u1", "yo", "hijo", "Encarna")
    assert keys(stored) == {(SELF, "child", "encarna"), ("encarna", "parent", SELF)}
    back = store.get_edges("u1", "Encarna")
    assert [(e.relation.type, e.object, e.derived) for e in back] == [
        (RelationType.PARENT, SELF, True)
    ]


def test_symmetric_relation_retrievable_both_ways(store: GraphStore) -> None:
    store.add_edge("u1", "Juan", "hermano", "Pedro")
    assert store.get_edges("u1", "pedro")[0].relation == Relation(RelationType.SIBLING)
    assert store.get_edges("u1", "juan")[0].object == "pedro"


def test_add_edge_is_idempotent(store: GraphStore) -> None:
    assert len(store.add_edge("u1", "Juan", "hermano", "yo")) == 2
    assert store.add_edge("u1", "JUAN", "Hermano", "Yo") == []
    assert len(store.get_all_edges("u1")) == 2


def test_unknown_relation_is_generic_without_inverse(store: GraphStore) -> None:
    stored = store.add_edge("u1", "Pedro", "padrino", "yo", hint="family")
    assert len(stored) == 1
    edge = stored[0]
    assert edge.relation == Relation.generic("padrino")
    assert edge.category is Category.OTHER
    assert edge.hint == "family"
    assert edge.to_dict()["relation"] == "generic:padrino"


def test_professional_edges_are_one_directional(store: GraphStore) -> None:
    stored = store.add_edge("u1", "Ana", "trabaja en", "Acme")
    assert keys(stored) == {("ana", "works_at", "acme")}
    assert store.get_edges("u1", "acme") == []


@pytest.mark.parametrize(
    "s, r, o, reason",
    [
        ("", "hermano", "Juan", "empty_subject"),
        ("Juan", "hermano", "  ", "empty_object"),
        ("Juan", "", "Ana", "empty_relation"),
        ("yo", "amigo", "me", "self_loop"),
    ],
)
def test_invalid_edges_raise(store: GraphStore, s: str, r: str, o: str, reason: str) -> None:
    with pytest.raises(InvalidEdgeError) as info:
        store.add_edge("u1", s, r, o)
    assert info.value.reason == reason
    assert store.get_all_edges("u1") == []


def test_add_edges_counts_duplicates_and_rejects(store: GraphStore) -> None:
    result = store.add_edges(
        "u1",
        [
            ("yo", "hermano", "Juan"),
            ("yo", "hermano", "juan"),
            ("", "amigo", "Ana"),
            {"entity1": "Ana"},
            ("Ana", "amiga", "yo"),
        ],
    )
    assert result.count == 4
    assert result.duplicates == 1
    assert result.rejected == 2
    actions = [d.action for d in result.decisions]
    assert actions.count("reject") == 2
    assert actions.count("duplicate") == 1


def test_users_are_isolated(store: GraphStore) -> None:
    store.add_edge("u1", "Juan", "hermano", "yo")
    assert store.get_all_edges("u2") == []
    assert store.users() == ["u1"]


def test_reset_clears_only_that_user(store: GraphStore) -> None:
    store.add_edge("u1", "Juan", "hermano", "yo")
    store.add_edge("u2", "Ana", "amiga", "yo")
    store.reset("u1")
    assert store.get_all_edges("u1") == []
    assert len(store.get_all_edges("u2")) == 2
    assert store.users() == ["u2"]


def test_batch_without_inverse_is_rejected_whole(monkeypatch, store: GraphStore) -> None:
    store.add_edge("u1", "Ana", "amiga", "yo")
    original = GraphStore._plan

    def drop_inverses(self, graph, forward):
        new, names, duplicates, decisions = original(self, graph, forward)
        return [e for e in new if not e.derived], names, duplicates, decisions

    monkeypatch.setattr(GraphStore, "_plan", drop_inverses)
    with pytest.raises(GraphCorruptionError) as info:
        store.add_edges("u1", [("Luis", "vecino", "yo"), ("Eva", "jefa", "yo")])
    assert [e.subject for e in info.value.missing] == ["luis"]
    assert len(store.get_all_edges("u1")) == 2
    assert store.verify("u1") == []


def test_inverse_edge_respects_categories() -> None:
    norm = RelationNormalizer()
    edge = Edge("u", "ana", Relation(RelationType.FRIEND), SELF)
    assert inverse_edge(edge, norm, {Category.FAMILY}) is None
    inv = inverse_edge(edge, norm)
    assert inv is not None and inv.key == (SELF, Relation(RelationType.FRIEND), "ana")
    assert inv.derived


def test_edge_equality_ignores_metadata() -> None:
    rel = Relation(RelationType.SIBLING)
    assert Edge("u", "a", rel, "b", gender="m", seq=1) == Edge("u", "a", rel, "b", seq=7)


def test_restore_canonicalizes_and_rejects_invalid_rows(store: GraphStore) -> None:
    records = [
        {"entity1": "Juan", "relation": "sibling", "entity2": "yo"},
        {"entity1": "", "relation": "friend", "entity2": "ana"},
        {"entity1": "eva", "relation": "generic:", "entity2": "luis"},
        {"entity1": "Eva", "relation": "friend", "entity2": "eva"},
    ]
    result = store.restore("u1", [Edge.from_dict("u1", r) for r in records], {"Juan": "Juan"})
    assert result.rejected == 3
    assert [d.reason for d in result.decisions if d.action == "reject"] == [
        "empty_subject",
        "empty_relation",
        "self_loop",
    ]
    assert keys(result.stored) == {("juan", "sibling", SELF), (SELF, "sibling", "juan")}
    graph = store.graph("u1")
    assert not graph.has_edge(("", Relation(RelationType.FRIEND), "ana"))
    assert graph.name("juan") == "Juan"
    assert store.verify("u1") == []


def test_family_inverse_cannot_be_disabled() -> None:
    store = GraphStore(inverse_categories=[])
    stored = store.add_edge("u1", "yo", "hijo", "Encarna")
    assert keys(stored) == {(SELF, "child", "encarna"), ("encarna", "parent", SELF)}
    assert len(store.add_edge("u1", "Ana", "amiga", "yo")) == 1
    assert store.verify("u1") == []


@pytest.mark.parametrize(
    "rec",
    [
        {"relation": "sibling", "entity2": "yo"},
        {"entity1": "juan", "entity2": "yo"},
        {"entity1": "juan", "relation": "second_cousin", "entity2": "yo"},
        {"entity1": "juan", "relation": None, "entity2": "yo"},
    ],
)
def test_edge_from_dict_rejects_malformed_records(rec) -> None:
    with pytest.raises(InvalidEdgeError) as info:
        Edge.from_dict("u1", rec)
    assert info.value.reason == "malformed"


_NAMES = st.sampled_from(["yo", "Juan", "María", "Ana", "Pedro", "Encarna"])
_RELS = st.sampled_from(
    ["hermano", "esposa", "hijo", "madre", "amigo", "vecina", "primo", "jefe", "padrino"]
)


@settings(max_examples=40, deadline=None)
@given(st.lists(st.tuples(_NAMES, _RELS, _NAMES), max_size=15))
def test_inverse_invariant_holds_after_any_batch(triples) -> None:
    store = GraphStore()
    store.add_edges("u", triples)
    assert store.verify("u") == []
    before = len(store.get_all_edges("u"))
    again = store.add_edges("u", triples)
    assert again.count == 0
    assert len(store.get_all_edges("u")) == before
