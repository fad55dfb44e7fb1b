import pytest

from relmem.relational.entities import SELF
from relmem.relational.inference import NOT_FOUND, InferenceResult
from relmem.relational.kg import Edge
from relmem.relational.phrasing import (
    describe_result,
    format_summary,
    group_by_category,
    is_listing_request,
    parse_relationship_question,
)
from relmem.relational.schema import Relation, RelationType


def found(label: str, rel: Relation) -> InferenceResult:
    return InferenceResult(True, rel, label, 2)


def test_describe_addresses_user() -> None:
    r = found("cuñada", Relation(RelationType.SIBLING_IN_LAW))
    assert describe_result(r, "yo", "María", a_is_self=True) == "María es tu cuñada"
    assert describe_result(r, "Juan", "yo", b_is_self=True) == "Tú eres cuñada de Juan"
    assert describe_result(r, "Juan", "María") == "María es cuñada de Juan"
    assert describe_result(NOT_FOUND, "a", "b") is None


def test_describe_degraded_chain() -> None:
    text = "relacionado a través de amigo/a y hermano/a"
    r = found(text, Relation.generic(text))
    assert (
        describe_result(r, "yo", "Eva", a_is_self=True)
        == "Eva está relacionado contigo a través de amigo/a y hermano/a"
    )
    assert (
        describe_result(r, "Ana", "Eva")
        == "Eva está relacionado con Ana a través de amigo/a y hermano/a"
    )


def test_group_and_summary() -> None:
    edges = [
        Edge("u", "pedro", Relation.generic("padrino"), SELF, hint="family", seq=1),
        Edge("u", "ana", Relation(RelationType.FRIEND), SELF, gender="f", seq=2),
        Edge("u", "juan", Relation(RelationType.SIBLING), SELF, gender="m", seq=3),
    ]
    grouped = group_by_category(edges, {"juan": "Juan"})
    assert list(grouped) == ["family", "social", "other"]
    assert grouped["social"] == [{"entity1": "ana", "relation": "amiga", "entity2": "yo"}]
    assert format_summary(edges[2:], {"juan": "Juan"}) == "- Juan es hermano de yo"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("¿Qué relación hay entre Juan y María?", ("Juan", "María")),
        ("cuál es la relación de Ana con Pedro", ("Ana", "Pedro")),
        ("Qué sería la relación entre yo y Encarna", ("yo", "Encarna")),
        ("Hola, ¿cómo estás?", None),
        ("", None),
    ],
)
def test_parse_relationship_question(text, expected) -> None:
    assert parse_relationship_question(text) == expected


def test_is_listing_request() -> None:
    assert is_listing_request("Dame una relación de todos mis parientes")
    assert is_listing_request("¿Quiénes son mis familiares?")
    assert not is_listing_request("¿Qué relación hay entre Juan y María?")
    assert not is_listing_request("Hoy hace sol")
