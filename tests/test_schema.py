import pytest

from relmem.relational.schema import (
    RELATIONS,
    Category,
    Relation,
    RelationNormalizer,
    RelationType,
    inverse,
    label,
)


@pytest.mark.parametrize(
    "raw, expected, gender",
    [
        ("esposa", RelationType.SPOUSE, "f"),
        ("Hermano", RelationType.SIBLING, "m"),
        ("hermanos", RelationType.SIBLING, None),
        ("tia", RelationType.AUNT_UNCLE, "f"),
        ("sister-in-law", RelationType.SIBLING_IN_LAW, "f"),
        ("brother_in_law", RelationType.SIBLING_IN_LAW, "m"),
        ("amiga", RelationType.FRIEND, "f"),
        ("jefe", RelationType.BOSS, "m"),
        ("trabaja en", RelationType.WORKS_AT, None),
        ("vive en", RelationType.RESIDES_IN, None),
        ("pertenece a", RelationType.BELONGS_TO, None),
    ],
)
def test_normalize_known_terms(raw: str, expected: RelationType, gender) -> None:
    out = RelationNormalizer().normalize(raw)
    assert out.relation == Relation(expected)
    assert out.category is RELATIONS[expected].category
    assert out.gender == gender


def test_unknown_label_becomes_generic_other() -> None:
    out = RelationNormalizer().normalize("Padrino")
    assert out.relation == Relation.generic("padrino")
    assert out.relation.is_generic
    assert out.category is Category.OTHER
    assert str(out.relation) == "generic:padrino"


def test_family_wins_over_lower_priority_categories() -> None:
    # "hermano" (family) and "vecino" (social) both match
    out = RelationNormalizer().normalize("hermano y vecino")
    assert out.relation.type is RelationType.SIBLING


def test_terms_match_on_token_boundaries() -> None:
    # "tiene" is a possession term but must not match inside "mantiene"
    out = RelationNormalizer().normalize("mantiene")
    assert out.relation.is_generic


def test_every_relation_has_consistent_inverse() -> None:
    for rel_type, spec in RELATIONS.items():
        back = RELATIONS[spec.inverse].inverse
        assert back is rel_type, rel_type
        assert RELATIONS[spec.inverse].category is spec.category


def test_inverse_of_generic_is_itself() -> None:
    rel = Relation.generic("padrino")
    assert inverse(rel) == rel
    assert inverse(Relation(RelationType.CHILD)) == Relation(RelationType.PARENT)
    assert inverse(Relation(RelationType.SIBLING)) == Relation(RelationType.SIBLING)


def test_label_by_gender() -> None:
    rel = Relation(RelationType.SIBLING_IN_LAW)
    assert label(rel, "f") == "cuñada"
    assert label(rel, "m") == "cuñado"
    assert label(rel) == "cuñado/a"
    assert label(Relation.generic("padrino")) == "padrino"


def test_relation_parse_roundtrip() -> None:
    for rel in (Relation(RelationType.COUSIN), Relation.generic("padrino de boda")):
        assert Relation.parse(str(rel)) == rel
