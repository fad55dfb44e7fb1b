from hypothesis import given
from hypothesis import strategies as st

from relmem.relational.entities import (
    SELF,
    Canonicalizer,
    display_name,
    normalize_text,
    strip_diacritics,
)


def test_canonicalize_folds_case_whitespace_and_accents() -> None:
    c = Canonicalizer()
    assert c.canonicalize("u", "  María   José ") == "maria jose"
    assert c.canonicalize("u", "MARIA JOSE") == "maria jose"


def test_first_person_mentions_map_to_self() -> None:
    c = Canonicalizer()
    for raw in ("yo", "Yo", " ME ", "mí", "mi", "@self"):
        assert c.canonicalize("u", raw) == SELF
    assert c.is_self("u", "Conmigo")
    assert not c.is_self("u", "juan")


def test_custom_self_alias() -> None:
    c = Canonicalizer(self_aliases=["Arne"])
    assert c.canonicalize("u", "arne") == SELF


def test_empty_input_never_raises() -> None:
    c = Canonicalizer()
    assert c.canonicalize("u", None) == ""
    assert c.canonicalize("u", "   ") == ""


def test_accent_folding_can_be_disabled() -> None:
    c = Canonicalizer(fold_diacritics=False)
    assert c.canonicalize("u", "María") == "maría"
    assert c.canonicalize("u", "Maria") == "maria"


def test_strip_diacritics_keeps_enye() -> None:
    assert strip_diacritics("Muñoz Pérez") == "Muñoz Perez"
    assert normalize_text("AÑO") == "año"


def test_display_name_keeps_casing() -> None:
    assert display_name("  María   José ") == "María José"
    assert display_name(None) == ""


@given(st.text(max_size=30))
def test_canonicalize_is_idempotent(raw: str) -> None:
    c = Canonicalizer()
    key = c.canonicalize("u", raw)
    assert c.canonicalize("u", key) == key
