# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Relation vocabulary, inverse table and normalizer.

Summary
-------
Canonical relations form a closed :class:`RelationType` enumeration with a
``generic`` escape hatch carrying the raw label. Everything the rest of
the package needs to know about a relation lives in the static
:data:`RELATIONS` table: its :class:`Category`, its inverse, its Spanish
surface labels and the keyword terms that recognise it in raw labels.
Adding a relation means adding an enum member and a table row.

An edge ``(s, r, o)`` reads "``s`` is ``r`` of ``o``": ``("yo", "hijo",
"encarna")`` says the user is Encarna's child, so its inverse is
``("encarna", parent, "yo")``.

Complexity
----------
Normalization is ``O(#terms)`` per raw label.

Examples
--------
>>> n = RelationNormalizer()
>>> n.normalize("esposa").relation
Relation(type=<RelationType.SPOUSE: 'spouse'>, name=None)
>>> n.normalize("padrino").category
<Category.OTHER: 'other'>
>>> inverse(Relation(RelationType.PARENT)).type
<RelationType.CHILD: 'child'>

See Also
--------
relmem.relational.inference : Composition rules over these relations.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Mapping, NamedTuple, Optional, Tuple

from .entities import normalize_text


class Category(str, Enum):
    """Coarse relation classes, in normalizer priority order."""

    FAMILY = "family"
    SOCIAL = "social"
    PROFESSIONAL = "professional"
    LOCATION = "location"
    POSSESSION = "possession"
    OTHER = "other"


class RelationType(str, Enum):
    """Closed set of canonical relations."""

    SPOUSE = "spouse"
    PARTNER = "partner"
    SIBLING = "sibling"
    PARENT = "parent"
    CHILD = "child"
    GRANDPARENT = "grandparent"
    GRANDCHILD = "grandchild"
    AUNT_UNCLE = "aunt_uncle"
    NIECE_NEPHEW = "niece_nephew"
    COUSIN = "cousin"
    SIBLING_IN_LAW = "sibling_in_law"
    PARENT_IN_LAW = "parent_in_law"
    CHILD_IN_LAW = "child_in_law"
    FRIEND = "friend"
    NEIGHBOR = "neighbor"
    ACQUAINTANCE = "acquaintance"
    BOSS = "boss"
    EMPLOYEE = "employee"
    COLLEAGUE = "colleague"
    WORKS_AT = "works_at"
    EMPLOYER = "employer"
    RESIDES_IN = "resides_in"
    RESIDENCE_OF = "residence_of"
    OWNER = "owner"
    BELONGS_TO = "belongs_to"
    GENERIC = "generic"


_GENERIC_PREFIX = "generic:"


@dataclass(frozen=True)
class Relation:
    """Canonical relation label.

    ``name`` is only set for :attr:`RelationType.GENERIC` and holds the raw
    label that matched no vocabulary term.
    """

    type: RelationType
    name: Optional[str] = None

    @classmethod
    def generic(cls, name: str) -> "Relation":
        return cls(RelationType.GENERIC, name)

    @classmethod
    def parse(cls, tag: str) -> "Relation":
        """Inverse of ``str(relation)``."""

        if tag.startswith(_GENERIC_PREFIX):
            return cls.generic(tag[len(_GENERIC_PREFIX) :])
        return cls(RelationType(tag))

    @property
    def is_generic(self) -> bool:
        return self.type is RelationType.GENERIC

    @property
    def category(self) -> Category:
        return RELATIONS[self.type].category

    def __str__(self) -> str:
        if self.is_generic:
            return f"{_GENERIC_PREFIX}{self.name or ''}"
        return self.type.value


@dataclass(frozen=True)
class RelationSpec:
    """Static facts about one :class:`RelationType`.

    Parameters
    ----------
    category : Category
        Coarse class; decides inverse insertion.
    inverse : RelationType
        Relation seen from the other endpoint.
    labels : tuple[str, str, str]
        Spanish masculine, feminine and neutral surface forms.
    terms : Mapping[str, tuple[str, ...]]
        Recognised raw terms keyed by grammatical gender ``"m"``, ``"f"``
        or ``"n"``.
    """

    category: Category
    inverse: RelationType
    labels: Tuple[str, str, str]
    terms: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)


R = RelationType
C = Category

RELATIONS: Dict[RelationType, RelationSpec] = {
    # family
    R.SPOUSE: RelationSpec(
        C.FAMILY,
        R.SPOUSE,
        ("esposo", "esposa", "cónyuge"),
        {
            "m": ("esposo", "marido", "husband"),
            "f": ("esposa", "mujer", "wife"),
            "n": ("cónyuge", "esposos", "spouse", "casado con", "casada con", "married to"),
        },
    ),
    R.PARTNER: RelationSpec(
        C.FAMILY,
        R.PARTNER,
        ("novio", "novia", "pareja"),
        {
            "m": ("novio", "boyfriend", "prometido"),
            "f": ("novia", "girlfriend", "prometida"),
            "n": ("pareja", "partner"),
        },
    ),
    R.SIBLING: RelationSpec(
        C.FAMILY,
        R.SIBLING,
        ("hermano", "hermana", "hermano/a"),
        {
            "m": ("hermano", "medio hermano", "brother"),
            "f": ("hermana", "media hermana", "sister"),
            "n": ("hermanos", "hermanas", "sibling", "siblings"),
        },
    ),
    R.PARENT: RelationSpec(
        C.FAMILY,
        R.CHILD,
        ("padre", "madre", "padre/madre"),
        {
            "m": ("padre", "papá", "father", "dad"),
            "f": ("madre", "mamá", "mother", "mom"),
            "n": ("padres", "progenitor", "parent"),
        },
    ),
    R.CHILD: RelationSpec(
        C.FAMILY,
        R.PARENT,
        ("hijo", "hija", "hijo/a"),
        {
            "m": ("hijo", "son"),
            "f": ("hija", "daughter"),
            "n": ("hijos", "hijas", "child", "children"),
        },
    ),
    R.GRANDPARENT: RelationSpec(
        C.FAMILY,
        R.GRANDCHILD,
        ("abuelo", "abuela", "abuelo/a"),
        {
            "m": ("abuelo", "grandfather", "grandpa"),
            "f": ("abuela", "grandmother", "grandma"),
            "n": ("abuelos", "grandparent"),
        },
    ),
    R.GRANDCHILD: RelationSpec(
        C.FAMILY,
        R.GRANDPARENT,
        ("nieto", "nieta", "nieto/a"),
        {
            "m": ("nieto", "grandson"),
            "f": ("nieta", "granddaughter"),
            "n": ("nietos", "grandchild"),
        },
    ),
    R.AUNT_UNCLE: RelationSpec(
        C.FAMILY,
        R.NIECE_NEPHEW,
        ("tío", "tía", "tío/a"),
        {"m": ("tío", "uncle"), "f": ("tía", "aunt"), "n": ("tíos",)},
    ),
    R.NIECE_NEPHEW: RelationSpec(
        C.FAMILY,
        R.AUNT_UNCLE,
        ("sobrino", "sobrina", "sobrino/a"),
        {"m": ("sobrino", "nephew"), "f": ("sobrina", "niece"), "n": ("sobrinos",)},
    ),
    R.COUSIN: RelationSpec(
        C.FAMILY,
        R.COUSIN,
        ("primo", "prima", "primo/a"),
        {"m": ("primo",), "f": ("prima",), "n": ("primos", "cousin")},
    ),
    R.SIBLING_IN_LAW: RelationSpec(
        C.FAMILY,
        R.SIBLING_IN_LAW,
        ("cuñado", "cuñada", "cuñado/a"),
        {
            "m": ("cuñado", "brother in law"),
            "f": ("cuñada", "sister in law"),
            "n": ("cuñados", "sibling in law"),
        },
    ),
    R.PARENT_IN_LAW: RelationSpec(
        C.FAMILY,
        R.CHILD_IN_LAW,
        ("suegro", "suegra", "suegro/a"),
        {
            "m": ("suegro", "father in law"),
            "f": ("suegra", "mother in law"),
            "n": ("suegros", "parent in law"),
        },
    ),
    R.CHILD_IN_LAW: RelationSpec(
        C.FAMILY,
        R.PARENT_IN_LAW,
        ("yerno", "nuera", "yerno/nuera"),
        {
            "m": ("yerno", "son in law"),
            "f": ("nuera", "daughter in law"),
            "n": ("child in law",),
        },
    ),
    # social
    R.FRIEND: RelationSpec(
        C.SOCIAL,
        R.FRIEND,
        ("amigo", "amiga", "amigo/a"),
        {"m": ("amigo",), "f": ("amiga",), "n": ("amigos", "amigas", "friend")},
    ),
    R.NEIGHBOR: RelationSpec(
        C.SOCIAL,
        R.NEIGHBOR,
        ("vecino", "vecina", "vecino/a"),
        {"m": ("vecino",), "f": ("vecina",), "n": ("vecinos", "neighbor", "neighbour")},
    ),
    R.ACQUAINTANCE: RelationSpec(
        C.SOCIAL,
        R.ACQUAINTANCE,
        ("conocido", "conocida", "conocido/a"),
        {"m": ("conocido",), "f": ("conocida",), "n": ("acquaintance",)},
    ),
    # professional
    R.BOSS: RelationSpec(
        C.PROFESSIONAL,
        R.EMPLOYEE,
        ("jefe", "jefa", "jefe/a"),
        {"m": ("jefe", "supervisor"), "f": ("jefa", "supervisora"), "n": ("boss", "manager")},
    ),
    R.EMPLOYEE: RelationSpec(
        C.PROFESSIONAL,
        R.BOSS,
        ("empleado", "empleada", "empleado/a"),
        {
            "m": ("empleado", "subordinado"),
            "f": ("empleada", "subordinada"),
            "n": ("employee",),
        },
    ),
    R.COLLEAGUE: RelationSpec(
        C.PROFESSIONAL,
        R.COLLEAGUE,
        ("compañero de trabajo", "compañera de trabajo", "colega"),
        {
            "m": ("compañero de trabajo",),
            "f": ("compañera de trabajo",),
            "n": ("colega", "colleague", "coworker"),
        },
    ),
    R.WORKS_AT: RelationSpec(
        C.PROFESSIONAL,
        R.EMPLOYER,
        ("empleado", "empleada", "trabajador/a"),
        {
            "n": (
                "trabaja en",
                "trabaja para",
                "trabajo en",
                "trabajo para",
                "trabajo",
                "works at",
                "works for",
            ),
        },
    ),
    R.EMPLOYER: RelationSpec(
        C.PROFESSIONAL,
        R.WORKS_AT,
        ("empleador", "empleadora", "lugar de trabajo"),
        {"m": ("empleador",), "f": ("empleadora",), "n": ("employer",)},
    ),
    # location
    R.RESIDES_IN: RelationSpec(
        C.LOCATION,
        R.RESIDENCE_OF,
        ("residente", "residente", "residente"),
        {"n": ("vive en", "reside en", "vivo en", "lives in", "resides in", "residente")},
    ),
    R.RESIDENCE_OF: RelationSpec(
        C.LOCATION,
        R.RESIDES_IN,
        ("lugar de residencia", "lugar de residencia", "lugar de residencia"),
        {"n": ("lugar de residencia", "residence of", "hogar de")},
    ),
    # possession
    R.OWNER: RelationSpec(
        C.POSSESSION,
        R.BELONGS_TO,
        ("propietario", "propietaria", "propietario/a"),
        {
            "m": ("propietario", "dueño"),
            "f": ("propietaria", "dueña"),
            "n": ("tiene", "posee", "owner", "owns", "has"),
        },
    ),
    R.BELONGS_TO: RelationSpec(
        C.POSSESSION,
        R.OWNER,
        ("posesión", "posesión", "posesión"),
        {"n": ("pertenece a", "pertenece", "belongs to", "propiedad de")},
    ),
    R.GENERIC: RelationSpec(C.OTHER, R.GENERIC, ("", "", "")),
}

del R, C

NORMALIZER_ORDER: Tuple[Category, ...] = (
    Category.FAMILY,
    Category.SOCIAL,
    Category.PROFESSIONAL,
    Category.LOCATION,
    Category.POSSESSION,
)

INVERSE_CATEGORIES: frozenset[Category] = frozenset({Category.FAMILY, Category.SOCIAL})


def inverse(relation: Relation) -> Relation:
    """Return ``relation`` as seen from the other endpoint.

    Relations without a known inverse, ``generic`` included, map to
    themselves; this is a simplification, not a claim of symmetry.
    """

    if relation.is_generic:
        return relation
    return Relation(RELATIONS[relation.type].inverse)


def label(relation: Relation, gender: Optional[str] = None) -> str:
    """Return the Spanish surface form of ``relation`` for ``gender``."""

    if relation.is_generic:
        return relation.name or ""
    masc, fem, neutral = RELATIONS[relation.type].labels
    if gender == "m":
        return masc
    if gender == "f":
        return fem
    return neutral


class NormalizedRelation(NamedTuple):
    """Result of :meth:`RelationNormalizer.normalize`."""

    relation: Relation
    category: Category
    gender: Optional[str]


_SEPARATORS = re.compile(r"[_\-/]+")


class RelationNormalizer:
    """Keyword matcher from raw labels to canonical relations.

    Summary
    -------
    Folds case and diacritics, treats ``_``/``-`` as spaces and looks for
    vocabulary terms on token boundaries. Categories are tried in
    :data:`NORMALIZER_ORDER`; the first category with any hit wins and,
    inside it, the longest hit wins so "brother in law" beats "brother".

    Parameters
    ----------
    table : Mapping[RelationType, RelationSpec], optional
        Vocabulary; defaults to :data:`RELATIONS`.
    fold_diacritics : bool, optional
        Match "tía" and "tia" alike.
    """

    def __init__(
        self,
        table: Optional[Mapping[RelationType, RelationSpec]] = None,
        *,
        fold_diacritics: bool = True,
    ) -> None:
        self.table = dict(table or RELATIONS)
        self.fold_diacritics = fold_diacritics
        self._terms: Dict[Category, List[Tuple[str, RelationType, Optional[str]]]] = {
            cat: [] for cat in NORMALIZER_ORDER
        }
        for rel_type, spec in self.table.items():
            if spec.category not in self._terms:
                continue
            for gender, terms in spec.terms.items():
                for term in terms:
                    key = self._clean(term)
                    if key:
                        self._terms[spec.category].append(
                            (key, rel_type, gender if gender in ("m", "f") else None)
                        )
        for entries in self._terms.values():
            entries.sort(key=lambda e: len(e[0]), reverse=True)

    def _clean(self, raw: str) -> str:
        text = normalize_text(raw, fold_diacritics=self.fold_diacritics)
        return " ".join(_SEPARATORS.sub(" ", text).split())

    def normalize(self, raw: Optional[str]) -> NormalizedRelation:
        """Return the canonical relation, category and gender for ``raw``.

        Never raises: unmatched labels become ``Generic(raw)`` in
        :attr:`Category.OTHER`, keeping the cleaned raw text as the name.
        """

        text = self._clean(raw or "")
        padded = f" {text} "
        for category in NORMALIZER_ORDER:
            for term, rel_type, gender in self._terms[category]:
                if f" {term} " in padded:
                    return NormalizedRelation(Relation(rel_type), category, gender)
        return NormalizedRelation(Relation.generic(text), Category.OTHER, None)

    def category(self, relation: Relation) -> Category:
        return self.table[relation.type].category

    def inverse(self, relation: Relation) -> Relation:
        if relation.is_generic:
            return relation
        return Relation(self.table[relation.type].inverse)


__all__ = [
    "Category",
    "RelationType",
    "Relation",
    "RelationSpec",
    "RELATIONS",
    "NORMALIZER_ORDER",
    "INVERSE_CATEGORIES",
    "NormalizedRelation",
    "RelationNormalizer",
    "inverse",
    "label",
]
