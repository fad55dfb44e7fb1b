# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Entity canonicalization.

Summary
-------
Turns raw entity mentions into stable per-user keys: case-folded, trimmed,
whitespace-collapsed and, optionally, stripped of diacritics so that
"María" and "maria" meet in one node. First-person mentions ("yo", "me",
"mi", ...) resolve to the distinguished :data:`SELF` entity.

Two different people sharing a name ("Juan" the brother and "Juan" the
colleague) collapse into one entity; no disambiguation is attempted.

Examples
--------
>>> c = Canonicalizer()
>>> c.canonicalize("u1", "  María  José ")
'maria jose'
>>> c.canonicalize("u1", "Yo") == SELF
True
"""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional

SELF = "@self"

FIRST_PERSON = frozenset(
    {"yo", "me", "mi", "mí", "mío", "mía", "conmigo", "i", "myself"}
)

_WS = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    """Remove combining marks, keeping ``ñ`` distinct from ``n``."""

    out = []
    for ch in unicodedata.normalize("NFD", text):
        if unicodedata.combining(ch):
            # why: "año" and "ano" are different words
            if ch == "\u0303" and out and out[-1] in "nN":
                out[-1] = "ñ" if out[-1] == "n" else "Ñ"
            continue
        out.append(ch)
    return unicodedata.normalize("NFC", "".join(out))


def normalize_text(text: Optional[str], *, fold_diacritics: bool = True) -> str:
    """Lower-case, trim and collapse whitespace in ``text``."""

    if not text:
        return ""
    text = unicodedata.normalize("NFC", str(text)).lower()
    if fold_diacritics:
        text = strip_diacritics(text)
    # why: folding can drop marks that stood between spaces
    return _WS.sub(" ", text).strip()


def display_name(raw: Optional[str]) -> str:
    """Return ``raw`` trimmed with collapsed whitespace, original casing kept."""

    if not raw:
        return ""
    return _WS.sub(" ", unicodedata.normalize("NFC", str(raw))).strip()


class Canonicalizer:
    """Map raw mentions to canonical entity keys.

    Parameters
    ----------
    fold_diacritics : bool, optional
        Collapse accent-only variants into one key.
    self_aliases : Iterable[str], optional
        Extra mentions that denote the conversation owner.
    """

    def __init__(self, *, fold_diacritics: bool = True, self_aliases: Iterable[str] = ()) -> None:
        self.fold_diacritics = fold_diacritics
        aliases = set(FIRST_PERSON) | {a for a in self_aliases if a}
        self._self_aliases = frozenset(
            normalize_text(a, fold_diacritics=fold_diacritics) for a in aliases
        )

    def canonicalize(self, user_id: str, raw: Optional[str]) -> str:
        """Return the canonical key for ``raw`` within ``user_id``'s graph.

        Keys are already scoped by the per-user graph that holds them, so
        ``user_id`` does not change the result; it is accepted so callers
        can treat canonicalization as a per-user operation. Never raises;
        empty input yields ``""``.
        """

        if raw is None:
            return ""
        if str(raw).strip() == SELF:
            return SELF
        key = normalize_text(raw, fold_diacritics=self.fold_diacritics)
        if key in self._self_aliases:
            return SELF
        return key

    def is_self(self, user_id: str, raw: Optional[str]) -> bool:
        return self.canonicalize(user_id, raw) == SELF


__all__ = [
    "SELF",
    "FIRST_PERSON",
    "Canonicalizer",
    "display_name",
    "normalize_text",
    "strip_diacritics",
]
