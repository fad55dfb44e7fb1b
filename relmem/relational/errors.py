# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Exception types raised by the relationship graph."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .kg import Edge


class RelationalMemoryError(Exception):
    """Base class for relationship graph errors."""


class InvalidEdgeError(RelationalMemoryError, ValueError):
    """A triple is structurally invalid after canonicalization.

    ``reason`` is a short tag such as ``"empty_subject"`` or ``"self_loop"``.
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or reason)
        self.reason = reason


class GraphCorruptionError(RelationalMemoryError, RuntimeError):
    """A write would leave a family/social edge without its inverse."""

    def __init__(self, missing: Sequence["Edge"]) -> None:
        preview = ", ".join(f"({e.subject}, {e.relation}, {e.object})" for e in missing[:3])
        super().__init__(f"inverse edges missing for {len(missing)} edge(s): {preview}")
        self.missing = list(missing)


__all__ = ["RelationalMemoryError", "InvalidEdgeError", "GraphCorruptionError"]
