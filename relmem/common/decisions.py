# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Write-path decision records."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

Action = Literal["insert", "duplicate", "reject"]


@dataclass(frozen=True)
class EdgeDecision:
    """Outcome of offering one edge to the store.

    Parameters
    ----------
    action : str
        ``"insert"``, ``"duplicate"`` or ``"reject"``.
    reason : str
        Short machine-readable explanation such as ``"inverse"`` or
        ``"empty_subject"``.
    edge : tuple[str, str, str] | None, optional
        ``(subject, relation_tag, object)`` when the edge could be built.
    """

    action: Action
    reason: str
    edge: tuple[str, str, str] | None = None


__all__ = ["EdgeDecision", "Action"]
