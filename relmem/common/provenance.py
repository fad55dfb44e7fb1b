# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Structured logging for edge decisions."""

from __future__ import annotations

import json
import threading
import time
from pathlib import Path
from typing import Any, Dict, Iterable

from .decisions import EdgeDecision


class ProvenanceLogger:
    """Append edge decisions to a line-delimited JSON file."""

    def __init__(self, outdir: str | Path) -> None:
        """Create a logger writing to ``outdir/provenance.ndjson``."""

        self.path = Path(outdir) / "provenance.ndjson"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(
        self,
        *,
        user_id: str,
        action: str,
        reason: str,
        payload: Dict[str, Any] | None = None,
    ) -> None:
        """Append a record with ``payload`` and metadata."""

        rec = {
            "ts": time.time(),
            "user_id": user_id,
            "action": action,
            "reason": reason,
            "payload": payload or {},
        }
        with self._lock, self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")


def log_decisions(
    logger: "ProvenanceLogger | None",
    user_id: str,
    decisions: Iterable[EdgeDecision],
) -> None:
    """Log each of ``decisions`` to ``logger`` if provided."""

    if logger is None:
        return
    for decision in decisions:
        payload = {}
        if decision.edge is not None:
            payload["edge"] = list(decision.edge)
        logger.log(
            user_id=user_id,
            action=decision.action,
            reason=decision.reason,
            payload=payload,
        )


__all__ = ["ProvenanceLogger", "log_decisions"]
