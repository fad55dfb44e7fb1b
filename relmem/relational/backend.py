# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Persistence strategies for relationship graphs.

The graph store keeps every user's edges in memory and mirrors writes to a
:class:`PersistenceStrategy`. Backends return edges in insertion order so
that a reloaded graph answers queries exactly as before the restart.
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Protocol, Sequence, Tuple

from relmem.common.sqlite import SQLiteExecMixin

from .schema import Relation

if TYPE_CHECKING:  # pragma: no cover
    from .kg import Edge


class PersistenceStrategy(Protocol):
    """Interface for graph persistence backends."""

    def init_db(self) -> None:
        """Ensure underlying storage is initialized."""

    def load(self, user_id: str) -> List["Edge"]:
        """Return ``user_id``'s edges ordered by ``seq``."""

    def load_names(self, user_id: str) -> Dict[str, str]:
        """Return ``{entity_key: display_name}`` for ``user_id``."""

    def insert(self, edges: Sequence["Edge"], names: Mapping[str, str]) -> List[int]:
        """Atomically store ``edges`` and new ``names``; return their ``seq`` ids."""

    def clear(self, user_id: str) -> None:
        """Delete every edge and name of ``user_id``."""

    def users(self) -> List[str]:
        """Return ids of users with at least one stored edge."""


def _edge_from_row(user_id: str, row: Tuple[Any, ...]) -> "Edge":
    from .kg import Edge

    seq, src, rel, name, dst, gender, derived, hint = row
    relation = Relation.generic(name) if rel == "generic" else Relation.parse(rel)
    return Edge(
        user_id=user_id,
        subject=src,
        relation=relation,
        object=dst,
        gender=gender,
        derived=bool(derived),
        hint=hint,
        seq=int(seq),
    )


class SQLiteBackend(SQLiteExecMixin):
    """SQLite-backed persistence strategy.

    ``db_path`` may be ``":memory:"`` for a process-local store or a file
    path for a durable one.
    """

    def __init__(self, db_path: str = ":memory:") -> None:
        self.db_path = db_path
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self._lock = threading.Lock()

    def init_db(self) -> None:
        with self._lock:
            self.exec(
                """
                CREATE TABLE IF NOT EXISTS nodes (
                    user_id TEXT NOT NULL,
                    key TEXT NOT NULL,
                    name TEXT,
                    PRIMARY KEY (user_id, key)
                )
                """
            )
            self.exec(
                """
                CREATE TABLE IF NOT EXISTS edges (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    src TEXT NOT NULL,
                    relation TEXT NOT NULL,
                    name TEXT NOT NULL DEFAULT '',
                    dst TEXT NOT NULL,
                    gender TEXT,
                    derived INTEGER NOT NULL DEFAULT 0,
                    hint TEXT,
                    created_at TEXT,
                    UNIQUE (user_id, src, relation, name, dst)
                )
                """
            )
            self.exec("CREATE INDEX IF NOT EXISTS idx_edges_user_src ON edges(user_id, src)")

    def load(self, user_id: str) -> List["Edge"]:
        with self._lock:
            rows = self.exec(
                "SELECT id, src, relation, name, dst, gender, derived, hint FROM edges "
                "WHERE user_id=? ORDER BY id",
                (user_id,),
                fetch="all",
            )
        return [_edge_from_row(user_id, row) for row in rows or []]

    def load_names(self, user_id: str) -> Dict[str, str]:
        with self._lock:
            rows = self.exec(
                "SELECT key, name FROM nodes WHERE user_id=?", (user_id,), fetch="all"
            )
        return {key: name for key, name in rows or [] if name}

    def insert(self, edges: Sequence["Edge"], names: Mapping[str, str]) -> List[int]:
        now = datetime.now(timezone.utc).isoformat()
        ids: List[int] = []
        with self._lock:
            # why: one transaction per batch so a failure leaves no partial writes
            with self.conn:
                cur = self.conn.cursor()
                for edge in edges:
                    user_id = edge.user_id
                    rel = edge.relation
                    cur.execute(
                        "INSERT INTO edges(user_id, src, relation, name, dst, gender, derived, hint, created_at) "
                        "VALUES (?,?,?,?,?,?,?,?,?)",
                        (
                            user_id,
                            edge.subject,
                            rel.type.value,
                            rel.name or "",
                            edge.object,
                            edge.gender,
                            int(edge.derived),
                            edge.hint,
                            now,
                        ),
                    )
                    ids.append(int(cur.lastrowid))
                if edges:
                    user_id = edges[0].user_id
                    cur.executemany(
                        "INSERT OR IGNORE INTO nodes(user_id, key, name) VALUES (?, ?, ?)",
                        [(user_id, key, name) for key, name in names.items()],
                    )
        return ids

    def clear(self, user_id: str) -> None:
        with self._lock, self.conn:
            self.conn.execute("DELETE FROM edges WHERE user_id=?", (user_id,))
            self.conn.execute("DELETE FROM nodes WHERE user_id=?", (user_id,))

    def users(self) -> List[str]:
        with self._lock:
            rows = self.exec(
                "SELECT DISTINCT user_id FROM edges ORDER BY user_id", fetch="all"
            )
        return [r[0] for r in rows or []]

    def close(self) -> None:
        with self._lock:
            self.conn.close()


class MemoryBackend:
    """Process-local persistence strategy; nothing survives a restart."""

    def __init__(self) -> None:
        self._edges: Dict[str, List["Edge"]] = {}
        self._names: Dict[str, Dict[str, str]] = {}
        self._seq = 0
        self._lock = threading.Lock()

    def init_db(self) -> None:
        return None

    def load(self, user_id: str) -> List["Edge"]:
        with self._lock:
            return list(self._edges.get(user_id, []))

    def load_names(self, user_id: str) -> Dict[str, str]:
        with self._lock:
            return dict(self._names.get(user_id, {}))

    def insert(self, edges: Sequence["Edge"], names: Mapping[str, str]) -> List[int]:
        with self._lock:
            ids = []
            for edge in edges:
                self._seq += 1
                self._edges.setdefault(edge.user_id, []).append(replace(edge, seq=self._seq))
                ids.append(self._seq)
            if edges:
                stored = self._names.setdefault(edges[0].user_id, {})
                for key, name in names.items():
                    stored.setdefault(key, name)
            return ids

    def clear(self, user_id: str) -> None:
        with self._lock:
            self._edges.pop(user_id, None)
            self._names.pop(user_id, None)

    def users(self) -> List[str]:
        with self._lock:
            return sorted(u for u, edges in self._edges.items() if edges)


def build_backend(kind: str = "sqlite", db_path: str = ":memory:") -> PersistenceStrategy:
    """Return the backend named ``kind``."""

    if kind == "sqlite":
        return SQLiteBackend(db_path)
    if kind == "memory":
        return MemoryBackend()
    raise ValueError(f"Unsupported backend: {kind}")


__all__ = ["PersistenceStrategy", "SQLiteBackend", "MemoryBackend", "build_backend"]
