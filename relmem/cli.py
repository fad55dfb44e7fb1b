# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Command line interface for the relationship memory.

Every command prints one JSON document on stdout. With a durable
``store.db_path`` (``--set store.db_path=graph.db`` or ``$RELMEM_DB``)
successive invocations share the same graphs.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from relmem.config import load_config
from relmem.relational.errors import RelationalMemoryError
from relmem.relational.memory import RelationshipMemory
from relmem.relational.tuples import read_records

_log = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relmem", description="Per-user relationship knowledge graph"
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Config override, e.g. graph.max_hops=2 (repeatable)",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("ingest", help="Store triples from a JSON/JSONL file")
    p.add_argument("--user", required=True)
    p.add_argument("file", type=Path)

    p = sub.add_parser("query", help="How is B related to A?")
    p.add_argument("--user", required=True)
    p.add_argument("a")
    p.add_argument("b")

    p = sub.add_parser("list", help="List stored edges")
    p.add_argument("--user", required=True)
    p.add_argument("--grouped", action="store_true", help="Group stated edges by category")

    p = sub.add_parser("reset", help="Delete a user's graph")
    p.add_argument("--user", required=True)

    p = sub.add_parser("export", help="Write a JSONL snapshot")
    p.add_argument("--user", required=True)
    p.add_argument("--out", type=Path, required=True, help="Output directory")

    p = sub.add_parser("restore", help="Load a JSONL snapshot")
    p.add_argument("--user", required=True)
    p.add_argument("file", type=Path)

    p = sub.add_parser("verify", help="Report edges missing their inverse")
    p.add_argument("--user", required=True)
    return parser


def run(mem: RelationshipMemory, args: argparse.Namespace) -> Any:
    """Execute ``args.command`` against ``mem`` and return a JSON-able result."""

    if args.command == "ingest":
        return mem.ingest(args.user, read_records(args.file)).to_dict()
    if args.command == "query":
        out = mem.query(args.user, args.a, args.b).to_dict()
        if out["found"]:
            out["sentence"] = mem.describe(args.user, args.a, args.b)
        return out
    if args.command == "list":
        if args.grouped:
            return mem.list_grouped(args.user)
        return [edge.to_dict() for edge in mem.list_all(args.user)]
    if args.command == "reset":
        mem.reset(args.user)
        return {"reset": args.user}
    if args.command == "export":
        return {"path": str(mem.export(args.user, args.out))}
    if args.command == "restore":
        return mem.restore(args.user, args.file).to_dict()
    if args.command == "verify":
        missing = mem.verify(args.user)
        return {"ok": not missing, "missing": [edge.to_dict() for edge in missing]}
    raise ValueError(f"unknown command: {args.command}")  # pragma: no cover - argparse guards


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit status."""

    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = load_config(args.config, args.overrides)
    except ValueError as exc:
        parser.error(str(exc))
    logging.basicConfig(level=str(cfg.log_level).upper())
    mem = RelationshipMemory.from_config(cfg)
    try:
        result = run(mem, args)
    except (RelationalMemoryError, OSError, json.JSONDecodeError) as exc:
        _log.error("%s failed: %s", args.command, exc)
        print(json.dumps({"error": type(exc).__name__, "message": str(exc)}, ensure_ascii=False))
        return 1
    print(json.dumps(result, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
