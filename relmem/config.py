# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Structured configuration.

The schema is a tree of dataclasses turned into an OmegaConf structured
config, so YAML files and ``key=value`` overrides are type-checked on
merge. ``store.db_path`` defaults to ``$RELMEM_DB`` and falls back to an
in-memory database.

Examples
--------
>>> cfg = load_config(overrides=["graph.max_hops=2", "store.backend=memory"])
>>> cfg.graph.max_hops, cfg.store.backend
(2, 'memory')
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from omegaconf import DictConfig, OmegaConf
from omegaconf.errors import OmegaConfBaseException

from relmem.relational.inference import MAX_HOPS
from relmem.relational.schema import Category

BACKENDS = ("sqlite", "memory")


@dataclass
class GraphConfig:
    max_hops: int = MAX_HOPS
    fold_diacritics: bool = True
    self_aliases: List[str] = field(default_factory=list)
    inverse_categories: List[str] = field(default_factory=lambda: ["family", "social"])


@dataclass
class StoreConfig:
    backend: str = "sqlite"  # {"sqlite","memory"}
    db_path: str = '${oc.env:RELMEM_DB,":memory:"}'


@dataclass
class RelMemConfig:
    """Top-level configuration."""

    log_level: str = "INFO"
    graph: GraphConfig = field(default_factory=GraphConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    provenance_dir: Optional[str] = None


def validate(cfg: DictConfig) -> None:
    """Raise ``ValueError`` when ``cfg`` holds an unusable value."""

    hops = cfg.graph.max_hops
    if not 1 <= hops <= MAX_HOPS:
        raise ValueError(f"graph.max_hops must be between 1 and {MAX_HOPS}, got {hops}")
    if cfg.store.backend not in BACKENDS:
        raise ValueError(f"store.backend must be one of {BACKENDS}, got {cfg.store.backend!r}")
    categories = set()
    for cat in cfg.graph.inverse_categories:
        try:
            categories.add(Category(cat))
        except ValueError as exc:
            raise ValueError(f"unknown category in graph.inverse_categories: {cat!r}") from exc
    if Category.FAMILY not in categories:
        raise ValueError("graph.inverse_categories must include 'family'")
    if not isinstance(logging.getLevelName(str(cfg.log_level).upper()), int):
        raise ValueError(f"unknown log_level: {cfg.log_level!r}")


def load_config(
    path: Optional[str | Path] = None, overrides: Sequence[str] = ()
) -> DictConfig:
    """Return the merged configuration.

    Parameters
    ----------
    path : str | Path, optional
        YAML file merged over the defaults.
    overrides : Sequence[str], optional
        Dotlist ``key=value`` entries applied last.

    Raises
    ------
    ValueError
        On unknown keys, wrongly typed or out-of-range values.
    """

    cfg = OmegaConf.structured(RelMemConfig)
    try:
        if path is not None:
            cfg = OmegaConf.merge(cfg, OmegaConf.load(path))
        if overrides:
            cfg = OmegaConf.merge(cfg, OmegaConf.from_dotlist(list(overrides)))
    except OmegaConfBaseException as exc:
        raise ValueError(f"invalid configuration: {exc}") from exc
    validate(cfg)
    return cfg  # type: ignore[return-value]


__all__ = ["GraphConfig", "StoreConfig", "RelMemConfig", "load_config", "validate", "BACKENDS"]
