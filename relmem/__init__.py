# Copyright (c) 2025 Arne Deutsch, itemis AG, MIT License
"""Per-user relationship knowledge graph with path-based inference."""

__all__ = ["__version__"]
__version__ = "0.1.0"
