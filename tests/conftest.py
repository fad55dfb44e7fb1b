"""Pytest configuration for path setup and shared fixtures."""

import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parent.parent))

from relmem.relational.kg import GraphStore  # noqa: E402
from relmem.relational.memory import RelationshipMemory  # noqa: E402


@pytest.fixture
def store() -> GraphStore:
    return GraphStore()


@pytest.fixture
def memory() -> RelationshipMemory:
    return RelationshipMemory()
