import pytest

from relmem.config import load_config


def test_defaults() -> None:
    cfg = load_config()
    assert cfg.graph.max_hops == 3
    assert cfg.graph.fold_diacritics is True
    assert list(cfg.graph.inverse_categories) == ["family", "social"]
    assert cfg.store.backend == "sqlite"
    assert cfg.provenance_dir is None


def test_db_path_from_environment(monkeypatch) -> None:
    monkeypatch.delenv("RELMEM_DB", raising=False)
    assert load_config().store.db_path == ":memory:"
    monkeypatch.setenv("RELMEM_DB", "/tmp/graph.db")
    assert load_config().store.db_path == "/tmp/graph.db"


def test_yaml_file_then_overrides(tmp_path) -> None:
    path = tmp_path / "relmem.yaml"
    path.write_text("graph:\n  max_hops: 2\nstore:\n  backend: memory\n", encoding="utf-8")
    cfg = load_config(path, ["graph.max_hops=1"])
    assert cfg.graph.max_hops == 1
    assert cfg.store.backend == "memory"


@pytest.mark.parametrize(
    "override",
    [
        "graph.max_hops=4",
        "graph.max_hops=0",
        "store.backend=redis",
        "graph.inverse_categories=[family,cousins]",
        "graph.inverse_categories=[]",
        "graph.inverse_categories=[social]",
        "graph.max_hops=many",
        "graph.unknown=1",
        "log_level=LOUD",
    ],
)
def test_invalid_values_raise(override: str) -> None:
    with pytest.raises(ValueError):
        load_config(overrides=[override])
