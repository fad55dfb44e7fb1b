import json

import pytest

from relmem import cli


def run(capsys, *argv: str):
    code = cli.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_cli_ingest_query_list_roundtrip(tmp_path, capsys) -> None:
    db = tmp_path / "graph.db"
    facts = tmp_path / "facts.jsonl"
    facts.write_text(
        "\n".join(
            json.dumps(t, ensure_ascii=False)
            for t in [
                {"entity1": "yo", "relation": "hermano", "entity2": "Juan"},
                {"entity1": "María", "relation": "esposa", "entity2": "Juan"},
                {"entity1": "Pedro", "relation": "padrino", "entity2": "yo"},
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    base = ["--set", f"store.db_path={db}"]

    code, out = run(capsys, *base, "ingest", "--user", "u1", str(facts))
    assert code == 0
    assert out["stored"] == 5 and out["rejected"] == 0

    code, out = run(capsys, *base, "query", "--user", "u1", "yo", "María")
    assert out["found"] and out["relation"] == "cuñada"
    assert out["sentence"] == "María es tu cuñada"

    code, out = run(capsys, *base, "list", "--user", "u1", "--grouped")
    assert list(out) == ["family", "other"]

    code, out = run(capsys, *base, "verify", "--user", "u1")
    assert out == {"ok": True, "missing": []}

    code, out = run(capsys, *base, "export", "--user", "u1", "--out", str(tmp_path / "snap"))
    snapshot = out["path"]

    code, out = run(capsys, *base, "reset", "--user", "u1")
    code, out = run(capsys, *base, "list", "--user", "u1")
    assert out == []

    code, out = run(capsys, *base, "restore", "--user", "u1", snapshot)
    assert out["stored"] == 5


def test_cli_reports_missing_file(tmp_path, capsys) -> None:
    code, out = run(
        capsys, "--set", "store.backend=memory", "ingest", "--user", "u1", str(tmp_path / "nope.json")
    )
    assert code == 1
    assert out["error"] == "FileNotFoundError"


def test_cli_rejects_bad_config(capsys) -> None:
    with pytest.raises(SystemExit) as info:
        cli.main(["--set", "graph.max_hops=9", "list", "--user", "u1"])
    assert info.value.code == 2


def test_cli_reports_malformed_snapshot(tmp_path, capsys) -> None:
    snapshot = tmp_path / "broken.jsonl"
    snapshot.write_text(
        json.dumps({"type": "edge", "entity1": "juan", "relation": "tio_abuelo", "entity2": "yo"})
        + "\n",
        encoding="utf-8",
    )
    code, out = run(capsys, "--set", "store.backend=memory", "restore", "--user", "u1", str(snapshot))
    assert code == 1
    assert out["error"] == "InvalidEdgeError"
