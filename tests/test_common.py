import json
import threading

from relmem.common.decisions import EdgeDecision
from relmem.common.io import atomic_write_jsonl, read_jsonl
from relmem.common.provenance import ProvenanceLogger, log_decisions
from relmem.common.telemetry import TelemetryRegistry


def test_atomic_write_jsonl_no_interleaving(tmp_path):
    file = tmp_path / "edges.jsonl"
    records_a = [{"entity1": "juan", "relation": "sibling"}, {"entity1": "ana"}]
    records_b = [{"entity1": "maría"}, {"entity1": "pedro"}, {"entity1": "eva"}]

    threads = [
        threading.Thread(target=atomic_write_jsonl, args=(file, recs))
        for recs in (records_a, records_b)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    content = file.read_text(encoding="utf-8")
    assert content.endswith("\n")
    # non-ASCII names are written verbatim
    assert "\\u00ed" not in content
    assert list(read_jsonl(file)) in (records_a, records_b)


def test_provenance_logger_appends_records(tmp_path):
    logger = ProvenanceLogger(tmp_path / "prov")
    log_decisions(
        logger,
        "u1",
        [
            EdgeDecision("insert", "new", ("juan", "sibling", "@self")),
            EdgeDecision("reject", "self_loop"),
        ],
    )
    log_decisions(None, "u1", [EdgeDecision("insert", "new")])
    lines = (tmp_path / "prov" / "provenance.ndjson").read_text(encoding="utf-8").splitlines()
    recs = [json.loads(line) for line in lines]
    assert [r["action"] for r in recs] == ["insert", "reject"]
    assert recs[0]["payload"] == {"edge": ["juan", "sibling", "@self"]}
    assert recs[1]["payload"] == {}
    assert all(r["user_id"] == "u1" for r in recs)


def test_telemetry_snapshots_and_reset():
    reg = TelemetryRegistry()
    reg.record_ingest(triples=3, stored=4, duplicates=1, rejected=0, latency_ms=2.0)
    reg.record_query(found=True, path_length=2, latency_ms=1.0)
    reg.record_query(found=False, path_length=0, latency_ms=1.0)
    snap = reg.all_snapshots()
    assert snap["ingest"]["batches"] == 1
    assert snap["ingest"]["stored"] == 4
    assert snap["query"]["not_found"] == 1
    assert snap["query"]["avg_path_length"] == 2.0
    reg.reset()
    assert reg.all_snapshots()["query"]["requests"] == 0
