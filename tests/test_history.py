import json
from concurrent.futures import ThreadPoolExecutor

from honest_analyst.history import HistoryStore, migrate_record
from honest_analyst.state import AnalysisReport


def _report(topic):
    return AnalysisReport(topic=topic, original_query=topic)


def test_missing_file_is_empty_history(tmp_path):
    assert HistoryStore(tmp_path / "none.json").load() == ()


def test_save_and_load(tmp_path, two_hypothesis_report):
    store = HistoryStore(tmp_path / "history.json")

    store.save([two_hypothesis_report])
    (loaded,) = store.load()

    assert loaded == two_hypothesis_report


def test_add_prepends_and_caps(tmp_path):
    store = HistoryStore(tmp_path / "history.json", limit=3)
    history = ()
    for i in range(5):
        history = store.add(history, _report(f"t{i}"))

    assert [r.topic for r in history] == ["t4", "t3", "t2"]


def test_save_caps_at_limit(tmp_path):
    store = HistoryStore(tmp_path / "history.json", limit=2)
    store.save([_report("a"), _report("b"), _report("c")])

    assert [r.topic for r in store.load()] == ["a", "b"]


def test_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")

    assert HistoryStore(path).load() == ()


def test_invalid_records_are_skipped(tmp_path):
    path = tmp_path / "history.json"
    path.write_text(json.dumps([{"no_topic": True}, "junk", {"topic": "ok", "original_query": "ok"}]), encoding="utf-8")

    assert [r.topic for r in HistoryStore(path).load()] == ["ok"]


def test_legacy_evidence_matrix_becomes_single_cluster():
    legacy = {
        "topic": "old topic",
        "evidence_matrix": [{"id": "e1", "description": "old fact", "source": "Archive", "lrs": {"H1": 2.0}}],
    }

    migrated = AnalysisReport(**migrate_record(legacy))

    (cluster,) = migrated.evidence_clusters
    assert cluster.id == "legacy_cluster"
    assert cluster.name == "Legacy Evidence Set"
    assert cluster.items[0].description == "old fact"
    assert migrated.original_query == "old topic"
    assert migrated.rubric_assessment.total_score == 0
    assert migrated.rubric_assessment.evidence_handling.justification == "Legacy report - Rubric not available."


def test_current_records_are_left_alone(two_hypothesis_report):
    record = two_hypothesis_report.model_dump(mode="json")
    assert AnalysisReport(**migrate_record(record)) == two_hypothesis_report


def test_clear(tmp_path):
    store = HistoryStore(tmp_path / "history.json")
    store.save([_report("a")])
    store.clear()
    assert store.load() == ()


def test_record_prepends_and_persists(tmp_path):
    store = HistoryStore(tmp_path / "history.json", limit=3)
    store.save([_report("old")])

    history = store.record(_report("new"))

    assert [r.topic for r in history] == ["new", "old"]
    assert [r.topic for r in store.load()] == ["new", "old"]


def test_concurrent_records_are_all_kept(tmp_path):
    store = HistoryStore(tmp_path / "history.json", limit=50)
    topics = [f"t{i}" for i in range(20)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(lambda t: store.record(_report(t)), topics))

    assert sorted(r.topic for r in store.load()) == sorted(topics)
