import json
from pathlib import Path

from cost_analyzer.storage.artifact_store import ArtifactLocation, ArtifactStore, subject_slug
from cost_analyzer.storage.identifiers import new_call_id, new_execution_id
from cost_analyzer.storage.schema import ArtifactKind


def test_subject_slug_replaces_unsafe_characters():
    """Whitespace and path separators never reach the filesystem."""
    assert subject_slug("Amazon Elastic Compute Cloud - Compute", "us-east-1") == (
        "Amazon_Elastic_Compute_Cloud_-_Compute-us-east-1"
    )
    assert subject_slug("a/b\\c:d", "eu west 1") == "a_b_c_d-eu_west_1"
    assert subject_slug("  ", "") == "unknown-global"


def test_ids_are_unique_and_sortable():
    ids = [new_execution_id() for _ in range(50)]
    assert len(set(ids)) == 50
    prefixes = [i.split("-")[0] for i in ids]
    assert prefixes == sorted(prefixes)
    assert new_call_id() != new_call_id()


def test_paths_derive_from_location_alone(store):
    location = ArtifactLocation("exec-1", "AWS_Lambda-us-east-1", "toolX", "call-1")
    assert location.data_path(store.root) == (
        store.root / "exec-1" / "AWS_Lambda-us-east-1" / "toolX" / "call-1-data.json"
    )
    assert location.chart_path(store.root).name == "call-1-chart.png"


def test_write_data_persists_json_and_returns_reference(store):
    location = ArtifactLocation("exec-1", "S3-us-east-1", "toolX", "call-1")
    ref = store.write_data(location, [{"date": "2026-09-01", "cost": 1.5}])

    assert ref.kind == ArtifactKind.DATA
    assert ref.tool_name == "toolX"
    assert ref.subject == "S3-us-east-1"
    assert ref.execution_id == "exec-1"
    assert ref.call_id == "call-1"
    assert ref.relative_path == "exec-1/S3-us-east-1/toolX/call-1-data.json"
    assert json.loads(Path(ref.path).read_text()) == [{"date": "2026-09-01", "cost": 1.5}]


def test_rewriting_one_call_does_not_touch_another(store):
    """Namespace isolation between call ids of the same tool and subject."""
    a = ArtifactLocation("exec-1", "S3-us-east-1", "toolX", "call-a")
    b = ArtifactLocation("exec-1", "S3-us-east-1", "toolX", "call-b")

    ref_a = store.write_chart(a, b"image-a")
    store.write_chart(b, b"image-b-first")
    store.write_chart(b, b"image-b-second")

    assert Path(ref_a.path).read_bytes() == b"image-a"
    assert b.chart_path(store.root).read_bytes() == b"image-b-second"
    # No temp files are left behind
    leftovers = [p for p in a.directory(store.root).iterdir() if p.name.startswith(".")]
    assert leftovers == []


def test_reports_live_in_execution_directory(store):
    ref = store.write_report("exec-1", "# Report\n")
    assert Path(ref.path) == store.root / "exec-1" / "report.md"
    assert ref.kind == ArtifactKind.REPORT

    step_ref = store.write_step_report("exec-1", "S3-us-east-1", "r1", "# Step\n")
    assert Path(step_ref.path).name == "S3-us-east-1-r1-analysis.md"


def test_step_reports_for_the_same_subject_do_not_collide(store):
    first = store.write_step_report("exec-1", "S3-us-east-1", "r1", "# First\n")
    second = store.write_step_report("exec-1", "S3-us-east-1", "r2", "# Second\n")

    assert first.path != second.path
    assert Path(first.path).read_text() == "# First\n"
    assert Path(second.path).read_text() == "# Second\n"


def test_link_is_relative_to_execution_directory(store):
    location = ArtifactLocation("exec-1", "S3-us-east-1", "toolX", "call-1")
    ref = store.write_chart(location, b"png")

    assert store.link(ref, "exec-1") == "./S3-us-east-1/toolX/call-1-chart.png"
    assert store.link(ref, "exec-2") == "../exec-1/S3-us-east-1/toolX/call-1-chart.png"


def test_list_artifacts_scans_by_execution_prefix(store):
    store.write_data(ArtifactLocation("exec-1", "s", "toolX", "c1"), {"a": 1})
    store.write_chart(ArtifactLocation("exec-1", "s", "toolX", "c1"), b"png")
    store.write_data(ArtifactLocation("exec-2", "s", "toolX", "c2"), {"a": 2})

    names = [p.name for p in store.list_artifacts("exec-1")]
    assert names == ["c1-chart.png", "c1-data.json"]
    assert store.list_artifacts("missing") == []


def test_store_root_is_resolved(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = ArtifactStore("./out")
    assert store.root == (tmp_path / "out").resolve()
