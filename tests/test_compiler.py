from cost_analyzer.agent.orchestration.compiler import CompilerAgent
from cost_analyzer.storage.artifact_store import ArtifactLocation
from cost_analyzer.storage.schema import (
    InvestigationStep,
    RankedSubject,
    StepResult,
    StepStatus,
)

from conftest import FakeAgent


def make_result(store, title, subject, status=StepStatus.COMPLETED, narrative="Looks fine.", chart=False):
    step = InvestigationStep(title=title, subject=subject, sub_category="us-east-1", tools=["toolX"])
    artifacts = []
    if chart:
        location = ArtifactLocation("exec-1", f"{subject}-us-east-1", "toolX", f"call-{subject}")
        artifacts.append(store.write_chart(location, b"png"))
    return StepResult(
        subject=RankedSubject(name=subject, sub_category="us-east-1", magnitude=10.0),
        step=step,
        status=status,
        narrative=narrative,
        artifacts=artifacts,
        execution_id="exec-1",
    )


def test_synthesis_uses_model_narrative(store):
    agent = FakeAgent(synthesis="EC2 dominates spend.")
    results = [
        make_result(store, "EC2 review", "EC2", narrative="EC2 is growing.", chart=True),
        make_result(store, "S3 review", "S3", status=StepStatus.FAILED, narrative="Step failed: boom"),
    ]

    report = CompilerAgent(agent, store).compile(results, "exec-1")

    assert report.narrative == "EC2 dominates spend."
    assert not report.used_fallback
    assert [e.title for e in report.entries] == ["EC2 review", "S3 review"]

    prompt = agent.completions[0]["prompt"]
    assert "EC2 is growing." in prompt
    assert "./EC2-us-east-1/toolX/call-EC2-chart.png" in prompt
    assert "S3 review\nStatus: failed" in prompt
    assert "boom" not in prompt


def test_synthesis_failure_falls_back_to_template(store):
    agent = FakeAgent(synthesis=RuntimeError("model unavailable"))
    compiler = CompilerAgent(agent, store)
    results = [
        make_result(store, "EC2 review", "EC2", chart=True),
        make_result(store, "S3 review", "S3", status=StepStatus.FAILED),
    ]

    report = compiler.compile(results, "exec-1")

    assert report.used_fallback
    assert report.narrative == compiler.fallback_narrative(results, "exec-1")
    assert report.narrative.splitlines() == [
        "1. **EC2 review** - completed",
        "   - [chart: toolX](./EC2-us-east-1/toolX/call-EC2-chart.png)",
        "2. **S3 review** - failed",
    ]


def test_empty_synthesis_falls_back(store):
    report = CompilerAgent(FakeAgent(synthesis="   "), store).compile(
        [make_result(store, "EC2 review", "EC2")], "exec-1"
    )
    assert report.used_fallback


def test_no_successful_steps_skips_the_model(store):
    agent = FakeAgent()
    results = [make_result(store, "EC2 review", "EC2", status=StepStatus.FAILED)]

    report = CompilerAgent(agent, store).compile(results, "exec-1")

    assert report.used_fallback
    assert agent.completions == []
    assert "EC2 review" in report.narrative


def test_no_steps_at_all(store):
    report = CompilerAgent(FakeAgent(), store).compile([], "exec-1")
    assert report.entries == []
    assert report.narrative == "No analysis steps were executed."
    assert not report.used_fallback
