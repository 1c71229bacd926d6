"""Markdown rendering for step reports and the compiled report

Artifact links are relative to the execution directory the report lives in.
"""

from typing import List

from ...storage.artifact_store import ArtifactStore
from ...storage.schema import (
    ArtifactKind,
    ArtifactReference,
    CompiledReport,
    StepResult,
    StepStatus,
)


def _artifact_lines(
    artifacts: List[ArtifactReference], store: ArtifactStore, execution_id: str
) -> List[str]:
    lines = []
    for artifact in artifacts:
        link = store.link(artifact, execution_id)
        label = f"{artifact.tool_name} ({artifact.call_id})"
        if artifact.kind == ArtifactKind.CHART:
            lines.append(f"![{label}]({link})")
        else:
            lines.append(f"- [{label} data]({link})")
    return lines


def render_step_report(result: StepResult, store: ArtifactStore) -> str:
    """Markdown for a single step, written to {subject}-{report_id}-analysis.md"""
    step = result.step
    lines = [
        f"# {step.title}",
        "",
        f"- **Service:** {step.subject}",
        f"- **Region:** {step.sub_category}",
    ]
    if result.subject.magnitude:
        lines.append(
            f"- **Cost:** ${result.subject.magnitude:.2f} {result.subject.unit} "
            f"({result.subject.period})"
        )
    lines += [
        f"- **Status:** {result.status.value}",
        f"- **Tools:** {', '.join(step.tools) or 'none'}",
        f"- **Execution:** {result.execution_id}",
        "",
        "## Analysis",
        "",
        result.narrative or "_No narrative produced._",
    ]

    if result.tool_calls:
        lines += ["", "## Tool Calls", "", "| Tool | Call | Status |", "| --- | --- | --- |"]
        for call in result.tool_calls:
            lines.append(f"| {call.tool} | {call.call_id} | {call.status.value} |")

    if result.artifacts:
        lines += ["", "## Artifacts", ""]
        lines += _artifact_lines(result.artifacts, store, result.execution_id)

    return "\n".join(lines) + "\n"


def render_compiled_report(report: CompiledReport, store: ArtifactStore) -> str:
    """Markdown for the run's report.md"""
    completed = sum(1 for e in report.entries if e.status == StepStatus.COMPLETED)
    lines = [
        "# AWS Cost Analysis Report",
        "",
        f"- **Execution:** {report.execution_id}",
        f"- **Generated:** {report.generated_at.isoformat()}",
        f"- **Steps:** {len(report.entries)} ({completed} completed)",
    ]
    if report.used_fallback:
        lines.append("- **Note:** model synthesis unavailable; summary compiled from step results")

    lines += ["", "## Summary", "", report.narrative or "_No steps were executed._"]

    if report.entries:
        lines += ["", "## Steps"]
        for entry in report.entries:
            lines += [
                "",
                f"### {entry.title}",
                "",
                f"{entry.subject} ({entry.sub_category}): **{entry.status.value}**",
            ]
            artifact_lines = _artifact_lines(entry.artifacts, store, report.execution_id)
            if artifact_lines:
                lines.append("")
                lines += artifact_lines

    return "\n".join(lines) + "\n"
