"""Compiler Agent: cross-subject synthesis of step results"""

import logging
from typing import List

from ...storage.artifact_store import ArtifactStore
from ...storage.schema import CompiledReport, ReportEntry, StepResult
from ..base import BaseAgent

logger = logging.getLogger(__name__)


COMPILER_SYSTEM_PROMPT = """You are an AWS cost analysis expert writing an executive summary for engineering and finance stakeholders."""

COMPILER_PROMPT = """Below are the results of {count} AWS cost analysis steps, each covering one service-region combination.

{sections}

Write a cross-service executive summary in Markdown that:
1. Summarizes where the money goes and the most important cost patterns
2. Prioritizes the optimization opportunities across all services
3. References each service's charts and data files by the paths given above (use Markdown links or images with those exact paths)

Do not invent data that is not in the step analyses.
"""


class CompilerAgent:
    """
    Produces the CompiledReport for a run.

    Never raises for model problems: when synthesis is unavailable the
    deterministic fallback narrative is used instead.
    """

    def __init__(self, agent: BaseAgent, store: ArtifactStore, max_tokens: int = 4000):
        self.agent = agent
        self.store = store
        self.max_tokens = max_tokens

    def compile(self, step_results: List[StepResult], execution_id: str) -> CompiledReport:
        """
        Compile step results into one report.

        Args:
            step_results: Results in plan order
            execution_id: Run identity the report is written under

        Returns:
            CompiledReport (used_fallback set when the model was not used)
        """
        entries = [
            ReportEntry(
                title=result.step.title,
                subject=result.step.subject,
                sub_category=result.step.sub_category,
                status=result.status,
                artifacts=result.artifacts,
                narrative=result.narrative,
            )
            for result in step_results
        ]

        if not step_results:
            logger.info("No steps were executed; nothing to synthesize")
            return CompiledReport(
                execution_id=execution_id,
                narrative=self.fallback_narrative(step_results, execution_id),
            )

        if all(result.failed for result in step_results):
            logger.warning("No successful steps to synthesize; using fallback report")
            return CompiledReport(
                execution_id=execution_id,
                narrative=self.fallback_narrative(step_results, execution_id),
                entries=entries,
                used_fallback=True,
            )

        prompt = self.build_prompt(step_results, execution_id)
        try:
            narrative = self.agent.complete(
                COMPILER_SYSTEM_PROMPT, prompt, max_tokens=self.max_tokens
            )
            if not narrative.strip():
                raise ValueError("empty synthesis")
        except Exception as e:
            logger.error(f"Synthesis failed, using fallback report: {e}")
            return CompiledReport(
                execution_id=execution_id,
                narrative=self.fallback_narrative(step_results, execution_id),
                entries=entries,
                used_fallback=True,
            )

        logger.info(f"Synthesized report for {len(step_results)} steps")
        return CompiledReport(
            execution_id=execution_id, narrative=narrative, entries=entries
        )

    def build_prompt(self, step_results: List[StepResult], execution_id: str) -> str:
        sections = []
        for i, result in enumerate(step_results, start=1):
            header = f"## Step {i}: {result.step.title}"
            if result.failed:
                sections.append(f"{header}\nStatus: failed")
                continue

            lines = [
                header,
                f"Service: {result.step.subject} ({result.step.sub_category})",
                "Status: completed",
                "",
                result.narrative,
            ]
            if result.artifacts:
                lines += ["", "Artifacts:"]
                lines += [
                    f"- {a.kind.value} from {a.tool_name}: {self.store.link(a, execution_id)}"
                    for a in result.artifacts
                ]
            sections.append("\n".join(lines))

        return COMPILER_PROMPT.format(count=len(step_results), sections="\n\n".join(sections))

    def fallback_narrative(self, step_results: List[StepResult], execution_id: str) -> str:
        """Deterministic summary: title, status and artifact links per step"""
        if not step_results:
            return "No analysis steps were executed."

        lines = []
        for i, result in enumerate(step_results, start=1):
            lines.append(f"{i}. **{result.step.title}** - {result.status.value}")
            for artifact in result.artifacts:
                lines.append(
                    f"   - [{artifact.kind.value}: {artifact.tool_name}]"
                    f"({self.store.link(artifact, execution_id)})"
                )
        return "\n".join(lines)
