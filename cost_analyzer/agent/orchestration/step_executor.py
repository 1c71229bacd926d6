"""Step Orchestrator: runs one investigation step through the tool-calling loop"""

import logging
import re
from typing import Iterable, List, Optional

from ...context import RunContext
from ...storage.artifact_store import ArtifactStore, subject_slug
from ...storage.identifiers import new_call_id, new_execution_id
from ...storage.schema import (
    InvestigationStep,
    InvocationStatus,
    RankedSubject,
    StepResult,
    StepStatus,
    ToolCallRecord,
)
from ..base import BaseAgent
from ..tools import ToolBinding, ToolRegistry
from .reports import render_step_report

logger = logging.getLogger(__name__)


ANALYSIS_SYSTEM_PROMPT = """You are an AWS cost analysis expert. Use the available tools to gather real data before drawing conclusions. Tool results reference saved files by path; cite chart paths when you discuss a chart."""

ANALYSIS_PROMPT = """Analyze the AWS service costs for the following step:
- Title: {title}
- Service: {subject}
- Region: {sub_category}
- Cost: {cost}
- Available Tools: {tools}

Please provide a comprehensive analysis using the available tools to gather data and insights about this service-region combination.

Your response should include:
1. A detailed analysis of this service's cost pattern
2. Potential cost optimization recommendations
3. Insights from the tool data gathered

Use the available tools to gather real data and provide actionable insights based on the actual AWS data.
"""

FAILURE_MARKER = "Step failed"

_REGION_PATTERN = re.compile(r"^[a-z]{2}(-[a-z]+)+-\d+$")


def is_region_name(value: str) -> bool:
    """True for AWS region codes such as us-east-1 or us-gov-west-1"""
    return bool(_REGION_PATTERN.match(value or ""))


def failure_narrative(cause: str) -> str:
    return f"{FAILURE_MARKER}: {cause}"


class StepOrchestrator:
    """
    Executes investigation steps in isolation.

    Whatever goes wrong inside a step ends up in a failed StepResult;
    execute_step never raises.
    """

    def __init__(
        self,
        agent: BaseAgent,
        registry: ToolRegistry,
        store: ArtifactStore,
        write_step_reports: bool = True,
    ):
        self.agent = agent
        self.registry = registry
        self.store = store
        self.write_step_reports = write_step_reports

    def execute_step(
        self,
        step: InvestigationStep,
        run_context: RunContext,
        subjects: Iterable[RankedSubject] = (),
    ) -> StepResult:
        """
        Execute a single analysis step.

        Args:
            step: Planned step
            run_context: Run-scoped credentials, region, identity and settings
            subjects: Ranked subjects of the run, used to attach cost figures

        Returns:
            StepResult (status failed if the step could not complete)
        """
        subject = self._match_subject(step, subjects)
        execution_id = (
            new_execution_id() if run_context.per_step_identity else run_context.execution_id
        )
        binding = ToolBinding(
            subject=subject_slug(step.subject, step.sub_category),
            execution_id=execution_id,
            credentials=run_context.credentials,
            region=self.resolve_region(step, run_context),
        )

        logger.info(f"Executing step: {step.title} ({binding.subject}, {execution_id})")

        try:
            adapters = self.registry.bind(step.tools, binding)
            prompt = ANALYSIS_PROMPT.format(
                title=step.title,
                subject=step.subject,
                sub_category=step.sub_category,
                cost=f"${subject.magnitude:.2f}" if subject.magnitude else "unknown",
                tools=", ".join(adapters),
            )
            loop_result = self.agent.run_tool_loop(
                ANALYSIS_SYSTEM_PROMPT, prompt, adapters, run_context.step_budget
            )
        except Exception as e:
            logger.error(f"Failed to execute step: {step.title}: {e}")
            result = StepResult(
                subject=subject,
                step=step,
                status=StepStatus.FAILED,
                narrative=failure_narrative(str(e)),
                artifacts=list(binding.artifacts),
                execution_id=execution_id,
                error=str(e),
            )
            self._write_report(result)
            return result

        failed_calls = self._all_calls_failed(loop_result.tool_calls)
        if failed_calls:
            cause = "all tool calls failed: " + "; ".join(
                f"{call.tool}: {call.summary}" for call in failed_calls
            )
            logger.warning(f"Step {step.title}: {cause}")
            status = StepStatus.FAILED
            narrative = failure_narrative(cause)
            error: Optional[str] = cause
        else:
            status = StepStatus.COMPLETED
            narrative = loop_result.narrative
            error = None

        result = StepResult(
            subject=subject,
            step=step,
            status=status,
            narrative=narrative,
            artifacts=list(binding.artifacts),
            execution_id=execution_id,
            tool_calls=loop_result.tool_calls,
            turns=loop_result.turns,
            error=error,
        )
        logger.info(
            f"Completed step: {step.title} ({status.value}, {loop_result.turns} turns, "
            f"{len(result.artifacts)} artifacts)"
        )
        self._write_report(result)
        return result

    @staticmethod
    def resolve_region(step: InvestigationStep, run_context: RunContext) -> str:
        """The step's sub-category when it names a region, else the run region"""
        if is_region_name(step.sub_category):
            return step.sub_category
        return run_context.region

    @staticmethod
    def _match_subject(
        step: InvestigationStep, subjects: Iterable[RankedSubject]
    ) -> RankedSubject:
        for subject in subjects:
            if subject.name == step.subject and subject.sub_category == step.sub_category:
                return subject
        return RankedSubject(name=step.subject, sub_category=step.sub_category, magnitude=0.0)

    @staticmethod
    def _all_calls_failed(tool_calls: List[ToolCallRecord]) -> List[ToolCallRecord]:
        """The failed calls when every call failed; empty otherwise"""
        if tool_calls and all(call.status == InvocationStatus.ERROR for call in tool_calls):
            return tool_calls
        return []

    def _write_report(self, result: StepResult) -> None:
        if not self.write_step_reports:
            return
        try:
            markdown = render_step_report(result, self.store)
            result.report = self.store.write_step_report(
                result.execution_id,
                subject_slug(result.step.subject, result.step.sub_category),
                new_call_id(),
                markdown,
            )
        except OSError as e:
            logger.error(f"Could not write step report for {result.step.title}: {e}")
