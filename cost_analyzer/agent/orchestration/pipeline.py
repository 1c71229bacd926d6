"""Run Orchestrator for the cost analysis pipeline

    ┌──────┐     ┌──────────┐     ┌──────────┐     ┌───────────┐     ┌───────────┐     ┌──────┐
    │ INIT │────▶│ FETCHING │────▶│ PLANNING │────▶│ EXECUTING │────▶│ COMPILING │────▶│ DONE │
    └──┬───┘     └────┬─────┘     └────┬─────┘     │   STEPS   │     └───────────┘     └──────┘
       │              │                │           └───────────┘
       └──────────────┴────────────────┴──────▶ ABORTED

Once steps start executing the run always reaches DONE: step failures are
isolated by the Step Orchestrator and compilation falls back to a template.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from ...config import AwsCredentials, Config, load_credentials
from ...context import RunContext
from ...datasource.base import DataSource
from ...datasource.ranking import fetch_ranked_subjects
from ...exceptions import ConfigurationError, DataSourceError, PlanningError
from ...rendering.base import ChartRenderer
from ...rendering.visualization import VisualizationPipeline
from ...storage.artifact_store import ArtifactStore
from ...storage.identifiers import new_execution_id
from ...storage.schema import (
    CompiledReport,
    InvestigationStep,
    RankedSubject,
    StepResult,
)
from ..base import BaseAgent
from ..tools import ToolRegistry
from .compiler import CompilerAgent
from .planner import PlannerAgent
from .reports import render_compiled_report
from .step_executor import StepOrchestrator

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    """Lifecycle of a run"""
    INIT = "init"
    FETCHING_SUBJECTS = "fetching_subjects"
    PLANNING = "planning"
    EXECUTING_STEPS = "executing_steps"
    COMPILING = "compiling"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class RunOutcome:
    """Everything a finished (or aborted) run produced"""

    execution_id: Optional[str]
    state: RunState
    subjects: List[RankedSubject] = field(default_factory=list)
    steps: List[InvestigationStep] = field(default_factory=list)
    step_results: List[StepResult] = field(default_factory=list)
    report: Optional[CompiledReport] = None
    report_path: Optional[Path] = None
    abort_reason: Optional[str] = None

    @property
    def aborted(self) -> bool:
        return self.state == RunState.ABORTED

    def stats(self) -> Dict[str, float]:
        """Total cost analysed, successful steps and charts generated"""
        return {
            "total_cost": sum(r.subject.magnitude for r in self.step_results),
            "successful_steps": sum(1 for r in self.step_results if not r.failed),
            "failed_steps": sum(1 for r in self.step_results if r.failed),
            "charts_generated": sum(len(r.charts()) for r in self.step_results),
        }


class RunOrchestrator:
    """
    Drives a full analysis run.

    Components are wired from the given agent, data source and renderer;
    nothing is shared between runs except what the caller passes in.
    """

    def __init__(
        self,
        config: Config,
        agent: BaseAgent,
        data_source: DataSource,
        renderer: ChartRenderer,
        credentials: Optional[AwsCredentials] = None,
        region: Optional[str] = None,
    ):
        """
        Initialize the run orchestrator.

        Args:
            config: Configuration for this run
            agent: Model client used by every stage
            data_source: Back end executing tools
            renderer: Chart renderer
            credentials: AWS credentials; loaded from config.credentials when omitted
            region: Run region; defaults to the credentials' region
        """
        self.config = config
        self.agent = agent
        self.data_source = data_source
        self.credentials = credentials
        self.region = region
        self.state = RunState.INIT

        self.store = ArtifactStore(config.analysis.output_dir)
        self.visualization = VisualizationPipeline(
            renderer,
            self.store,
            agent,
            analysis_max_tokens=config.analysis.chart_analysis_max_tokens,
        )
        self.registry = ToolRegistry(
            data_source,
            self.store,
            visualization=self.visualization,
            include_charts=config.analysis.include_charts,
        )
        self.planner = PlannerAgent(agent)
        self.step_orchestrator = StepOrchestrator(agent, self.registry, self.store)
        self.compiler = CompilerAgent(
            agent, self.store, max_tokens=config.analysis.synthesis_max_tokens
        )

    def _transition(self, state: RunState) -> None:
        logger.info(f"Run state: {self.state.value} -> {state.value}")
        self.state = state

    def _abort(self, outcome: RunOutcome, reason: str) -> RunOutcome:
        logger.error(f"Analysis aborted: {reason}")
        self._transition(RunState.ABORTED)
        outcome.state = RunState.ABORTED
        outcome.abort_reason = reason
        return outcome

    def prepare_context(self) -> RunContext:
        """
        Validate run settings and mint the run identity.

        Raises:
            ConfigurationError: On missing credentials or an unusable output root
        """
        credentials = self.credentials or load_credentials(
            self.config.credentials.path, self.config.credentials.default_region
        )
        logger.info(f"Using AWS credentials {credentials.masked_access_key()}")

        output_root = self.store.root
        try:
            output_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(f"Output directory {output_root} is not usable: {e}") from e
        if not output_root.is_dir():
            raise ConfigurationError(f"Output path {output_root} is not a directory")

        if self.config.analysis.step_budget < 1:
            raise ConfigurationError("analysis.step_budget must be at least 1")

        return RunContext(
            config=self.config,
            credentials=credentials,
            region=self.region or credentials.region,
            output_root=output_root,
            execution_id=new_execution_id(),
        )

    def run(self, top_n: Optional[int] = None) -> RunOutcome:
        """
        Run the complete analysis flow.

        Args:
            top_n: Number of service/region combinations to analyse
                (defaults to analysis.top_n)

        Returns:
            RunOutcome in state DONE or ABORTED
        """
        outcome = RunOutcome(execution_id=None, state=RunState.INIT)

        try:
            context = self.prepare_context()
        except ConfigurationError as e:
            return self._abort(outcome, str(e))
        outcome.execution_id = context.execution_id
        logger.info(f"Starting AWS cost analysis {context.execution_id}")

        self._transition(RunState.FETCHING_SUBJECTS)
        try:
            subjects = fetch_ranked_subjects(
                self.data_source,
                context.credentials,
                context.region,
                top_n or self.config.analysis.top_n,
            )
        except DataSourceError as e:
            return self._abort(outcome, str(e))
        outcome.subjects = subjects

        if not subjects:
            logger.warning("No cost data found")
            self._transition(RunState.COMPILING)
            return self._finish(outcome, context)

        logger.info(f"Found {len(subjects)} service-region combinations")
        for i, subject in enumerate(subjects, start=1):
            logger.info(f"{i}. {subject.describe()}")

        self._transition(RunState.PLANNING)
        try:
            steps = self.planner.plan(subjects, self.registry.catalog)
        except PlanningError as e:
            return self._abort(outcome, str(e))
        outcome.steps = steps

        self._transition(RunState.EXECUTING_STEPS)
        for i, step in enumerate(steps, start=1):
            logger.info(f"Executing step {i}/{len(steps)}: {step.title}")
            outcome.step_results.append(
                self.step_orchestrator.execute_step(step, context, subjects)
            )

        self._transition(RunState.COMPILING)
        return self._finish(outcome, context)

    def run_step(self, step: InvestigationStep) -> StepResult:
        """
        Execute a single step outside of a planned run.

        Raises:
            ConfigurationError: If the run context cannot be prepared
        """
        context = self.prepare_context()
        return self.step_orchestrator.execute_step(step, context)

    def _finish(self, outcome: RunOutcome, context: RunContext) -> RunOutcome:
        report = self.compiler.compile(outcome.step_results, context.execution_id)
        reference = self.store.write_report(
            context.execution_id, render_compiled_report(report, self.store)
        )
        outcome.report = report
        outcome.report_path = Path(reference.path)

        self._transition(RunState.DONE)
        outcome.state = RunState.DONE

        stats = outcome.stats()
        logger.info(
            f"Analysis completed: ${stats['total_cost']:.2f} analysed, "
            f"{stats['successful_steps']}/{len(outcome.step_results)} steps succeeded, "
            f"{stats['charts_generated']} charts generated"
        )
        return outcome
