"""
Cost analysis API endpoints
"""

from fastapi import APIRouter, Depends, HTTPException
import logging
import time

from .dependencies import get_agent, get_config, get_data_source, get_renderer
from .models import (
    AnalysisStats,
    AnalyzeRequest,
    AnalyzeResponse,
    AnalyzeStepRequest,
    AnalyzeStepResponse,
    StepSummary,
)
from ..agent.base import BaseAgent
from ..agent.orchestration import RunOrchestrator
from ..config import Config
from ..datasource.base import DataSource
from ..exceptions import ConfigurationError
from ..rendering.base import ChartRenderer
from ..storage.schema import InvestigationStep

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["analysis"])


def apply_overrides(config: Config, **overrides) -> Config:
    """Copy of config with analysis settings overridden for one request"""
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    return config.model_copy(update={"analysis": config.analysis.model_copy(update=updates)})


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(
    request: AnalyzeRequest,
    config: Config = Depends(get_config),
    agent: BaseAgent = Depends(get_agent),
    data_source: DataSource = Depends(get_data_source),
    renderer: ChartRenderer = Depends(get_renderer),
):
    """
    Run the full analysis: rank services, plan, execute every step and compile the report.

    Aborted runs (bad configuration, cost data unavailable, planning failure)
    return 422 with the abort reason.
    """
    start_time = time.time()
    config = apply_overrides(
        config, include_charts=request.include_charts, output_dir=request.output_dir
    )

    orchestrator = RunOrchestrator(
        config, agent, data_source, renderer, region=request.region
    )
    outcome = orchestrator.run(top_n=request.top_n)

    if outcome.aborted:
        raise HTTPException(status_code=422, detail=f"Analysis aborted: {outcome.abort_reason}")

    steps = [
        StepSummary(
            title=result.step.title,
            subject=result.step.subject,
            sub_category=result.step.sub_category,
            status=result.status.value,
            execution_id=result.execution_id,
            artifacts=[a.relative_path for a in result.artifacts],
            tool_calls=len(result.tool_calls),
        )
        for result in outcome.step_results
    ]

    return AnalyzeResponse(
        state=outcome.state.value,
        execution_id=outcome.execution_id,
        report_path=str(outcome.report_path) if outcome.report_path else None,
        used_fallback=outcome.report.used_fallback if outcome.report else False,
        steps=steps,
        stats=AnalysisStats(**outcome.stats()),
        processing_time=time.time() - start_time,
    )


@router.post("/analyze-step", response_model=AnalyzeStepResponse)
def analyze_step(
    request: AnalyzeStepRequest,
    config: Config = Depends(get_config),
    agent: BaseAgent = Depends(get_agent),
    data_source: DataSource = Depends(get_data_source),
    renderer: ChartRenderer = Depends(get_renderer),
):
    """Analyze a single service/region with the given tools"""
    start_time = time.time()
    config = apply_overrides(config, output_dir=request.output_dir)

    step = InvestigationStep(
        title=request.title or f"{request.service} analysis ({request.region})",
        subject=request.service,
        sub_category=request.region,
        tools=request.tools,
    )

    orchestrator = RunOrchestrator(config, agent, data_source, renderer)
    try:
        result = orchestrator.run_step(step)
    except ConfigurationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return AnalyzeStepResponse(
        result=result,
        report_path=result.report.path if result.report else None,
        charts_generated=len(result.charts()),
        processing_time=time.time() - start_time,
    )
