"""Cost Analysis Pipeline

Breaks a run into explicit stages:
1. Planner: turns ranked service/region pairs into investigation steps
2. Step Orchestrator: runs each step through the tool-calling loop
3. Compiler: synthesizes the step narratives into one report

The Run Orchestrator drives the stages and owns the run's state.
"""

from .compiler import CompilerAgent
from .pipeline import RunOrchestrator, RunOutcome, RunState
from .planner import PlannerAgent
from .step_executor import StepOrchestrator

__all__ = [
    "RunOrchestrator",
    "RunOutcome",
    "RunState",
    "PlannerAgent",
    "StepOrchestrator",
    "CompilerAgent",
]
