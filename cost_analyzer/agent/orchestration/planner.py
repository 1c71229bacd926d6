"""Planner Agent for the cost analysis pipeline

Turns the ranked service/region list into investigation steps with a
single structured-output call. The planner never calls tools itself.
"""

import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from ...datasource.base import CapabilityCatalog
from ...exceptions import PlanningError
from ...storage.schema import InvestigationStep, RankedSubject
from ..base import BaseAgent

logger = logging.getLogger(__name__)


PLANNER_SYSTEM_PROMPT = "You are an AWS cost analysis expert who plans investigations."

PLANNER_PROMPT = """Given the following service-region combinations and available tools, create a plan for analyzing each service.

Service-Region Combinations:
{subjects}

Available Tools:
{tools}

Create a structured plan with analysis steps. Each step should:
1. Focus on a specific service-region combination
2. Select appropriate tools for that service
3. Have a clear, descriptive title

GUIDELINES:
- Prefer the tools most relevant to the service and region of each step
- Never group by and filter on the same dimension (e.g. grouping by SERVICE while filtering to a single SERVICE tells nothing)
- Only use tool names from the list above

For each service-region combination, create an analysis step that uses the most relevant tools for that specific service.
"""

PLAN_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {
                        "type": "string",
                        "description": "A descriptive title for the analysis step",
                    },
                    "subject": {
                        "type": "string",
                        "description": "The AWS service name to analyze",
                    },
                    "subCategory": {
                        "type": "string",
                        "description": "The AWS region to analyze",
                    },
                    "tools": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Array of tool names to use for this step",
                    },
                },
                "required": ["title", "subject", "subCategory", "tools"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["steps"],
    "additionalProperties": False,
}


class PlannerAgent:
    """
    Creates the investigation plan.

    Errors are not recovered here: a plan is either complete or the run
    is aborted with PlanningError.
    """

    def __init__(self, agent: BaseAgent, max_tokens: int = 2000):
        """
        Initialize the planner agent.

        Args:
            agent: Model client used for the structured-output call
            max_tokens: Token limit for the plan
        """
        self.agent = agent
        self.max_tokens = max_tokens

    def build_prompt(self, subjects: List[RankedSubject], catalog: CapabilityCatalog) -> str:
        subject_lines = "\n".join(
            f"{i}. {s.name} ({s.sub_category}): ${s.magnitude:.2f}"
            for i, s in enumerate(subjects, start=1)
        )
        tool_lines = "\n".join(f"- {line}" for line in catalog.describe())
        return PLANNER_PROMPT.format(subjects=subject_lines, tools=tool_lines)

    def plan(
        self, subjects: List[RankedSubject], catalog: CapabilityCatalog
    ) -> List[InvestigationStep]:
        """
        Plan one investigation step per subject.

        Args:
            subjects: Ranked service/region combinations
            catalog: Tools available to the steps

        Returns:
            Ordered investigation steps

        Raises:
            PlanningError: On provider errors or a malformed plan
        """
        prompt = self.build_prompt(subjects, catalog)
        logger.info(f"Planning analysis for {len(subjects)} subjects")
        logger.debug(f"Planner prompt:\n{prompt}")

        try:
            payload = self.agent.generate_structured(
                PLANNER_SYSTEM_PROMPT,
                prompt,
                name="analysis_plan",
                schema=PLAN_SCHEMA,
                max_tokens=self.max_tokens,
            )
        except Exception as e:
            logger.error(f"Error planning analysis: {e}")
            raise PlanningError(f"Failed to plan analysis: {e}") from e

        steps_data = payload.get("steps") if isinstance(payload, dict) else None
        if not isinstance(steps_data, list):
            raise PlanningError("Failed to plan analysis: response has no 'steps' list")

        try:
            steps = [InvestigationStep.model_validate(item) for item in steps_data]
        except ValidationError as e:
            raise PlanningError(f"Failed to plan analysis: malformed step ({e})") from e

        logger.info(f"Planner created {len(steps)} steps")
        return steps
