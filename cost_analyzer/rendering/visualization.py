"""Chart pipeline: render a tool's chart, persist it, and have the model critique it"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

from ..storage.artifact_store import ArtifactLocation, ArtifactStore
from ..storage.schema import ArtifactReference
from .base import ChartRenderer

if TYPE_CHECKING:
    from ..agent.base import BaseAgent

logger = logging.getLogger(__name__)


CHART_ANALYSIS_PROMPT = """Analyze this chart generated by the {tool_name} AWS tool and provide insights.

Context: {context}

Please provide a concise analysis focusing on:
1. What the chart shows (data patterns, trends)
2. Key insights about AWS costs or metrics
3. Notable patterns or anomalies

Keep the analysis concise but informative.
"""


@dataclass(frozen=True)
class ChartOutcome:
    """A persisted chart and the model's commentary on it"""

    reference: ArtifactReference
    analysis: Optional[str]


class VisualizationPipeline:
    """Turns a declarative chart into a stored PNG plus a textual critique"""

    def __init__(
        self,
        renderer: ChartRenderer,
        store: ArtifactStore,
        agent: "BaseAgent",
        analysis_max_tokens: int = 1000,
    ):
        self.renderer = renderer
        self.store = store
        self.agent = agent
        self.analysis_max_tokens = analysis_max_tokens

    def process(
        self,
        chart_spec: Dict[str, Any],
        location: ArtifactLocation,
        tool_name: str,
        context: str,
    ) -> ChartOutcome:
        """
        Render, persist and analyze a chart.

        Args:
            chart_spec: Declarative chart specification returned by the tool
            location: Address of the owning tool call
            tool_name: Tool that produced the chart (for the critique prompt)
            context: Tool summary given to the model alongside the image

        Returns:
            ChartOutcome with the stored chart reference and its analysis

        Raises:
            ChartRenderError: If the chart cannot be rendered; nothing is written
        """
        logger.info(f"Rendering chart for {tool_name} ({location.call_id})")
        image_bytes = self.renderer.render(chart_spec)
        reference = self.store.write_chart(location, image_bytes)

        logger.info(f"Analyzing chart {reference.path}")
        analysis = self.analyze_chart(image_bytes, tool_name, context)
        return ChartOutcome(reference=reference, analysis=analysis)

    def analyze_chart(self, image_bytes: bytes, tool_name: str, context: str) -> str:
        """Ask the model for commentary on a rendered chart; failures become text"""
        prompt = CHART_ANALYSIS_PROMPT.format(tool_name=tool_name, context=context)
        try:
            analysis = self.agent.analyze_image(
                prompt, image_bytes, max_tokens=self.analysis_max_tokens
            )
            logger.info(f"Chart analysis completed ({len(analysis)} chars)")
            return analysis
        except Exception as e:
            logger.error(f"Error analyzing chart: {e}")
            return f"Chart analysis failed: {e}"
