"""Tool adapters: expose data-source capabilities to the model"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from ..config import AwsCredentials
from ..datasource.base import CapabilityCatalog, DataSource
from ..rendering.visualization import VisualizationPipeline
from ..storage.artifact_store import ArtifactLocation, ArtifactStore
from ..storage.identifiers import new_call_id
from ..storage.schema import (
    ArtifactReference,
    Capability,
    InvocationStatus,
    ToolInvocationResult,
)

logger = logging.getLogger(__name__)


@dataclass
class ToolBinding:
    """Scope a set of adapters is bound to: one subject within one execution"""

    subject: str
    execution_id: str
    credentials: AwsCredentials
    region: str
    artifacts: List[ArtifactReference] = field(default_factory=list)


class ToolAdapter:
    """Invokes one capability and persists whatever it returns"""

    def __init__(
        self,
        capability: Capability,
        data_source: DataSource,
        store: ArtifactStore,
        binding: ToolBinding,
        visualization: Optional[VisualizationPipeline] = None,
    ):
        self.capability = capability
        self.data_source = data_source
        self.store = store
        self.binding = binding
        self.visualization = visualization

    @property
    def name(self) -> str:
        return self.capability.name

    def invoke(self, params: Dict[str, Any]) -> ToolInvocationResult:
        """
        Execute the capability for the bound subject.

        Datapoints are written to {call_id}-data.json and a chart, when the
        data source returns one, is rendered to {call_id}-chart.png and
        critiqued by the model. Failures never propagate: they are turned
        into an error result the model can read.

        Args:
            params: Parameters chosen by the model

        Returns:
            ToolInvocationResult holding artifact references only
        """
        call_id = new_call_id()
        location = ArtifactLocation(
            execution_id=self.binding.execution_id,
            subject=self.binding.subject,
            tool_name=self.name,
            call_id=call_id,
        )
        logger.info(f"Calling {self.name} ({call_id}) for {self.binding.subject}")

        missing = self.capability.parameters.missing(params)
        if missing:
            message = f"Missing required parameters for {self.name}: {', '.join(missing)}"
            logger.error(message)
            return ToolInvocationResult.failure(self.name, call_id, message)

        try:
            result = self.data_source.invoke(
                self.name, params, self.binding.credentials, self.binding.region
            )
            data_ref = None
            if result.datapoints is not None:
                data_ref = self.store.write_data(location, result.datapoints)
                self.binding.artifacts.append(data_ref)
        except Exception as e:
            logger.error(f"Error executing {self.name}: {e}")
            return ToolInvocationResult.failure(
                self.name, call_id, f"Error executing {self.name}: {e}"
            )

        summary = result.summary or f"{self.name} completed"
        chart_ref = None
        chart_analysis = None

        if result.chart and self.visualization is not None:
            try:
                outcome = self.visualization.process(
                    result.chart, location, self.name, summary
                )
                chart_ref = outcome.reference
                chart_analysis = outcome.analysis
                self.binding.artifacts.append(chart_ref)
            except Exception as e:
                logger.error(f"Chart generation failed for {self.name}: {e}")
                summary = f"{summary}\n\nChart generation failed: {e}"

        return ToolInvocationResult(
            status=InvocationStatus.OK,
            tool_name=self.name,
            call_id=call_id,
            summary=summary,
            data=data_ref,
            chart=chart_ref,
            chart_analysis=chart_analysis,
        )


class ToolRegistry:
    """Validates tool names and binds adapters to a step's scope"""

    def __init__(
        self,
        data_source: DataSource,
        store: ArtifactStore,
        visualization: Optional[VisualizationPipeline] = None,
        include_charts: bool = True,
    ):
        self.data_source = data_source
        self.store = store
        self.visualization = visualization if include_charts else None
        self.catalog = CapabilityCatalog.from_source(data_source)

    def validate(self, names: Iterable[str]) -> None:
        """Raise ToolValidationError if any name is not in the catalog"""
        self.catalog.validate(names)

    def bind(self, names: Iterable[str], binding: ToolBinding) -> Dict[str, ToolAdapter]:
        """
        Build adapters for the requested tools.

        Args:
            names: Tool names, typically from an investigation step
            binding: Subject, execution identity, credentials and region

        Returns:
            Adapters keyed by tool name, in request order

        Raises:
            ToolValidationError: If any name is unknown; nothing is bound
        """
        names = list(dict.fromkeys(names))
        self.validate(names)

        adapters = {
            name: ToolAdapter(
                capability=self.catalog.get(name),
                data_source=self.data_source,
                store=self.store,
                binding=binding,
                visualization=self.visualization,
            )
            for name in names
        }
        logger.info(f"Bound {len(adapters)} tools for {binding.subject}: {', '.join(adapters)}")
        return adapters
