"""Data models and schema definitions"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ArtifactKind(str, Enum):
    """Kind of file persisted by the artifact store"""
    DATA = "data"
    CHART = "chart"
    REPORT = "report"


class InvocationStatus(str, Enum):
    """Outcome of a single tool invocation"""
    OK = "ok"
    ERROR = "error"


class StepStatus(str, Enum):
    """Outcome of an investigation step"""
    COMPLETED = "completed"
    FAILED = "failed"


class RankedSubject(BaseModel):
    """A subject (service/region pair) ranked by its cost"""
    model_config = ConfigDict(frozen=True)

    name: str
    sub_category: str
    magnitude: float
    unit: str = "USD"
    period: str = "Unknown"

    def describe(self) -> str:
        return f"{self.name} ({self.sub_category}): ${self.magnitude:.2f}"


class ParameterSchema(BaseModel):
    """JSON schema describing a capability's input parameters"""
    model_config = ConfigDict(frozen=True)

    type: str = "object"
    properties: Dict[str, Dict[str, Any]] = Field(default_factory=dict)
    required: List[str] = Field(default_factory=list)

    @field_validator("type")
    @classmethod
    def _must_be_object(cls, value: str) -> str:
        if value != "object":
            raise ValueError(f"Parameter schema must be of type 'object', got '{value}'")
        return value

    @model_validator(mode="after")
    def _required_are_declared(self) -> "ParameterSchema":
        undeclared = [name for name in self.required if name not in self.properties]
        if undeclared:
            raise ValueError(
                f"Required parameters not declared in properties: {', '.join(undeclared)}"
            )
        return self

    def missing(self, params: Dict[str, Any]) -> List[str]:
        """Return the required parameter names absent from params"""
        return [name for name in self.required if params.get(name) is None]

    def to_json_schema(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "properties": dict(self.properties),
            "required": list(self.required),
        }


class Capability(BaseModel):
    """A named, schema-described data-retrieval tool"""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str
    parameters: ParameterSchema = Field(default_factory=ParameterSchema)


class InvestigationStep(BaseModel):
    """One planned (subject, tool-set) investigation unit"""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str
    subject: str
    sub_category: str = Field(..., alias="subCategory")
    tools: List[str] = Field(default_factory=list)


class DataSourceResult(BaseModel):
    """Raw result returned by the data-retrieval back end"""
    summary: str = ""
    datapoints: Optional[Any] = None
    chart: Optional[Dict[str, Any]] = None


class ArtifactReference(BaseModel):
    """Pointer to a file written by the artifact store"""
    model_config = ConfigDict(frozen=True)

    kind: ArtifactKind
    path: str
    relative_path: str
    tool_name: Optional[str] = None
    subject: str
    execution_id: str
    call_id: Optional[str] = None


class ToolInvocationResult(BaseModel):
    """Result of one adapter call, as handed back to the model"""
    status: InvocationStatus = InvocationStatus.OK
    tool_name: str
    call_id: str
    summary: str
    data: Optional[ArtifactReference] = None
    chart: Optional[ArtifactReference] = None
    chart_analysis: Optional[str] = None

    @classmethod
    def failure(cls, tool_name: str, call_id: str, message: str) -> "ToolInvocationResult":
        return cls(
            status=InvocationStatus.ERROR,
            tool_name=tool_name,
            call_id=call_id,
            summary=message,
        )

    @property
    def ok(self) -> bool:
        return self.status == InvocationStatus.OK

    def to_model_payload(self) -> Dict[str, Any]:
        """Compact dict for the model's context: paths only, never payload bytes"""
        payload: Dict[str, Any] = {
            "status": self.status.value,
            "summary": self.summary,
        }
        if self.data is not None:
            payload["datapointsPath"] = self.data.path
        if self.chart is not None:
            payload["chartPath"] = self.chart.path
        if self.chart_analysis:
            payload["chartAnalysis"] = self.chart_analysis
        return payload


class ToolCallRecord(BaseModel):
    """Log entry for a tool invocation made during a step"""
    tool: str
    input: Dict[str, Any] = Field(default_factory=dict)
    call_id: str
    status: InvocationStatus
    summary: str


class StepResult(BaseModel):
    """Outcome of executing one investigation step"""
    subject: RankedSubject
    step: InvestigationStep
    status: StepStatus
    narrative: str
    artifacts: List[ArtifactReference] = Field(default_factory=list)
    execution_id: str
    tool_calls: List[ToolCallRecord] = Field(default_factory=list)
    turns: int = 0
    error: Optional[str] = None
    report: Optional[ArtifactReference] = None  # step report, once written

    @property
    def failed(self) -> bool:
        return self.status == StepStatus.FAILED

    def charts(self) -> List[ArtifactReference]:
        return [a for a in self.artifacts if a.kind == ArtifactKind.CHART]


class ReportEntry(BaseModel):
    """Per-step section of a compiled report"""
    title: str
    subject: str
    sub_category: str
    status: StepStatus
    artifacts: List[ArtifactReference] = Field(default_factory=list)
    narrative: str = ""


class CompiledReport(BaseModel):
    """Cross-subject synthesis report; the terminal artifact of a run"""
    execution_id: str
    narrative: str
    entries: List[ReportEntry] = Field(default_factory=list)
    used_fallback: bool = False
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
