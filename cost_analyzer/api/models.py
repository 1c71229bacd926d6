"""
Pydantic models for API request/response validation
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any

from ..storage.schema import StepResult


# Tool Models
class ToolInfo(BaseModel):
    """A tool the analysis steps can use"""
    name: str
    description: str
    parameters: Dict[str, Any] = Field(default_factory=dict)


class ToolList(BaseModel):
    """List of tools"""
    tools: List[ToolInfo]
    total: int


# Credential Models
class CredentialsValidateRequest(BaseModel):
    """Request to validate a credentials file"""
    path: Optional[str] = Field(None, description="Credentials file (defaults to config)")


class CredentialsValidateResponse(BaseModel):
    """Result of credential validation"""
    valid: bool
    region: str
    access_key: str


class CredentialsExampleRequest(BaseModel):
    """Request to write an example credentials file"""
    path: str = ".aws-creds.json"
    overwrite: bool = False


class CredentialsExampleResponse(BaseModel):
    """Location of the example credentials file"""
    path: str
    message: str


# Analysis Models
class AnalyzeRequest(BaseModel):
    """Request for a full cost analysis run"""
    top_n: Optional[int] = Field(None, ge=1, le=50)
    region: Optional[str] = None
    include_charts: Optional[bool] = None
    output_dir: Optional[str] = None


class StepSummary(BaseModel):
    """Outcome of one step within a run"""
    title: str
    subject: str
    sub_category: str
    status: str
    execution_id: str
    artifacts: List[str] = Field(default_factory=list)
    tool_calls: int = 0


class AnalysisStats(BaseModel):
    """Summary figures for a run"""
    total_cost: float
    successful_steps: int
    failed_steps: int
    charts_generated: int


class AnalyzeResponse(BaseModel):
    """Response from a full cost analysis run"""
    state: str
    execution_id: str
    report_path: Optional[str] = None
    used_fallback: bool = False
    steps: List[StepSummary] = Field(default_factory=list)
    stats: AnalysisStats
    processing_time: float


class AnalyzeStepRequest(BaseModel):
    """Request for a single analysis step"""
    service: str = Field(..., min_length=1)
    region: str = Field(..., min_length=1)
    tools: List[str] = Field(default_factory=lambda: ["awsGetCostAndUsage"])
    title: Optional[str] = None
    output_dir: Optional[str] = None


class AnalyzeStepResponse(BaseModel):
    """Response from a single analysis step"""
    result: StepResult
    report_path: Optional[str] = None
    charts_generated: int = 0
    processing_time: float


# Health Check
class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    services: Dict[str, str]
    version: str = "1.0.0"
