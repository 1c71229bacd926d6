"""Run-scoped context passed explicitly to every component"""

from dataclasses import dataclass
from pathlib import Path

from .config import AwsCredentials, Config


@dataclass(frozen=True)
class RunContext:
    """Everything a run shares: settings, credentials, region and identity"""

    config: Config
    credentials: AwsCredentials
    region: str
    output_root: Path
    execution_id: str

    @property
    def step_budget(self) -> int:
        return self.config.analysis.step_budget

    @property
    def per_step_identity(self) -> bool:
        return self.config.analysis.execution_scope == "step"
