"""Exception types raised by the cost analyzer"""

from typing import List, Sequence


class ConfigurationError(ValueError):
    """Invalid or missing configuration (credentials, settings, tool names)"""


class ToolValidationError(ConfigurationError):
    """Raised when a step requests tools that are not in the catalog"""

    def __init__(self, invalid_names: Sequence[str], valid_names: Sequence[str]):
        self.invalid_names: List[str] = list(invalid_names)
        self.valid_names: List[str] = list(valid_names)
        available = "\n".join(f"  - {name}" for name in self.valid_names)
        super().__init__(
            f"Invalid tools provided: {', '.join(self.invalid_names)}\n\n"
            f"Available tools:\n{available}"
        )


class PlanningError(RuntimeError):
    """The planning call failed or returned an unusable plan"""


class DataSourceError(RuntimeError):
    """The data-retrieval back end rejected a request"""


class ChartRenderError(RuntimeError):
    """A chart specification could not be rendered to an image"""
