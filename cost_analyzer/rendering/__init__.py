"""Chart rendering module"""

from .base import ChartRenderer
from .vegalite import VegaLiteRenderer
from .visualization import ChartOutcome, VisualizationPipeline

__all__ = ["ChartRenderer", "VegaLiteRenderer", "ChartOutcome", "VisualizationPipeline"]
