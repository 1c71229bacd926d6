"""Vega-Lite rendering using vl-convert"""

import logging
from typing import Any, Dict

import vl_convert as vlc

from ..exceptions import ChartRenderError
from .base import PNG_SIGNATURE, ChartRenderer, sanitize_chart_spec

logger = logging.getLogger(__name__)


class VegaLiteRenderer(ChartRenderer):
    """Renders Vega-Lite specifications to PNG"""

    def __init__(self, scale: float = 2.0):
        """
        Initialize the renderer.

        Args:
            scale: Pixel scale factor applied to the chart's declared size
        """
        self.scale = scale
        logger.info(f"Initialized VegaLiteRenderer (scale={scale})")

    def render(self, chart_spec: Dict[str, Any]) -> bytes:
        if not isinstance(chart_spec, dict):
            raise ChartRenderError(
                f"Chart specification must be an object, got {type(chart_spec).__name__}"
            )

        spec = sanitize_chart_spec(chart_spec)
        self._check_data(spec)

        logger.debug(f"Rendering Vega-Lite chart: {spec.get('title', 'untitled')}")
        try:
            png = vlc.vegalite_to_png(vl_spec=spec, scale=self.scale)
        except Exception as e:
            raise ChartRenderError(f"Vega-Lite compilation failed: {e}") from e

        if not png or not png.startswith(PNG_SIGNATURE):
            raise ChartRenderError("Renderer produced no PNG output")
        return png

    def _check_data(self, spec: Dict[str, Any]) -> None:
        # A single-view spec without data renders as an empty canvas
        if any(key in spec for key in ("layer", "concat", "hconcat", "vconcat")):
            return
        data = spec.get("data")
        if not isinstance(data, dict):
            raise ChartRenderError("Chart specification has no data")
        if "values" in data and not data["values"]:
            raise ChartRenderError("Chart specification has empty data values")
