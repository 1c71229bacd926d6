"""Base chart renderer interface"""

import copy
from abc import ABC, abstractmethod
from typing import Any, Dict

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Axis format strings returned by tools often break the renderer
_AXIS_FORMAT_KEYS = ("format", "formatType", "tickFormat")


def sanitize_chart_spec(chart_spec: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return a cleaned copy of a declarative chart specification.

    Axis format strings are dropped and a bar mark and empty encoding are
    filled in when missing. The input is never modified.
    """
    spec = copy.deepcopy(chart_spec)

    encoding = spec.get("encoding")
    if isinstance(encoding, dict):
        for channel in encoding.values():
            if isinstance(channel, dict) and isinstance(channel.get("axis"), dict):
                for key in _AXIS_FORMAT_KEYS:
                    channel["axis"].pop(key, None)

    if not any(key in spec for key in ("layer", "concat", "hconcat", "vconcat", "facet", "repeat")):
        spec.setdefault("mark", "bar")
        spec.setdefault("encoding", {})

    return spec


class ChartRenderer(ABC):
    """Abstract base class for declarative-chart renderers"""

    @abstractmethod
    def render(self, chart_spec: Dict[str, Any]) -> bytes:
        """
        Render a chart specification to a raster image.

        Args:
            chart_spec: Declarative chart specification

        Returns:
            PNG image bytes

        Raises:
            ChartRenderError: If the specification does not conform; a blank
                image is never returned
        """
        pass
