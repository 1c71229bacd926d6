import pytest

from cost_analyzer.exceptions import ChartRenderError
from cost_analyzer.rendering import vegalite
from cost_analyzer.rendering.base import PNG_SIGNATURE, sanitize_chart_spec
from cost_analyzer.rendering.vegalite import VegaLiteRenderer
from cost_analyzer.rendering.visualization import VisualizationPipeline
from cost_analyzer.storage.artifact_store import ArtifactLocation

from conftest import FakeAgent, FakeRenderer

SPEC = {
    "data": {"values": [{"x": "a", "y": 1}]},
    "encoding": {
        "x": {"field": "x", "type": "nominal"},
        "y": {"field": "y", "type": "quantitative", "axis": {"format": "$,.2f", "title": "Cost"}},
    },
}


def test_sanitize_drops_axis_formats_and_fills_defaults():
    cleaned = sanitize_chart_spec(SPEC)

    assert cleaned["mark"] == "bar"
    assert cleaned["encoding"]["y"]["axis"] == {"title": "Cost"}
    # The input is left untouched
    assert SPEC["encoding"]["y"]["axis"]["format"] == "$,.2f"
    assert "mark" not in SPEC


def test_sanitize_leaves_composite_specs_alone():
    cleaned = sanitize_chart_spec({"layer": [{"mark": "line"}]})
    assert "mark" not in cleaned


def test_renderer_calls_vl_convert(monkeypatch):
    calls = []

    def fake_png(vl_spec, scale):
        calls.append((vl_spec, scale))
        return PNG_SIGNATURE + b"data"

    monkeypatch.setattr(vegalite.vlc, "vegalite_to_png", fake_png)

    png = VegaLiteRenderer(scale=3).render(SPEC)

    assert png.startswith(PNG_SIGNATURE)
    assert calls[0][1] == 3
    assert calls[0][0]["mark"] == "bar"


@pytest.mark.parametrize(
    "spec",
    [
        "not a spec",
        {"mark": "bar"},
        {"mark": "bar", "data": {"values": []}},
    ],
)
def test_renderer_rejects_specs_that_would_render_blank(spec):
    with pytest.raises(ChartRenderError):
        VegaLiteRenderer().render(spec)


def test_renderer_wraps_compilation_errors(monkeypatch):
    def broken(vl_spec, scale):
        raise ValueError("unknown mark 'pie3d'")

    monkeypatch.setattr(vegalite.vlc, "vegalite_to_png", broken)

    with pytest.raises(ChartRenderError, match="pie3d"):
        VegaLiteRenderer().render(SPEC)


def test_renderer_rejects_non_png_output(monkeypatch):
    monkeypatch.setattr(vegalite.vlc, "vegalite_to_png", lambda vl_spec, scale: b"")

    with pytest.raises(ChartRenderError):
        VegaLiteRenderer().render(SPEC)


def test_pipeline_writes_nothing_when_rendering_fails(store):
    pipeline = VisualizationPipeline(FakeRenderer(error="bad"), store, FakeAgent())
    location = ArtifactLocation("exec-1", "s", "toolX", "c1")

    with pytest.raises(ChartRenderError):
        pipeline.process(SPEC, location, "toolX", "context")

    assert store.list_artifacts("exec-1") == []


def test_pipeline_prompt_includes_tool_and_context(store):
    agent = FakeAgent(image_analysis="Spiky usage.")
    pipeline = VisualizationPipeline(FakeRenderer(), store, agent)

    outcome = pipeline.process(SPEC, ArtifactLocation("exec-1", "s", "toolX", "c1"), "toolX", "Total $5")

    assert outcome.analysis == "Spiky usage."
    assert "toolX" in agent.image_prompts[0]
    assert "Total $5" in agent.image_prompts[0]
