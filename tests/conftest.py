"""
Shared fixtures and in-memory fakes for the model, data source and renderer
"""

import copy
from typing import Any, Callable, Dict, List, Optional

import pytest

from cost_analyzer.agent.base import BaseAgent
from cost_analyzer.config import AnalysisConfig, AwsCredentials, Config
from cost_analyzer.context import RunContext
from cost_analyzer.datasource.base import DataSource
from cost_analyzer.exceptions import ChartRenderError, DataSourceError
from cost_analyzer.rendering.base import PNG_SIGNATURE, ChartRenderer
from cost_analyzer.storage.artifact_store import ArtifactStore
from cost_analyzer.storage.schema import Capability, DataSourceResult


def text_response(text: str) -> Dict[str, Any]:
    return {"text": text, "tool_calls": []}


def tool_response(*calls, text: str = "") -> Dict[str, Any]:
    """calls are (name, input) pairs"""
    return {
        "text": text,
        "tool_calls": [
            {"id": f"toolu_{i}", "name": name, "input": params}
            for i, (name, params) in enumerate(calls)
        ],
    }


class FakeAgent(BaseAgent):
    """Scripted model: responses come from a list or a responder callable"""

    def __init__(
        self,
        config: Optional[Config] = None,
        script: Optional[List[Any]] = None,
        responder: Optional[Callable[[str, List[Dict], List[Dict]], Dict]] = None,
        plan: Any = None,
        synthesis: Any = "Executive summary across services.",
        image_analysis: Any = "The chart shows a steady cost trend.",
    ):
        config = config or Config()
        super().__init__(config, "fake-model", config.model.claude)
        self.script = list(script or [])
        self.responder = responder
        self.plan = plan
        self.synthesis = synthesis
        self.image_analysis = image_analysis
        self.calls: List[Dict[str, Any]] = []
        self.completions: List[Dict[str, Any]] = []
        self.image_prompts: List[str] = []

    def _call_model(self, system, messages, tools):
        self.calls.append(
            {"system": system, "messages": copy.deepcopy(messages), "tools": tools}
        )
        if self.responder is not None:
            response = self.responder(system, messages, tools)
        elif self.script:
            response = self.script.pop(0)
        else:
            response = text_response("Done.")
        if isinstance(response, Exception):
            raise response
        return response

    def _parse_tool_use(self, response):
        return list(response.get("tool_calls") or [])

    def _extract_text(self, response):
        return response.get("text") or ""

    def _update_messages(self, messages, response, tool_results):
        messages.append(
            {
                "role": "assistant",
                "content": response.get("text"),
                "tool_calls": response.get("tool_calls"),
            }
        )
        for call, result in zip(response.get("tool_calls") or [], tool_results):
            messages.append({"role": "tool", "tool_call_id": call["id"], "content": result})
        return messages

    def _format_tool_definition(self, capability):
        return {"name": capability.name, "description": capability.description}

    def complete(self, system, prompt, max_tokens=None):
        self.completions.append({"system": system, "prompt": prompt})
        if isinstance(self.synthesis, Exception):
            raise self.synthesis
        return self.synthesis

    def generate_structured(self, system, prompt, name, schema, max_tokens=None):
        self.completions.append({"system": system, "prompt": prompt, "schema": schema})
        if isinstance(self.plan, Exception):
            raise self.plan
        return self.plan

    def analyze_image(self, prompt, image_bytes, max_tokens=None):
        self.image_prompts.append(prompt)
        if isinstance(self.image_analysis, Exception):
            raise self.image_analysis
        return self.image_analysis


class FakeDataSource(DataSource):
    """Data source whose tools are plain callables: handler(params, region) -> result"""

    def __init__(
        self,
        capabilities: Optional[List[Capability]] = None,
        handlers: Optional[Dict[str, Callable[[Dict, str], DataSourceResult]]] = None,
    ):
        self._capabilities = capabilities or [
            Capability(name="toolX", description="Fetch test data")
        ]
        self.handlers = dict(handlers or {})
        self.invocations: List[Dict[str, Any]] = []

    def capabilities(self):
        return list(self._capabilities)

    def invoke(self, tool_name, params, credentials, region):
        self.invocations.append({"tool": tool_name, "params": dict(params), "region": region})
        handler = self.handlers.get(tool_name)
        if handler is None:
            raise DataSourceError(f"No handler for {tool_name}")
        return handler(params, region)


class FakeRenderer(ChartRenderer):
    """Returns a tiny PNG-signed payload, or raises when told to"""

    def __init__(self, error: Optional[str] = None):
        self.error = error
        self.rendered: List[Dict[str, Any]] = []

    def render(self, chart_spec):
        if self.error:
            raise ChartRenderError(self.error)
        self.rendered.append(chart_spec)
        return PNG_SIGNATURE + b"fake-chart"


def chart_result(summary: str = "Retrieved 1 datapoint.") -> DataSourceResult:
    return DataSourceResult(
        summary=summary,
        datapoints=[{"date": "2026-09-01", "cost": 12.5}],
        chart={"mark": "bar", "data": {"values": [{"date": "2026-09-01", "cost": 12.5}]}},
    )


def cost_result(costs: Dict[str, float]) -> DataSourceResult:
    """Ranking response with "service, region" keyed costs"""
    return DataSourceResult(
        summary="cost data",
        datapoints=[{"date": "2026-09-01", "total": sum(costs.values()), "dimensions": costs}],
    )


@pytest.fixture
def credentials():
    return AwsCredentials(
        access_key_id="AKIATESTKEY12345",
        secret_access_key="test-secret",
        session_token="test-token",
        region="us-east-1",
    )


@pytest.fixture
def config(tmp_path):
    return Config(analysis=AnalysisConfig(output_dir=str(tmp_path / "output"), step_budget=5))


@pytest.fixture
def store(tmp_path):
    return ArtifactStore(tmp_path / "output")


@pytest.fixture
def run_context(config, credentials, store):
    return RunContext(
        config=config,
        credentials=credentials,
        region="us-east-1",
        output_root=store.root,
        execution_id="20261019T120000000000Z-abcdef123456",
    )
