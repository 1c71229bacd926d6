import pytest

from cost_analyzer.agent.tools import ToolBinding, ToolRegistry
from cost_analyzer.rendering.visualization import VisualizationPipeline
from cost_analyzer.storage.schema import Capability, DataSourceResult, InvocationStatus

from conftest import (
    FakeAgent,
    FakeDataSource,
    FakeRenderer,
    chart_result,
    text_response,
    tool_response,
)


@pytest.fixture
def adapters(store, credentials):
    data_source = FakeDataSource(
        capabilities=[
            Capability(name="toolX", description="x"),
            Capability(name="toolY", description="y"),
        ],
        handlers={
            "toolX": lambda params, region: DataSourceResult(summary=f"x:{params.get('n')}"),
            "toolY": lambda params, region: DataSourceResult(summary=f"y:{params.get('n')}"),
        },
    )
    registry = ToolRegistry(data_source, store)
    binding = ToolBinding("S3-us-east-1", "exec-1", credentials, "us-east-1")
    return registry.bind(["toolX", "toolY"], binding)


def test_loop_ends_on_turn_without_tool_requests(adapters):
    agent = FakeAgent(script=[text_response("All done.")])

    result = agent.run_tool_loop("system", "prompt", adapters, step_budget=5)

    assert result.narrative == "All done."
    assert result.turns == 1
    assert result.tool_calls == []
    assert not result.budget_exhausted
    assert [t["name"] for t in agent.calls[0]["tools"]] == ["toolX", "toolY"]


def test_tool_results_return_in_request_order(adapters):
    agent = FakeAgent(
        script=[
            tool_response(("toolY", {"n": 1}), ("toolX", {"n": 2}), ("toolY", {"n": 3})),
            text_response("Summary."),
        ]
    )

    result = agent.run_tool_loop("system", "prompt", adapters, step_budget=5)

    assert result.turns == 2
    assert [c.tool for c in result.tool_calls] == ["toolY", "toolX", "toolY"]
    second_turn = agent.calls[1]["messages"]
    tool_messages = [m for m in second_turn if m["role"] == "tool"]
    assert [m["tool_call_id"] for m in tool_messages] == ["toolu_0", "toolu_1", "toolu_2"]
    assert [m["content"]["summary"] for m in tool_messages] == ["y:1", "x:2", "y:3"]


def test_unknown_tool_gets_error_result(adapters):
    agent = FakeAgent(script=[tool_response(("toolZ", {})), text_response("Recovered.")])

    result = agent.run_tool_loop("system", "prompt", adapters, step_budget=5)

    assert result.narrative == "Recovered."
    assert result.tool_calls[0].status == InvocationStatus.ERROR
    assert "Unknown tool: toolZ" in result.tool_calls[0].summary


def test_failed_tool_calls_are_logged(adapters, caplog):
    agent = FakeAgent(script=[tool_response(("toolZ", {}), ("toolX", {"n": 1})), text_response("Done.")])

    with caplog.at_level("WARNING", logger="cost_analyzer.agent.base"):
        agent.run_tool_loop("system", "prompt", adapters, step_budget=5)

    failures = [r.getMessage() for r in caplog.records if r.name == "cost_analyzer.agent.base" and r.levelname == "WARNING"]
    assert failures == ["Tool toolZ failed: Unknown tool: toolZ. Available: toolX, toolY"]


def test_loop_stops_at_step_budget(adapters):
    """A model that always asks for another tool still terminates."""
    agent = FakeAgent(
        responder=lambda system, messages, tools: tool_response(
            ("toolX", {"n": len(messages)}), text="Still looking."
        )
    )

    result = agent.run_tool_loop("system", "prompt", adapters, step_budget=3)

    assert result.turns == 3
    assert len(agent.calls) == 3
    assert result.budget_exhausted
    assert result.narrative == "Still looking."
    assert len(result.tool_calls) == 3


def test_budget_exhaustion_returns_last_non_empty_text(adapters):
    agent = FakeAgent(
        script=[
            tool_response(("toolX", {}), text="Interim findings."),
            tool_response(("toolX", {})),
        ]
    )

    result = agent.run_tool_loop("system", "prompt", adapters, step_budget=2)

    assert result.budget_exhausted
    assert result.narrative == "Interim findings."


def test_model_errors_propagate(adapters):
    agent = FakeAgent(script=[RuntimeError("provider down")])

    with pytest.raises(RuntimeError, match="provider down"):
        agent.run_tool_loop("system", "prompt", adapters, step_budget=5)


def test_step_budget_must_be_positive(adapters):
    with pytest.raises(ValueError):
        FakeAgent().run_tool_loop("system", "prompt", adapters, step_budget=0)


def test_chart_results_reach_the_model_as_paths(store, credentials):
    data_source = FakeDataSource(handlers={"toolX": lambda params, region: chart_result()})

    agent = FakeAgent(script=[tool_response(("toolX", {})), text_response("Done.")])
    registry = ToolRegistry(
        data_source, store, visualization=VisualizationPipeline(FakeRenderer(), store, agent)
    )
    adapters = registry.bind(["toolX"], ToolBinding("S3-us-east-1", "exec-1", credentials, "us-east-1"))

    agent.run_tool_loop("system", "prompt", adapters, step_budget=3)

    payload = agent.calls[1]["messages"][-1]["content"]
    assert payload["chartPath"].endswith("-chart.png")
    assert payload["datapointsPath"].endswith("-data.json")
