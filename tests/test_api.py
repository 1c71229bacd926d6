import json

import pytest
from fastapi.testclient import TestClient

from cost_analyzer.api.dependencies import get_agent, get_config, get_data_source, get_renderer
from cost_analyzer.config import AnalysisConfig, Config, CredentialsConfig
from cost_analyzer.datasource.ranking import COST_TOOL
from main import app

from conftest import FakeAgent, FakeDataSource, FakeRenderer, chart_result, cost_result, text_response, tool_response


def analyst(system, messages, tools):
    if len(messages) == 1:
        return tool_response(*[(t["name"], {}) for t in tools])
    return text_response("Narrative.")


@pytest.fixture
def creds_file(tmp_path):
    path = tmp_path / ".aws-creds.json"
    path.write_text(
        json.dumps(
            {"Credentials": {"AccessKeyId": "AKIAAPITEST00001", "SecretAccessKey": "s"}, "region": "us-east-1"}
        )
    )
    return path


@pytest.fixture
def api_config(tmp_path, creds_file):
    return Config(
        analysis=AnalysisConfig(output_dir=str(tmp_path / "output"), step_budget=3),
        credentials=CredentialsConfig(path=str(creds_file)),
    )


@pytest.fixture
def agent():
    return FakeAgent(
        responder=analyst,
        plan={"steps": [{"title": "A review", "subject": "A", "subCategory": "us-east-1", "tools": ["toolX"]}]},
    )


@pytest.fixture
def client(api_config, agent):
    data_source = FakeDataSource(
        handlers={
            COST_TOOL: lambda params, region: cost_result({"A, us-east-1": 42.0}),
            "toolX": lambda params, region: chart_result(),
        }
    )
    app.dependency_overrides[get_config] = lambda: api_config
    app.dependency_overrides[get_agent] = lambda: agent
    app.dependency_overrides[get_data_source] = lambda: data_source
    app.dependency_overrides[get_renderer] = lambda: FakeRenderer()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/").json()["status"] == "running"
    assert client.get("/api/health").json() == {
        "status": "healthy",
        "services": {"api": "running"},
        "version": "1.0.0",
    }


def test_list_tools(client):
    body = client.get("/api/tools").json()
    assert body["total"] == 1
    assert body["tools"][0]["name"] == "toolX"


def test_validate_credentials(client, creds_file):
    response = client.post("/api/credentials/validate", json={})

    assert response.status_code == 200
    assert response.json() == {"valid": True, "region": "us-east-1", "access_key": "AKIAAPIT..."}


def test_validate_credentials_reports_missing_fields(client, tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"Credentials": {}}))

    response = client.post("/api/credentials/validate", json={"path": str(bad)})

    assert response.status_code == 400
    assert "Credentials.AccessKeyId" in response.json()["detail"]


def test_create_example_credentials(client, tmp_path):
    target = tmp_path / "new-creds.json"

    first = client.post("/api/credentials/example", json={"path": str(target)})
    second = client.post("/api/credentials/example", json={"path": str(target)})

    assert first.status_code == 201
    assert json.loads(target.read_text())["Credentials"]["AccessKeyId"] == "AKIA..."
    assert second.status_code == 409


def test_analyze_runs_the_pipeline(client):
    response = client.post("/api/analyze", json={"top_n": 5})

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "done"
    assert body["stats"]["total_cost"] == 42.0
    assert body["stats"]["charts_generated"] == 1
    assert body["steps"][0]["status"] == "completed"
    assert body["report_path"].endswith("report.md")


def test_analyze_abort_returns_422(client, agent):
    agent.plan = RuntimeError("no plan today")

    response = client.post("/api/analyze", json={})

    assert response.status_code == 422
    assert "no plan today" in response.json()["detail"]


def test_analyze_step(client):
    response = client.post(
        "/api/analyze-step", json={"service": "AWS Lambda", "region": "us-east-1", "tools": ["toolX"]}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["result"]["status"] == "completed"
    assert body["charts_generated"] == 1
    assert body["report_path"] == body["result"]["report"]["path"]
    assert body["report_path"].endswith("-analysis.md")
    assert "AWS_Lambda-us-east-1-" in body["report_path"]


def test_analyze_step_with_unknown_tool(client):
    response = client.post(
        "/api/analyze-step", json={"service": "AWS Lambda", "region": "us-east-1", "tools": ["toolZ"]}
    )

    body = response.json()
    assert body["result"]["status"] == "failed"
    assert body["result"]["narrative"].startswith("Step failed: Invalid tools provided: toolZ")
