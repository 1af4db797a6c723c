import pytest
from fastapi.testclient import TestClient

from filmcrew.agents.orchestrator import Orchestrator
from filmcrew.web.server import create_app


@pytest.fixture
def client(orchestrator: Orchestrator) -> TestClient:
    return TestClient(create_app(orchestrator))


def test_list_agents_splits_primary_and_subagents(client):
    response = client.get("/api/agents")

    assert response.status_code == 200
    data = response.json()["data"]
    assert [agent["id"] for agent in data["primary"]] == ["director"]
    assert {"character", "scene"} <= {agent["id"] for agent in data["subagents"]}
    assert response.json()["count"] == len(data["all"])


def test_get_agent_and_missing_agent(client):
    assert client.get("/api/agents/scene").json()["data"]["id"] == "scene"
    assert client.get("/api/agents/nobody").status_code == 404


def test_agent_prompt_and_tools(client):
    prompt = client.get("/api/agents/director/prompt").json()["data"]["prompt"]
    assert "## Your team" in prompt

    tools = client.get("/api/agents/director/tools").json()["data"]
    assert tools["all_tools_allowed"] is True

    malformed = client.get("/api/agents/scene/prompt", params={"context": "{not json"})
    assert malformed.status_code == 200


def test_can_use_tool(client):
    allowed = client.post("/api/agents/scene/can-use-tool", json={"tool_name": "create_scene"})
    denied = client.post("/api/agents/scene/can-use-tool", json={"tool_name": "create_shot"})

    assert allowed.json()["data"]["allowed"] is True
    assert denied.json()["data"]["allowed"] is False
    assert client.post("/api/agents/scene/can-use-tool", json={}).status_code == 400


def test_submit_and_fetch_task(client, orchestrator):
    response = client.post(
        "/api/agents/tasks", json={"description": "Design the villain", "target_agent": "character", "priority": "high"}
    )

    assert response.status_code == 200
    receipt = response.json()["data"]
    assert receipt["target_agent"] == "character"
    assert orchestrator.queue.get(receipt["id"]).priority == 2

    fetched = client.get(f"/api/agents/tasks/{receipt['id']}").json()["data"]
    assert fetched["name"] == "Design the villain"
    assert client.get("/api/agents/tasks/missing").status_code == 404


def test_submit_task_validation(client):
    assert client.post("/api/agents/tasks", json={}).status_code == 400
    assert client.post("/api/agents/tasks", json={"description": "x", "priority": "asap"}).status_code == 400
    fallback = client.post("/api/agents/tasks", json={"user_message": "draw a whale"})
    assert fallback.json()["data"]["description"] == "draw a whale"


def test_list_tasks_filters_and_stats(client):
    for description in ("a", "b", "c"):
        client.post("/api/agents/tasks", json={"description": description})

    assert client.get("/api/agents/tasks").json()["count"] == 3
    assert client.get("/api/agents/tasks", params={"limit": 2}).json()["count"] == 2
    assert client.get("/api/agents/tasks", params={"status": "completed"}).json()["count"] == 0
    assert client.get("/api/agents/tasks/stats").json()["data"]["pending"] == 3


def test_cancel_task(client):
    task_id = client.post("/api/agents/tasks", json={"description": "a"}).json()["data"]["id"]

    assert client.post(f"/api/agents/tasks/{task_id}/cancel").json()["data"]["status"] == "cancelled"
    assert client.post(f"/api/agents/tasks/{task_id}/cancel").status_code == 409
    assert client.post("/api/agents/tasks/missing/cancel").status_code == 404
