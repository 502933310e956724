"""Tests for the Flask agent service."""

import random

import pytest

from mafiasim.agents.agent_service import create_app
from mafiasim.agents.base import AgentClient, AgentQueryError
from mafiasim.agents.random_agent import RandomAgentClient


class _FailingAgent(AgentClient):
    async def ask(self, player, query):
        raise AgentQueryError("model unavailable")


def ask_payload(kind="nomination", candidates=("Player_1", "Player_2", "SKIP")):
    return {
        "player": {
            "id": "Player_4",
            "role": "doctor",
            "model_id": "openai/gpt-4o-mini",
            "status": "alive",
            "context_memory": ["You are Player_4. Your role is Doctor."],
        },
        "query": {
            "kind": kind,
            "prompt": "Nominate someone.",
            "candidates": list(candidates),
            "system_prompt": "",
        },
    }


@pytest.fixture
def client():
    app = create_app(RandomAgentClient(random.Random(0)), player_id="Player_4")
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.get_json() == {
        "status": "ok",
        "player_id": "Player_4",
        "agent": "RandomAgentClient",
    }


def test_ask_returns_decision(client):
    response = client.post("/ask", json=ask_payload())

    assert response.status_code == 200
    data = response.get_json()
    assert data["action"] in ("Player_1", "Player_2", "SKIP")
    assert set(data) == {"thought", "message", "action"}


def test_ask_discussion_has_message(client):
    response = client.post("/ask", json=ask_payload(kind="discussion", candidates=()))

    data = response.get_json()
    assert data["action"] == "SKIP"
    assert data["message"]


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"player": {"id": "Player_4", "role": "doctor"}},
        {"player": {"id": "Player_4", "role": "jester"}, "query": {"kind": "nomination"}},
        {"player": {"id": "Player_4", "role": "doctor"}, "query": {"kind": "lunch"}},
    ],
)
def test_bad_payload(client, payload):
    response = client.post("/ask", json=payload)
    assert response.status_code == 400


def test_agent_failure_is_bad_gateway():
    app = create_app(_FailingAgent())
    response = app.test_client().post("/ask", json=ask_payload())

    assert response.status_code == 502
    assert "model unavailable" in response.get_json()["error"]
