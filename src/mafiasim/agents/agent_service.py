"""Flask API service for out-of-process player agents.

Each agent runs in its own process or container and answers the engine's
questions over HTTP. The engine side is ServiceAgentClient.
"""

import asyncio
import logging
import os
from typing import Optional

from flask import Flask, jsonify, request
from pydantic import ValidationError

from ..core.enums import Role, Status
from ..core.game_state import Player
from .base import AgentClient, AgentQuery, AgentQueryError, QueryKind
from .random_agent import RandomAgentClient

logger = logging.getLogger(__name__)


def deserialize_player(data: dict) -> Player:
    """Rebuild the asking player from the request payload."""
    player = Player(
        id=data["id"],
        role=Role(data["role"]),
        model_id=data.get("model_id"),
        status=Status(data.get("status", Status.ALIVE.value)),
    )
    for entry in data.get("context_memory", []):
        player.add_to_context(entry)
    return player


def deserialize_query(data: dict) -> AgentQuery:
    return AgentQuery(
        kind=QueryKind(data["kind"]),
        prompt=data.get("prompt", ""),
        candidates=list(data.get("candidates", [])),
        system_prompt=data.get("system_prompt", ""),
    )


def create_app(agent: Optional[AgentClient] = None, player_id: str = "unknown") -> Flask:
    """Build the service around an AgentClient (random play by default)."""
    app = Flask(__name__)
    app.config["AGENT"] = agent or RandomAgentClient()
    app.config["PLAYER_ID"] = player_id

    @app.route("/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify(
            {
                "status": "ok",
                "player_id": app.config["PLAYER_ID"],
                "agent": type(app.config["AGENT"]).__name__,
            }
        )

    @app.route("/ask", methods=["POST"])
    def ask():
        """Answer one question with a decision."""
        data = request.get_json(silent=True)
        if not data or "player" not in data or "query" not in data:
            return jsonify({"error": "Expected 'player' and 'query'"}), 400

        try:
            player = deserialize_player(data["player"])
            query = deserialize_query(data["query"])
        except (KeyError, ValueError) as e:
            return jsonify({"error": f"Bad request: {e}"}), 400

        try:
            decision = asyncio.run(app.config["AGENT"].ask(player, query))
        except (AgentQueryError, ValidationError) as e:
            logger.error(f"Agent for {player.id} failed: {e}")
            return jsonify({"error": str(e)}), 502

        logger.info(f"{player.id} answered {query.kind.value}: {decision.action}")
        return jsonify(decision.model_dump())

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)

    port = int(os.environ.get("PORT", 5000))
    player_id = os.environ.get("PLAYER_ID", "unknown")

    logger.info(f"Starting agent service for {player_id} on port {port}")
    create_app(player_id=player_id).run(host="0.0.0.0", port=port, debug=False)
