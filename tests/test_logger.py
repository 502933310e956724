"""Tests for the game logger and the random agent."""

import logging
import random

import pytest

from mafiasim.agents.base import AgentQuery, QueryKind
from mafiasim.agents.random_agent import RandomAgentClient
from mafiasim.core.enums import GamePhase
from mafiasim.utils.logger import EventType, GameLogger


def test_events_are_ordered_and_typed(game_state):
    game_logger = GameLogger()
    mafioso = game_state.get_player("Player_1")

    game_logger.log_phase_transition(game_state)
    game_logger.log_private_thought(mafioso, "Player_5 looks easy.")
    game_logger.log_action(mafioso, "Mafia vote: Player_5")
    game_state.phase = GamePhase.DISCUSSION
    game_logger.log_public_event("Player_5 was killed.", game_state)
    game_logger.log_message(mafioso, "Tragic.")

    assert [e.seq for e in game_logger.events] == [1, 2, 3, 4, 5]
    assert [e.type for e in game_logger.events] == [
        EventType.PHASE_TRANSITION,
        EventType.PRIVATE_THOUGHT,
        EventType.ACTION,
        EventType.PUBLIC_EVENT,
        EventType.MESSAGE,
    ]
    assert game_logger.events[0].text == "=== NIGHT 1 ==="
    assert game_logger.events[3].text == "[Day 1 - Day Discussion] Player_5 was killed."
    assert game_logger.events[1].actor == "Player_1"
    assert game_logger.events[4].to_dict()["type"] == "MESSAGE"


def test_blank_thoughts_are_not_recorded(game_state):
    game_logger = GameLogger()
    assert game_logger.log_private_thought(game_state.get_player("Player_1"), "  ") is None
    assert game_logger.events == []


def test_death_and_game_end(game_state):
    game_logger = GameLogger()
    victim = game_state.get_player("Player_5")
    victim.kill()

    hidden = game_logger.log_death(victim, "killed by the Mafia", reveal_role=False)
    shown = game_logger.log_death(victim, "executed", reveal_role=True)
    end = game_logger.log_game_end("TOWN", game_state)

    assert "Villager" not in hidden.text
    assert "They were a Villager" in shown.text
    assert "Winner: TOWN" in end.text
    assert "Player_5 - Villager (DEAD)" in end.text
    assert game_logger.events_of_type(EventType.DEATH) == [hidden, shown]


def test_transcript_file(tmp_path, game_state):
    game_logger = GameLogger(str(tmp_path))
    game_logger.log_phase_transition(game_state)
    game_logger.log_error("Agent failed", ValueError("bad json"))

    text = game_logger.log_file.read_text()
    assert text.startswith("=== AI MAFIA GAME LOG ===")
    assert "[PHASE_TRANSITION] === NIGHT 1 ===" in text
    assert "[ERROR] Agent failed: bad json" in text


def test_public_events_go_to_game_loggers(caplog, game_state):
    game_logger = GameLogger()
    with caplog.at_level(logging.INFO, logger="mafiasim"):
        game_logger.log_public_event("Player_2 was found innocent.")

    assert any(r.name == "mafiasim.game.public" for r in caplog.records)


@pytest.mark.asyncio
async def test_random_agent_picks_from_candidates(game_state):
    agent = RandomAgentClient(random.Random(0))
    player = game_state.get_player("Player_3")
    query = AgentQuery(kind=QueryKind.NIGHT_ACTION, prompt="", candidates=["Player_1", "Player_2"])

    picks = {(await agent.ask(player, query)).action for _ in range(30)}

    assert picks == {"Player_1", "Player_2"}


@pytest.mark.asyncio
async def test_random_agent_skips_without_candidates(game_state):
    agent = RandomAgentClient(random.Random(0))
    player = game_state.get_player("Player_5")

    decision = await agent.ask(player, AgentQuery(kind=QueryKind.NOMINATION, prompt=""))
    speech = await agent.ask(player, AgentQuery(kind=QueryKind.DEFENSE, prompt=""))

    assert decision.is_skip
    assert speech.is_skip
    assert speech.has_message


@pytest.mark.asyncio
async def test_random_agent_skip_probability(game_state):
    player = game_state.get_player("Player_4")
    query = AgentQuery(kind=QueryKind.NIGHT_ACTION, prompt="", candidates=["Player_1", "Player_2"])

    always_skips = RandomAgentClient(random.Random(0), skip_probability=1.0)
    never_skips = RandomAgentClient(random.Random(0), skip_probability=0.0)

    for _ in range(10):
        assert (await always_skips.ask(player, query)).is_skip
        assert not (await never_skips.ask(player, query)).is_skip
