"""Tests for the day discussion phase."""

import random

import pytest

from conftest import ScriptedAgentClient
from mafiasim.agents.base import AgentQueryError, Decision, QueryKind
from mafiasim.core.discussion import MAX_MESSAGE_LENGTH, DiscussionPhase, clean_message
from mafiasim.core.enums import GamePhase

TALK = QueryKind.DISCUSSION


def speak(text):
    return Decision(thought="thinking", message=text, action="SKIP")


class TestCleanMessage:
    def test_strips_wrapping_quotes(self):
        assert clean_message('"I trust Player_3."') == "I trust Player_3."
        assert clean_message("'Hi'") == "Hi"

    def test_collapses_whitespace(self):
        assert clean_message("  Player_2   is\n\nlying  ") == "Player_2 is lying"

    def test_truncates_long_messages(self):
        cleaned = clean_message("x" * 800)
        assert len(cleaned) == MAX_MESSAGE_LENGTH
        assert cleaned.endswith("...")

    def test_empty(self):
        assert clean_message("") == ""
        assert clean_message(None) == ""
        assert clean_message('""') == ""


@pytest.mark.asyncio
async def test_every_alive_player_speaks_each_round(game_config, game_state, game_logger):
    game_config.discussion_rounds = 2
    game_state.get_player("Player_4").kill()
    client = ScriptedAgentClient(default=lambda player, query: speak(f"{player.id} here"))
    phase = DiscussionPhase(game_config, client, game_logger, random.Random(5))

    result = await phase.execute(game_state)

    assert game_state.phase is GamePhase.DISCUSSION
    assert len(result.rounds) == 2
    speakers = [pid for pid, _ in client.calls_for(TALK)]
    assert len(speakers) == 8
    assert sorted(speakers[:4]) == ["Player_1", "Player_2", "Player_3", "Player_5"]
    assert sorted(speakers[4:]) == ["Player_1", "Player_2", "Player_3", "Player_5"]
    assert 'Player_1: "Player_1 here"' in game_state.public_log
    assert game_state.get_player("Player_1").context_memory.count('You said: "Player_1 here"') == 2


@pytest.mark.asyncio
async def test_speakers_see_earlier_statements_in_round(game_config, game_state, game_logger):
    client = ScriptedAgentClient(default=lambda player, query: speak(f"I am {player.id}"))
    phase = DiscussionPhase(game_config, client, game_logger, random.Random(1))

    await phase.execute(game_state)

    calls = client.calls_for(TALK)
    first_id, first_query = calls[0]
    assert "Nobody has spoken yet." in first_query.prompt
    for _, later_query in calls[1:]:
        assert f'{first_id}: "I am {first_id}"' in later_query.prompt


@pytest.mark.asyncio
async def test_silence_and_failure(game_config, game_state, game_logger):
    client = ScriptedAgentClient(default=lambda player, query: speak("ok"))
    client.on("Player_2", TALK, speak(""))
    client.on("Player_3", TALK, AgentQueryError("gave up"))
    phase = DiscussionPhase(game_config, client, game_logger, random.Random(2))

    result = await phase.execute(game_state)

    assert result.silent == ["Player_2"]
    assert result.failed == ["Player_3"]
    assert "Player_2 remained silent." in game_state.public_log
    assert not any(entry.startswith("Player_3") for entry in game_state.public_log)
    assert "Player_3 failed to respond." in result.rounds[0]


@pytest.mark.asyncio
async def test_zero_rounds(game_config, game_state, game_logger):
    game_config.discussion_rounds = 0
    client = ScriptedAgentClient()

    result = await DiscussionPhase(game_config, client, game_logger).execute(game_state)

    assert result.rounds == []
    assert client.calls == []
