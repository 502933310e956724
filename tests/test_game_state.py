"""Tests for game state management."""

import pytest

from mafiasim.agents.prompts.player_templates import PlayerPrompts
from mafiasim.core.enums import GamePhase, Role, Status
from mafiasim.core.game_state import GameState, Player


def test_player_creation():
    """Test player creation."""
    player = Player(id="Player_1", role=Role.SHERIFF, model_id="openai/gpt-4o-mini")

    assert player.id == "Player_1"
    assert player.role == Role.SHERIFF
    assert player.status is Status.ALIVE
    assert player.alive
    assert player.is_town
    assert not player.is_mafia


def test_player_identity_is_id():
    """Players with the same id are equal whatever their role."""
    assert Player(id="Player_1", role=Role.MAFIA) == Player(id="Player_1", role=Role.DOCTOR)
    assert Player(id="Player_1", role=Role.MAFIA) != Player(id="Player_2", role=Role.MAFIA)
    assert len({Player(id="Player_1", role=Role.MAFIA), Player(id="Player_1", role=Role.MAFIA)}) == 1


def test_context_memory_ignores_blank_events():
    """Blank events never reach private memory."""
    player = Player(id="Player_1", role=Role.VILLAGER)
    player.add_to_context("Night 1: Player_3 was killed.")
    player.add_to_context("   ")
    player.add_to_context(None)

    assert player.context_memory == ["Night 1: Player_3 was killed."]
    assert player.memory_text == "Night 1: Player_3 was killed."


def test_attributes_last_write_wins():
    player = Player(id="Player_1", role=Role.SHERIFF)
    player.set_attribute("investigations", ["a"])
    player.set_attribute("investigations", ["a", "b"])

    assert player.get_attribute("investigations") == ["a", "b"]
    assert player.get_attribute("missing", 42) == 42


def test_game_state_initialization():
    """Test game state initialization."""
    state = GameState()

    assert state.day == 1
    assert state.phase == GamePhase.NIGHT
    assert state.players == []
    assert state.public_log == ()


def test_duplicate_player_ids_rejected():
    with pytest.raises(ValueError):
        GameState(players=[Player(id="Player_1", role=Role.MAFIA), Player(id="Player_1", role=Role.VILLAGER)])

    state = GameState(players=[Player(id="Player_1", role=Role.MAFIA)])
    with pytest.raises(ValueError):
        state.add_player(Player(id="Player_1", role=Role.DOCTOR))


def test_alive_players_filtering(game_state):
    """Test filtering alive players."""
    assert game_state.alive_count == 5
    assert game_state.alive_mafia_count == 2
    assert game_state.alive_town_count == 3

    game_state.get_player("Player_5").kill()

    assert game_state.alive_count == 4
    assert game_state.get_player("Player_5") not in game_state.alive_players
    assert [p.id for p in game_state.alive_players_by_role(Role.VILLAGER)] == []


def test_every_death_removes_exactly_one(game_state):
    """Each death lowers the alive count by one; killing the dead changes nothing."""
    counts = [game_state.alive_count]
    for player_id in ("Player_5", "Player_3", "Player_1"):
        game_state.get_player(player_id).kill()
        counts.append(game_state.alive_count)

    assert counts == [5, 4, 3, 2]

    game_state.get_player("Player_1").kill()
    assert game_state.alive_count == 2


def test_get_player(game_state):
    assert game_state.get_player("Player_3").role is Role.SHERIFF
    assert game_state.get_player("Player_99") is None
    assert game_state.get_player(None) is None


def test_public_log_is_phase_stamped(game_state):
    """Entries carry the day and the phase display name."""
    game_state.add_to_public_log("Player_5 was killed during the night.")
    game_state.phase = GamePhase.DISCUSSION
    game_state.add_raw_to_public_log('Player_1: "Hello"')
    game_state.increment_day()
    game_state.phase = GamePhase.VOTING
    game_state.add_to_public_log("No trial today.")
    game_state.add_to_public_log("")

    assert game_state.public_log == (
        "[Day 1 - Night] Player_5 was killed during the night.",
        'Player_1: "Hello"',
        "[Day 2 - Day Voting] No trial today.",
    )
    assert game_state.recent_public_log(1) == ["[Day 2 - Day Voting] No trial today."]
    assert game_state.recent_public_log(0) == []


def test_public_log_cannot_be_mutated_from_outside(game_state):
    game_state.add_to_public_log("event")
    log = game_state.public_log

    assert isinstance(log, tuple)
    assert len(game_state.public_log) == 1


def test_shuffled_alive_players_is_a_permutation(game_state):
    import random

    game_state.get_player("Player_2").kill()
    shuffled = game_state.shuffled_alive_players(random.Random(3))

    assert sorted(p.id for p in shuffled) == sorted(p.id for p in game_state.alive_players)


def test_export_dict(game_state):
    game_state.add_to_public_log("event")
    data = game_state.to_export_dict()

    assert data["day"] == 1
    assert data["phase"] == "night"
    assert data["players"][0] == {
        "id": "Player_1",
        "role": "mafia",
        "model_id": None,
        "status": "alive",
    }
    assert data["public_log"] == ["[Day 1 - Night] event"]


def test_only_villagers_lack_a_night_action(game_state):
    assert [r for r in Role if not r.has_night_action] == [Role.VILLAGER]

    villager_prompt = PlayerPrompts.night_action(game_state.get_player("Player_5"), game_state)
    doctor_prompt = PlayerPrompts.night_action(game_state.get_player("Player_4"), game_state)

    assert villager_prompt.endswith("You have no night action. Set your action to 'SKIP'.")
    assert "Choose a player to protect tonight." in doctor_prompt
    assert "no night action" not in doctor_prompt
