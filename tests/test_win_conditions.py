"""Tests for win condition checks."""

import itertools

import pytest

from mafiasim.core.enums import Faction, Role
from mafiasim.core.game_state import GameState, Player
from mafiasim.core.win_conditions import check_winner, game_status, is_game_over, town_margin


def make_state(mafia_alive: int, town_alive: int, dead: int = 1) -> GameState:
    players = []
    for i in range(mafia_alive):
        players.append(Player(id=f"Player_m{i}", role=Role.MAFIA))
    for i in range(town_alive):
        players.append(Player(id=f"Player_t{i}", role=Role.VILLAGER))
    for i in range(dead):
        corpse = Player(id=f"Player_d{i}", role=Role.MAFIA if i % 2 else Role.DOCTOR)
        corpse.kill()
        players.append(corpse)
    return GameState(players=players)


@pytest.mark.parametrize("mafia,town", list(itertools.product(range(0, 5), range(0, 7))))
def test_winner_matches_alive_counts(mafia, town):
    """Mafia wins at parity, Town when no Mafia remain, otherwise nobody yet."""
    winner = check_winner(make_state(mafia, town))

    if mafia >= town and mafia > 0:
        assert winner is Faction.MAFIA
    elif mafia == 0:
        assert winner is Faction.TOWN
    else:
        assert winner is None


def test_dead_players_do_not_count():
    state = make_state(1, 2, dead=4)
    assert check_winner(state) is None
    assert not is_game_over(state)


def test_town_margin():
    assert town_margin(make_state(1, 4)) == 2
    assert town_margin(make_state(2, 3)) == 0
    assert town_margin(make_state(3, 2)) == 0


def test_game_status_flags_critical_state():
    status = game_status(make_state(2, 3))

    assert "Mafia: 2" in status
    assert "CRITICAL" in status
