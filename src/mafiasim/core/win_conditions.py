"""Win condition checks, evaluated after every change to the alive counts."""

from typing import Optional

from .enums import Faction
from .game_state import GameState


def check_winner(state: GameState) -> Optional[Faction]:
    """
    Check if game has ended and who won.
    Returns Faction.MAFIA, Faction.TOWN, or None
    """
    mafia_alive = state.alive_mafia_count
    town_alive = state.alive_town_count

    # Mafia wins when they equal or outnumber the Town
    if mafia_alive >= town_alive and mafia_alive > 0:
        return Faction.MAFIA
    if mafia_alive == 0:
        return Faction.TOWN
    return None


def is_game_over(state: GameState) -> bool:
    return check_winner(state) is not None


def town_margin(state: GameState) -> int:
    """Number of Town deaths still tolerable before the Mafia wins (display only)."""
    return max(0, state.alive_town_count - state.alive_mafia_count - 1)


def game_status(state: GameState) -> str:
    """Human-readable status block for the console."""
    mafia_alive = state.alive_mafia_count
    town_alive = state.alive_town_count

    lines = [
        "=== Game Status ===",
        f"Day: {state.day}",
        f"Phase: {state.phase.display_name}",
        f"Alive: {state.alive_count} players",
        f"  - Mafia: {mafia_alive}",
        f"  - Town: {town_alive}",
        f"Town margin: {town_margin(state)}",
    ]
    if mafia_alive == town_alive - 1:
        lines.append("CRITICAL: Town is one mistake from losing!")
    elif mafia_alive == 1:
        lines.append("Only one Mafia remains. Town is close to victory.")
    return "\n".join(lines)
