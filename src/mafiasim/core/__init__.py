"""Game rules, state and phases."""

from .config import ConfigurationError, GameConfig
from .enums import EngineState, Faction, GamePhase, Role, Status
from .game_state import GameState, Player

__all__ = [
    "ConfigurationError",
    "GameConfig",
    "EngineState",
    "Faction",
    "GamePhase",
    "Role",
    "Status",
    "GameState",
    "Player",
]
