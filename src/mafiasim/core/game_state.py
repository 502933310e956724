"""Core game state data structures."""

import random
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .enums import GamePhase, Role, Status


@dataclass(eq=False)
class Player:
    """Represents a single agent playing the game.

    Identity is the id: two Player objects with the same id are equal
    regardless of role or status.
    """

    id: str  # e.g., "Player_1"
    role: Role
    model_id: Optional[str] = None
    status: Status = Status.ALIVE

    # Private memory, visible only to this player. Append-only.
    context_memory: List[str] = field(default_factory=list)

    # Role-specific accumulated knowledge, e.g. the Sheriff's investigations
    attributes: Dict[str, Any] = field(default_factory=dict)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Player):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def alive(self) -> bool:
        return self.status is Status.ALIVE

    @property
    def is_mafia(self) -> bool:
        return self.role.is_mafia

    @property
    def is_town(self) -> bool:
        return not self.role.is_mafia

    def kill(self) -> None:
        """Mark the player dead. There is no way back."""
        self.status = Status.DEAD

    def add_to_context(self, event: Optional[str]) -> None:
        """Append an event to this player's private memory (blank events are ignored)."""
        if event and event.strip():
            self.context_memory.append(event)

    def clear_context(self) -> None:
        """Reset private memory. Not used during normal play."""
        self.context_memory.clear()

    @property
    def memory_text(self) -> str:
        return "\n".join(self.context_memory)

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def get_attribute(self, key: str, default: Any = None) -> Any:
        return self.attributes.get(key, default)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role.value,
            "model_id": self.model_id,
            "status": self.status.value,
        }

    def __repr__(self) -> str:
        return f"Player(id={self.id!r}, role={self.role.name}, status={self.status.name})"


@dataclass
class GameState:
    """Complete game state, owned by the engine for the lifetime of one game."""

    day: int = 1
    phase: GamePhase = GamePhase.NIGHT

    players: List[Player] = field(default_factory=list)

    # Public record, visible to every player. Append-only.
    _public_log: List[str] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self):
        ids = [p.id for p in self.players]
        if len(ids) != len(set(ids)):
            raise ValueError("Player ids must be unique")

    # ------------------------------------------------------------------
    # Players
    # ------------------------------------------------------------------

    def add_player(self, player: Player) -> None:
        """Add a player during setup."""
        if self.get_player(player.id) is not None:
            raise ValueError(f"Duplicate player id: {player.id}")
        self.players.append(player)

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        """Get player by ID."""
        if player_id is None:
            return None
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    @property
    def alive_players(self) -> List[Player]:
        """Get list of alive players."""
        return [p for p in self.players if p.alive]

    @property
    def alive_mafia(self) -> List[Player]:
        return [p for p in self.alive_players if p.is_mafia]

    @property
    def alive_town(self) -> List[Player]:
        return [p for p in self.alive_players if p.is_town]

    def alive_players_by_role(self, role: Role) -> List[Player]:
        return [p for p in self.alive_players if p.role is role]

    def shuffled_alive_players(self, rng: Optional[random.Random] = None) -> List[Player]:
        """Alive players in a fresh random order."""
        shuffled = list(self.alive_players)
        (rng or random).shuffle(shuffled)
        return shuffled

    @property
    def alive_count(self) -> int:
        return len(self.alive_players)

    @property
    def alive_mafia_count(self) -> int:
        return len(self.alive_mafia)

    @property
    def alive_town_count(self) -> int:
        return len(self.alive_town)

    # ------------------------------------------------------------------
    # Day / phase
    # ------------------------------------------------------------------

    def increment_day(self) -> None:
        self.day += 1

    # ------------------------------------------------------------------
    # Public log
    # ------------------------------------------------------------------

    @property
    def public_log(self) -> Tuple[str, ...]:
        return tuple(self._public_log)

    def add_to_public_log(self, event: Optional[str]) -> None:
        """Append a phase-stamped entry: ``[Day N - Phase] event``."""
        if event and event.strip():
            self._public_log.append(f"[Day {self.day} - {self.phase.display_name}] {event}")

    def add_raw_to_public_log(self, event: Optional[str]) -> None:
        """Append an entry verbatim."""
        if event and event.strip():
            self._public_log.append(event)

    @property
    def public_log_text(self) -> str:
        return "\n".join(self._public_log)

    def recent_public_log(self, count: int) -> List[str]:
        if count <= 0:
            return []
        return list(self._public_log[-count:])

    def to_export_dict(self) -> Dict[str, Any]:
        """Serializable snapshot for reports."""
        return {
            "day": self.day,
            "phase": self.phase.value,
            "players": [p.to_dict() for p in self.players],
            "public_log": list(self._public_log),
        }

    def __str__(self) -> str:
        return (
            f"GameState(day={self.day}, phase={self.phase.name}, "
            f"alive={self.alive_count}/{len(self.players)})"
        )
