"""Action validation.

Checks that an agent's chosen action follows the game rules. Pure functions of
(actor, action, state): no side effects beyond a warning log line.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .enums import GamePhase, Role
from .game_state import GameState, Player

logger = logging.getLogger(__name__)

SKIP = "SKIP"
GUILTY = "GUILTY"
INNOCENT = "INNOCENT"


@dataclass(frozen=True)
class ValidationResult:
    """Accept, or reject with a reason."""

    valid: bool
    error_message: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(True)

    @classmethod
    def reject(cls, reason: str) -> "ValidationResult":
        return cls(False, reason)

    def __bool__(self) -> bool:
        return self.valid


def _mafia_night_rule(actor: Player, target: Player) -> ValidationResult:
    if target.is_mafia:
        return ValidationResult.reject("Cannot target ally: fellow Mafia member")
    return ValidationResult.accept()


def _any_alive_target(actor: Player, target: Player) -> ValidationResult:
    return ValidationResult.accept()


def _no_night_action(actor: Player, target: Player) -> ValidationResult:
    return ValidationResult.reject("Villagers have no night action")


# Night targeting rule per role
NIGHT_RULES: Dict[Role, Callable[[Player, Player], ValidationResult]] = {
    Role.MAFIA: _mafia_night_rule,
    Role.SHERIFF: _any_alive_target,
    Role.DOCTOR: _any_alive_target,
    Role.VILLAGER: _no_night_action,
}

# Roles allowed to pick themselves
SELF_TARGET_ROLES = frozenset({Role.DOCTOR})


def is_skip(action: Optional[str]) -> bool:
    return action is not None and action.strip().upper() == SKIP


def is_verdict(action: Optional[str]) -> bool:
    return action is not None and action.strip().upper() in (GUILTY, INNOCENT)


class ActionValidator:
    """Validates actions returned by agents against the game rules."""

    def validate(self, actor: Player, action: Optional[str], state: GameState) -> ValidationResult:
        """Validate any action token: SKIP, GUILTY, INNOCENT or a player id."""
        if action is None or not action.strip():
            return ValidationResult.reject("No action provided")

        if is_skip(action):
            return ValidationResult.accept()

        if is_verdict(action):
            if state.phase is GamePhase.VOTING:
                return ValidationResult.accept()
            return ValidationResult.reject("GUILTY/INNOCENT not valid: not in judgment phase")

        return self.validate_target(actor, action.strip(), state)

    def validate_target(self, actor: Player, target_id: str, state: GameState) -> ValidationResult:
        """Validate a player id chosen as target."""
        target = state.get_player(target_id)
        if target is None:
            logger.warning(f"Invalid target {target_id} by {actor.id}: player not found")
            return ValidationResult.reject(f"Player {target_id} does not exist")

        if not target.alive:
            logger.warning(f"Invalid target {target_id} by {actor.id}: player is dead")
            return ValidationResult.reject(f"Player {target_id} is dead")

        if target.id == actor.id:
            if actor.role in SELF_TARGET_ROLES:
                return ValidationResult.accept()
            logger.warning(f"Invalid self-target by {actor.id}")
            return ValidationResult.reject("Cannot target yourself")

        if state.phase is GamePhase.NIGHT:
            return NIGHT_RULES[actor.role](actor, target)

        return ValidationResult.accept()

    def validate_nomination(
        self, nominator: Player, target_id: Optional[str], state: GameState
    ) -> ValidationResult:
        """Validate a trial nomination. Abstaining is always allowed."""
        if target_id is None or not target_id.strip() or is_skip(target_id):
            return ValidationResult.accept()

        if target_id.strip() == nominator.id:
            return ValidationResult.reject("Cannot nominate yourself")

        return self.validate_target(nominator, target_id.strip(), state)
