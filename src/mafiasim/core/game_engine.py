"""Async game engine for mafiasim.

Orchestrates the night / discussion / voting cycle, checking for a winner
after every phase, until one faction wins or the day limit is reached.
"""

import asyncio
import json
import logging
import random
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..agents.base import AgentClient
from ..agents.http_agent import OpenRouterAgentClient, ServiceAgentClient
from ..agents.random_agent import RandomAgentClient
from ..utils.logger import GameLogger
from .config import GameConfig
from .discussion import DiscussionPhase
from .enums import EngineState, Faction, Role
from .game_state import GameState, Player
from .night import NightPhase, NightResult
from .validation import ActionValidator
from .voting import VotingPhase, VotingResult
from .win_conditions import check_winner, game_status

logger = logging.getLogger(__name__)


def create_agent_client(
    config: GameConfig, rng: Optional[random.Random] = None, offline: bool = False
) -> AgentClient:
    """Pick the agent transport for this configuration."""
    if offline:
        return RandomAgentClient(rng)
    if config.agent_base_url:
        logger.info(f"Using agent services at {config.agent_base_url}")
        return ServiceAgentClient(config)
    if config.api_key:
        return OpenRouterAgentClient(config)
    logger.warning("OPENROUTER_API_KEY not set. Players will act at random.")
    return RandomAgentClient(rng)


@dataclass
class GameResult:
    """Final summary of one game."""

    winner: Optional[Faction]
    days_played: int
    completed: bool
    reason: str = ""
    error: Optional[str] = None
    night_results: List[NightResult] = field(default_factory=list, repr=False)
    voting_results: List[VotingResult] = field(default_factory=list, repr=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner.value if self.winner else None,
            "days_played": self.days_played,
            "completed": self.completed,
            "reason": self.reason,
            "error": self.error,
        }


class GameEngine:
    """Game engine orchestrating the Mafia game loop."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        agent_client: Optional[AgentClient] = None,
        rng: Optional[random.Random] = None,
        game_logger: Optional[GameLogger] = None,
    ):
        """Initialize game engine.

        Args:
            config: Game configuration (uses defaults if None)
            agent_client: Answers agent queries (chosen from config if None)
            rng: Source of randomness (seeded from config.seed if None)
            game_logger: Display collaborator (created from config if None)

        Raises:
            ConfigurationError: if the configuration is inconsistent
        """
        self.config = config or GameConfig()
        # Fail before any state exists
        self.config.validate()

        self.rng = rng or random.Random(self.config.seed)
        self.game_state = GameState()
        self.engine_state = EngineState.INITIALIZING

        self.game_logger = game_logger or GameLogger(
            self.config.log_dir if self.config.save_transcripts else None
        )
        self._owns_client = agent_client is None
        self.agent_client = agent_client or create_agent_client(self.config, self.rng)

        validator = ActionValidator()
        self.night_phase = NightPhase(
            self.config, self.agent_client, validator, self.game_logger, self.rng
        )
        self.discussion_phase = DiscussionPhase(
            self.config, self.agent_client, self.game_logger, self.rng
        )
        self.voting_phase = VotingPhase(
            self.config, self.agent_client, validator, self.game_logger
        )

        self.result: Optional[GameResult] = None
        self._night_results: List[NightResult] = []
        self._voting_results: List[VotingResult] = []

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _assign_roles(self) -> Dict[int, Role]:
        """Map player numbers to roles: pinned slots first, the rest at random."""
        config = self.config
        roles: Dict[int, Role] = {}

        for number in config.fixed_mafia_players:
            roles[number] = Role.MAFIA
        if config.fixed_sheriff_player is not None:
            roles[config.fixed_sheriff_player] = Role.SHERIFF
        if config.fixed_doctor_player is not None:
            roles[config.fixed_doctor_player] = Role.DOCTOR

        open_numbers = [n for n in range(1, config.player_count + 1) if n not in roles]
        self.rng.shuffle(open_numbers)

        remaining: List[Role] = [Role.MAFIA] * (config.mafia_count - len(config.fixed_mafia_players))
        if config.fixed_sheriff_player is None:
            remaining.append(Role.SHERIFF)
        if config.fixed_doctor_player is None:
            remaining.append(Role.DOCTOR)
        remaining += [Role.VILLAGER] * (len(open_numbers) - len(remaining))

        for number, role in zip(open_numbers, remaining):
            roles[number] = role
        return roles

    def initialize_players(self) -> None:
        """Create players with their roles. Roles never change afterwards."""
        if self.game_state.players:
            return

        roles = self._assign_roles()
        for number in range(1, self.config.player_count + 1):
            self.game_state.add_player(
                Player(
                    id=f"Player_{number}",
                    role=roles[number],
                    model_id=self.config.model_for_player(number),
                )
            )

        mafia_ids = [p.id for p in self.game_state.players if p.is_mafia]
        for player in self.game_state.players:
            player.add_to_context(
                f"You are {player.id}. Your role is {player.role.display_name}."
            )
            if player.is_mafia:
                allies = [pid for pid in mafia_ids if pid != player.id]
                if allies:
                    player.add_to_context(f"Your fellow Mafia members: {', '.join(allies)}")

        logger.info(f"Initialized {len(self.game_state.players)} players")
        for player in self.game_state.players:
            logger.debug(f"  {player.id}: {player.role.display_name} ({player.model_id})")
        self._display_setup()

    def _display_setup(self) -> None:
        """Log the setup banner and put the roster at the top of the public log."""
        config = self.config
        lines = [
            "=" * 42,
            "AI MAFIA - GAME START",
            "=" * 42,
            f"Players: {config.player_count}",
            f"Mafia: {config.mafia_count}",
            f"Town: {config.town_count} (1 Sheriff, 1 Doctor, {config.villager_count} Villagers)",
            "--- Player Models ---",
        ]
        lines.extend(f"  {p.id}: {p.model_id}" for p in self.game_state.players)
        lines.append("=" * 42)
        logger.info("\n" + "\n".join(lines))

        roster = ", ".join(p.id for p in self.game_state.players)
        self.game_state.add_raw_to_public_log(f"Players: {roster}")

    # ------------------------------------------------------------------
    # Game loop
    # ------------------------------------------------------------------

    async def run_game_async(self) -> GameResult:
        """Run a complete game.

        Errors raised inside a phase end the game as incomplete instead of
        propagating.
        """
        logger.info("=== AI Mafia Game Starting ===")
        self.initialize_players()

        try:
            winner = await self._game_loop()
        except Exception as e:
            logger.error(f"Game aborted during {self.engine_state.value}: {e}", exc_info=True)
            self.game_logger.log_error("Game aborted", e)
            return self._finish(None, completed=False, reason="error", error=str(e))
        finally:
            if self._owns_client:
                await self.agent_client.aclose()

        if winner is None:
            logger.warning(f"Game reached max days ({self.config.max_days})")
            return self._finish(None, completed=False, reason="max days reached")
        return self._finish(winner, completed=True, reason=winner.victory_message)

    async def _game_loop(self) -> Optional[Faction]:
        while True:
            self.engine_state = EngineState.NIGHT
            night_result = await self.night_phase.execute(self.game_state)
            self._night_results.append(night_result)
            self._announce_night(night_result)
            winner = self._check_winner()
            if winner:
                return winner

            self.engine_state = EngineState.DISCUSSION
            await self.discussion_phase.execute(self.game_state)
            winner = self._check_winner()
            if winner:
                return winner

            self.engine_state = EngineState.VOTING
            self._voting_results.append(await self.voting_phase.execute(self.game_state))
            winner = self._check_winner()
            if winner:
                return winner

            if self.game_state.day >= self.config.max_days:
                return None
            self.game_state.increment_day()

    def _announce_night(self, night_result: NightResult) -> None:
        """Publish the dawn summary to the public log and every survivor's memory."""
        state = self.game_state
        reveal = self.config.reveal_roles_on_death
        summary = night_result.public_summary(reveal)

        state.add_to_public_log(summary)
        self.game_logger.log_public_event(summary, state)
        for player in state.alive_players:
            player.add_to_context(f"Night {state.day}: {summary}")

        if night_result.victim is not None:
            self.game_logger.log_death(night_result.victim, "killed by the Mafia", reveal)

    def _check_winner(self) -> Optional[Faction]:
        winner = check_winner(self.game_state)
        if winner is None:
            logger.info(f"\n{game_status(self.game_state)}")
        return winner

    def _finish(
        self,
        winner: Optional[Faction],
        completed: bool,
        reason: str,
        error: Optional[str] = None,
    ) -> GameResult:
        self.engine_state = EngineState.GAME_OVER
        self.result = GameResult(
            winner=winner,
            days_played=self.game_state.day,
            completed=completed,
            reason=reason,
            error=error,
            night_results=list(self._night_results),
            voting_results=list(self._voting_results),
        )
        self.game_logger.log_game_end(winner.name if winner else None, self.game_state)
        if winner is not None:
            logger.info(winner.victory_message)
        usage = self.agent_client.usage
        if usage is not None and usage.requests:
            logger.info("\n" + usage.summary())
        return self.result

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def save_game_report(self, path: Optional[str] = None) -> Path:
        """Write the final state and event transcript as JSON."""
        if path is None:
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            report_path = Path(self.config.log_dir) / f"mafia_report_{timestamp}.json"
        else:
            report_path = Path(path)
        report_path.parent.mkdir(parents=True, exist_ok=True)

        config_data = asdict(self.config)
        config_data.pop("api_key", None)

        report = {
            "result": self.result.to_dict() if self.result else None,
            "config": config_data,
            "state": self.game_state.to_export_dict(),
            "events": [e.to_dict() for e in self.game_logger.events],
            "usage": self.agent_client.usage.to_dict() if self.agent_client.usage else None,
        }
        with open(report_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2, default=str)

        logger.info(f"Game report saved to {report_path}")
        return report_path

    # Synchronous wrapper
    def run_game(self) -> GameResult:
        """Synchronous wrapper for run_game_async."""
        return asyncio.run(self.run_game_async())
