"""Day discussion phase.

Players speak one at a time, in a fresh random order each round. Every
speaker sees what was said earlier in the same round.
"""

import logging
import random
import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..agents.base import AgentClient, AgentQuery, QueryKind, query_agent
from ..agents.prompts.player_templates import PlayerPrompts
from ..utils.logger import GameLogger
from .config import GameConfig
from .enums import GamePhase
from .game_state import GameState

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def clean_message(message: Optional[str]) -> str:
    """Strip wrapping quotes, collapse whitespace, cap the length."""
    if not message:
        return ""
    cleaned = message.strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in "\"'":
        cleaned = cleaned[1:-1]
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    if len(cleaned) > MAX_MESSAGE_LENGTH:
        cleaned = cleaned[: MAX_MESSAGE_LENGTH - 3] + "..."
    return cleaned


@dataclass
class DiscussionResult:
    """Statements made per round, in speaking order."""

    rounds: List[List[str]] = field(default_factory=list)
    silent: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


class DiscussionPhase:
    """Runs the day discussion."""

    def __init__(
        self,
        config: GameConfig,
        agent_client: AgentClient,
        game_logger: GameLogger,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.agent_client = agent_client
        self.game_logger = game_logger
        self.rng = rng or random.Random()

    async def execute(self, state: GameState) -> DiscussionResult:
        state.phase = GamePhase.DISCUSSION
        self.game_logger.log_phase_transition(state)
        logger.info(f"Starting discussion for day {state.day}")

        result = DiscussionResult()
        for round_number in range(1, self.config.discussion_rounds + 1):
            logger.info(f"--- Discussion round {round_number} ---")
            result.rounds.append(await self._run_round(state, result))
        return result

    async def _run_round(self, state: GameState, result: DiscussionResult) -> List[str]:
        statements: List[str] = []

        for speaker in state.shuffled_alive_players(self.rng):
            query = AgentQuery(
                kind=QueryKind.DISCUSSION,
                prompt=PlayerPrompts.discussion(speaker, state, statements),
                system_prompt=PlayerPrompts.system_prompt(speaker),
            )
            decision = await query_agent(
                self.agent_client, speaker, query, self.config.discussion_timeout
            )

            if decision is None:
                result.failed.append(speaker.id)
                statements.append(f"{speaker.id} failed to respond.")
                continue

            self.game_logger.log_private_thought(speaker, decision.thought)
            message = clean_message(decision.message)
            if message:
                line = f'{speaker.id}: "{message}"'
                state.add_raw_to_public_log(line)
                speaker.add_to_context(f'You said: "{message}"')
                self.game_logger.log_message(speaker, message)
            else:
                line = f"{speaker.id} remained silent."
                result.silent.append(speaker.id)
                state.add_raw_to_public_log(line)
                self.game_logger.log_public_event(line)
            statements.append(line)

        return statements
