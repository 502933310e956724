"""Day voting phase: nomination, defense, judgment.

Nomination and judgment are independent polls, so every voter is asked at
once and the answers are tallied after all of them are back. The defense is
a single question to the accused.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..agents.base import AgentClient, AgentQuery, Decision, QueryKind, query_agent
from ..agents.prompts.player_templates import PlayerPrompts
from ..utils.logger import GameLogger
from .config import GameConfig
from .discussion import clean_message
from .enums import GamePhase
from .game_state import GameState, Player
from .validation import GUILTY, INNOCENT, SKIP, ActionValidator

logger = logging.getLogger(__name__)


class VoteOutcome(Enum):
    NO_TRIAL = "no_trial"
    EXECUTED = "executed"
    ACQUITTED = "acquitted"


@dataclass
class NominationTally:
    """Votes per nominee plus the abstain counter."""

    votes: Dict[str, int] = field(default_factory=dict)
    abstentions: int = 0

    def leader(self) -> Optional[Tuple[str, int]]:
        """The single player with the most votes, or None on an empty or tied top."""
        if not self.votes:
            return None
        top = max(self.votes.values())
        leaders = [pid for pid, count in self.votes.items() if count == top]
        if len(leaders) != 1:
            return None
        return leaders[0], top


@dataclass
class VotingResult:
    """Outcome of one day's vote, with the tallies kept for observability."""

    outcome: VoteOutcome
    nominee: Optional[str] = None
    nomination: NominationTally = field(default_factory=NominationTally)
    defense: Optional[str] = None
    guilty_votes: int = 0
    innocent_votes: int = 0
    judgment_votes: Dict[str, str] = field(default_factory=dict)
    reason: str = ""

    @property
    def executed(self) -> bool:
        return self.outcome is VoteOutcome.EXECUTED


def nomination_threshold(alive_count: int, threshold_percent: int) -> int:
    """Minimum nomination votes for a trial: floor(alive * percent / 100)."""
    return alive_count * threshold_percent // 100


class VotingPhase:
    """Runs the day vote."""

    def __init__(
        self,
        config: GameConfig,
        agent_client: AgentClient,
        validator: ActionValidator,
        game_logger: GameLogger,
    ):
        self.config = config
        self.agent_client = agent_client
        self.validator = validator
        self.game_logger = game_logger

    async def execute(self, state: GameState) -> VotingResult:
        state.phase = GamePhase.VOTING
        self.game_logger.log_phase_transition(state)
        logger.info(f"Starting voting for day {state.day}")

        alive_count = state.alive_count
        tally = await self.collect_nominations(state)
        self._announce(state, self._format_nominations(tally))

        leader = tally.leader()
        if leader is None:
            return self._no_trial(state, tally, "No single player received the most nominations.")

        nominee_id, nominee_votes = leader
        if tally.abstentions >= nominee_votes:
            return self._no_trial(
                state, tally, f"Abstentions ({tally.abstentions}) outweigh the nominations."
            )

        required = nomination_threshold(alive_count, self.config.nomination_threshold_percent)
        if nominee_votes < required:
            return self._no_trial(
                state,
                tally,
                f"{nominee_id} received {nominee_votes} votes, {required} needed for a trial.",
            )

        accused = state.get_player(nominee_id)
        self._announce(state, f"{accused.id} has been put on trial with {nominee_votes} votes.")

        defense = await self.collect_defense(accused, state)
        guilty, innocent, ballots = await self.collect_judgment(accused, defense, state)

        result = VotingResult(
            outcome=VoteOutcome.ACQUITTED,
            nominee=accused.id,
            nomination=tally,
            defense=defense,
            guilty_votes=guilty,
            innocent_votes=innocent,
            judgment_votes=ballots,
        )
        self._announce(state, f"Judgment: {guilty} GUILTY, {innocent} INNOCENT.")

        if guilty > innocent:
            accused.kill()
            result.outcome = VoteOutcome.EXECUTED
            if self.config.reveal_roles_on_death:
                text = (
                    f"{accused.id} was executed by the town. "
                    f"They were a {accused.role.display_name}."
                )
            else:
                text = f"{accused.id} was executed by the town."
            self._announce(state, text)
            self.game_logger.log_death(accused, "executed", self.config.reveal_roles_on_death)
            logger.info(f"{accused.id} executed ({guilty}-{innocent})")
        else:
            self._announce(state, f"{accused.id} was found innocent and survives.")
            logger.info(f"{accused.id} acquitted ({guilty}-{innocent})")

        return result

    # ------------------------------------------------------------------
    # Stage A: nomination
    # ------------------------------------------------------------------

    async def collect_nominations(self, state: GameState) -> NominationTally:
        voters = list(state.alive_players)
        answers = await asyncio.gather(*(self._ask_nomination(v, state) for v in voters))

        votes: Counter = Counter()
        abstentions = 0
        for voter, decision in zip(voters, answers):
            target = self._valid_nomination(voter, decision, state)
            if target is None:
                abstentions += 1
            else:
                votes[target] += 1
                self.game_logger.log_action(voter, f"Nominate: {target}")

        return NominationTally(votes=dict(votes), abstentions=abstentions)

    async def _ask_nomination(self, voter: Player, state: GameState) -> Optional[Decision]:
        candidates = [p.id for p in state.alive_players if p.id != voter.id] + [SKIP]
        query = AgentQuery(
            kind=QueryKind.NOMINATION,
            prompt=PlayerPrompts.nomination(voter, state),
            candidates=candidates,
            system_prompt=PlayerPrompts.system_prompt(voter),
        )
        return await query_agent(self.agent_client, voter, query, self.config.nomination_timeout)

    def _valid_nomination(
        self, voter: Player, decision: Optional[Decision], state: GameState
    ) -> Optional[str]:
        if decision is None:
            return None
        self.game_logger.log_private_thought(voter, decision.thought)
        target = decision.target_id
        if target is None:
            return None
        validation = self.validator.validate_nomination(voter, target, state)
        if not validation:
            logger.warning(f"Invalid nomination by {voter.id}: {validation.error_message}")
            return None
        return target

    # ------------------------------------------------------------------
    # Stage B: defense
    # ------------------------------------------------------------------

    async def collect_defense(self, accused: Player, state: GameState) -> str:
        query = AgentQuery(
            kind=QueryKind.DEFENSE,
            prompt=PlayerPrompts.defense(accused, state),
            system_prompt=PlayerPrompts.system_prompt(accused),
        )
        decision = await query_agent(
            self.agent_client, accused, query, self.config.defense_timeout
        )

        defense = ""
        if decision is not None:
            self.game_logger.log_private_thought(accused, decision.thought)
            defense = clean_message(decision.message)

        if defense:
            state.add_raw_to_public_log(f'{accused.id} (defense): "{defense}"')
            accused.add_to_context(f'Your defense: "{defense}"')
            self.game_logger.log_message(accused, defense)
        else:
            defense = f"{accused.id} chose to remain silent."
            state.add_raw_to_public_log(defense)
            self.game_logger.log_public_event(defense)
        return defense

    # ------------------------------------------------------------------
    # Stage C: judgment
    # ------------------------------------------------------------------

    async def collect_judgment(
        self, accused: Player, defense: str, state: GameState
    ) -> Tuple[int, int, Dict[str, str]]:
        """Returns (guilty, innocent, verdict per voter)."""
        voters = [p for p in state.alive_players if p.id != accused.id]
        answers = await asyncio.gather(
            *(self._ask_judgment(v, accused, defense, state) for v in voters)
        )

        ballots: Dict[str, str] = {}
        for voter, decision in zip(voters, answers):
            ballots[voter.id] = self._verdict(voter, decision, state)
            self.game_logger.log_action(voter, f"Verdict on {accused.id}: {ballots[voter.id]}")

        verdicts = Counter(ballots.values())
        return verdicts[GUILTY], verdicts[INNOCENT], ballots

    async def _ask_judgment(
        self, voter: Player, accused: Player, defense: str, state: GameState
    ) -> Optional[Decision]:
        query = AgentQuery(
            kind=QueryKind.JUDGMENT,
            prompt=PlayerPrompts.judgment(voter, accused, defense, state),
            candidates=[GUILTY, INNOCENT],
            system_prompt=PlayerPrompts.system_prompt(voter),
        )
        return await query_agent(self.agent_client, voter, query, self.config.judgment_timeout)

    def _verdict(self, voter: Player, decision: Optional[Decision], state: GameState) -> str:
        # Anything but a clean GUILTY counts as INNOCENT
        if decision is None:
            return INNOCENT
        self.game_logger.log_private_thought(voter, decision.thought)
        if not self.validator.validate(voter, decision.action, state):
            return INNOCENT
        return GUILTY if decision.is_guilty else INNOCENT

    # ------------------------------------------------------------------

    def _announce(self, state: GameState, text: str) -> None:
        state.add_to_public_log(text)
        self.game_logger.log_public_event(text, state)

    def _no_trial(self, state: GameState, tally: NominationTally, reason: str) -> VotingResult:
        self._announce(state, f"No trial today. {reason}")
        logger.info(f"No trial: {reason}")
        return VotingResult(outcome=VoteOutcome.NO_TRIAL, nomination=tally, reason=reason)

    @staticmethod
    def _format_nominations(tally: NominationTally) -> str:
        parts: List[str] = [f"{pid}: {count}" for pid, count in sorted(tally.votes.items())]
        parts.append(f"abstain: {tally.abstentions}")
        return "Nomination votes: " + ", ".join(parts)
