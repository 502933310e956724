"""Night phase.

The Mafia agree on a kill target through sequential voting rounds while the
Sheriff and the Doctor act concurrently. The results are merged once all
three are in.
"""

import asyncio
import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..agents.base import AgentClient, AgentQuery, QueryKind, query_agent
from ..agents.prompts.player_templates import PlayerPrompts
from ..utils.logger import GameLogger
from .config import GameConfig
from .enums import Faction, GamePhase, Role
from .game_state import GameState, Player
from .validation import ActionValidator

logger = logging.getLogger(__name__)

INVESTIGATIONS_KEY = "investigations"

# How the Mafia target was settled
CONSENSUS = "consensus"
TIE_BREAKER = "tie_breaker"
RANDOM_FALLBACK = "random_fallback"
SOLO = "solo"
SOLO_FALLBACK = "solo_fallback"
NO_TARGET = "no_target"


def required_consensus_votes(mafia_count: int) -> int:
    """Votes needed for the Mafia to settle on a target.

    Two or three members need two votes (unanimity for a pair, 2/3 for a
    trio). Larger groups need floor(n/2) + 2, stricter than a simple majority.
    """
    if mafia_count <= 3:
        return min(2, mafia_count)
    return mafia_count // 2 + 2


def find_consensus_target(vote_counts: Dict[str, int], mafia_count: int) -> Optional[str]:
    """The single most-voted target, if it reaches the threshold."""
    if not vote_counts:
        return None
    top_votes = max(vote_counts.values())
    leaders = [target for target, votes in vote_counts.items() if votes == top_votes]
    if len(leaders) != 1:
        return None
    if top_votes >= required_consensus_votes(mafia_count):
        return leaders[0]
    return None


@dataclass
class MafiaDecision:
    """Outcome of the Mafia's deliberation."""

    target: Optional[str]
    method: str
    round_one_votes: Dict[str, int] = field(default_factory=dict)
    tie_break_votes: Dict[str, int] = field(default_factory=dict)


@dataclass
class NightResult:
    """Holds the result of night phase resolution."""

    mafia_target: Optional[str] = None
    doctor_target: Optional[str] = None
    sheriff_target: Optional[str] = None
    sheriff_result: Optional[Faction] = None
    kill_prevented: bool = False
    victim: Optional[Player] = None
    mafia_decision: Optional[MafiaDecision] = None

    @property
    def has_death(self) -> bool:
        return self.victim is not None

    def public_summary(self, reveal_roles: bool) -> str:
        """What everyone learns at dawn. The three outcomes read differently."""
        if self.victim is not None:
            if reveal_roles:
                return (
                    f"{self.victim.id} was killed during the night. "
                    f"They were a {self.victim.role.display_name}."
                )
            return f"{self.victim.id} was killed during the night."
        if self.kill_prevented:
            return "The sun rises... No one died during the night. Someone was saved!"
        return "The sun rises... The night passed peacefully. No one died."


class NightPhase:
    """Runs one night."""

    def __init__(
        self,
        config: GameConfig,
        agent_client: AgentClient,
        validator: ActionValidator,
        game_logger: GameLogger,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.agent_client = agent_client
        self.validator = validator
        self.game_logger = game_logger
        self.rng = rng or random.Random()

    async def execute(self, state: GameState) -> NightResult:
        """Execute the night and apply any death to the state."""
        state.phase = GamePhase.NIGHT
        self.game_logger.log_phase_transition(state)
        logger.info(f"Starting night phase for day {state.day}")

        # Sheriff and Doctor run concurrently with the Mafia's sequential rounds
        sheriff_task = asyncio.create_task(self._sheriff_action(state))
        doctor_task = asyncio.create_task(self._doctor_action(state))

        mafia_decision = await self._mafia_consensus(state)

        done, pending = await asyncio.wait(
            {sheriff_task, doctor_task}, timeout=self.config.night_timeout
        )
        for task in pending:
            task.cancel()
            logger.warning("Night action still running at dawn; discarded")
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        sheriff_target = self._task_result(sheriff_task, done)
        doctor_target = self._task_result(doctor_task, done)

        sheriff_result = None
        if sheriff_target is not None:
            sheriff_result = self._record_investigation(state, sheriff_target)

        return self._resolve_night(
            state, mafia_decision, doctor_target, sheriff_target, sheriff_result
        )

    @staticmethod
    def _task_result(task: "asyncio.Task", done) -> Optional[str]:
        if task not in done:
            return None
        if task.exception() is not None:
            logger.error(f"Night action failed: {task.exception()}")
            return None
        return task.result()

    # ------------------------------------------------------------------
    # Mafia
    # ------------------------------------------------------------------

    def _night_query(self, player: Player, state: GameState, extra_info: Optional[str],
                     candidates: List[str]) -> AgentQuery:
        return AgentQuery(
            kind=QueryKind.NIGHT_ACTION,
            prompt=PlayerPrompts.night_action(player, state, extra_info),
            candidates=candidates,
            system_prompt=PlayerPrompts.system_prompt(player),
        )

    async def _mafia_consensus(self, state: GameState) -> MafiaDecision:
        alive_mafia = state.alive_mafia
        if not alive_mafia:
            logger.warning("No alive Mafia members")
            return MafiaDecision(None, NO_TARGET)

        if len(alive_mafia) == 1:
            return await self._single_mafia_target(alive_mafia[0], state)

        members = list(alive_mafia)
        self.rng.shuffle(members)
        town_ids = [p.id for p in state.alive_town]

        # Round 1: each member sees what the earlier ones chose and why
        vote_counts: Counter = Counter()
        transcript: List[str] = []
        for mafioso in members:
            query = self._night_query(mafioso, state, "\n".join(transcript), town_ids)
            decision = await query_agent(
                self.agent_client, mafioso, query, self.config.night_timeout
            )
            if decision is None:
                continue
            self.game_logger.log_private_thought(mafioso, decision.thought)

            target = decision.target_id
            if target is None:
                continue
            validation = self.validator.validate_target(mafioso, target, state)
            if not validation:
                logger.warning(
                    f"Invalid Mafia target {target} by {mafioso.id}: {validation.error_message}"
                )
                continue

            vote_counts[target] += 1
            reason = decision.thought or "No reason given"
            transcript.append(f'{mafioso.id} votes for {target}: "{reason}"')
            self.game_logger.log_action(mafioso, f"Mafia vote: {target}")

        round_one = dict(vote_counts)
        target = find_consensus_target(round_one, len(members))
        if target is not None:
            logger.info(f"Mafia reached consensus on target: {target}")
            return MafiaDecision(target, CONSENSUS, round_one)

        if not round_one:
            logger.warning("No valid Mafia votes tonight")
            return MafiaDecision(None, NO_TARGET, round_one)

        logger.info("No consensus in round 1, starting tie-breaker")
        return await self._mafia_tie_breaker(state, members, round_one, transcript)

    async def _mafia_tie_breaker(
        self,
        state: GameState,
        members: List[Player],
        round_one: Dict[str, int],
        transcript: List[str],
    ) -> MafiaDecision:
        nominated = list(round_one)
        context = "\n".join(transcript)
        context += (
            "\n\n=== TIE-BREAKER ROUND ===\n"
            f"You must choose from the previously nominated targets: {', '.join(nominated)}"
        )

        vote_counts: Counter = Counter()
        for mafioso in members:
            query = self._night_query(mafioso, state, context, nominated)
            decision = await query_agent(
                self.agent_client, mafioso, query, self.config.night_timeout
            )
            if decision is None:
                continue
            self.game_logger.log_private_thought(mafioso, decision.thought)

            target = decision.target_id
            if target not in nominated:
                logger.warning(f"Tie-breaker vote by {mafioso.id} outside nominees: {target}")
                continue
            if not self.validator.validate_target(mafioso, target, state):
                continue
            vote_counts[target] += 1
            self.game_logger.log_action(mafioso, f"Tie-breaker vote: {target}")

        tie_break = dict(vote_counts)
        target = find_consensus_target(tie_break, len(members))
        if target is not None:
            logger.info(f"Mafia settled on {target} in the tie-breaker")
            return MafiaDecision(target, TIE_BREAKER, round_one, tie_break)

        target = self.rng.choice(nominated)
        logger.info(f"Mafia failed to reach consensus, randomly selected: {target}")
        return MafiaDecision(target, RANDOM_FALLBACK, round_one, tie_break)

    async def _single_mafia_target(self, mafioso: Player, state: GameState) -> MafiaDecision:
        town_ids = [p.id for p in state.alive_town]
        query = self._night_query(mafioso, state, "You are the only Mafia member alive.", town_ids)
        decision = await query_agent(self.agent_client, mafioso, query, self.config.night_timeout)

        if decision is not None:
            self.game_logger.log_private_thought(mafioso, decision.thought)
            target = decision.target_id
            if target is not None and self.validator.validate_target(mafioso, target, state):
                self.game_logger.log_action(mafioso, f"Mafia kill: {target}")
                return MafiaDecision(target, SOLO, {target: 1})

        if not town_ids:
            return MafiaDecision(None, NO_TARGET)
        target = self.rng.choice(town_ids)
        logger.info(f"Lone Mafia gave no valid target, randomly selected: {target}")
        return MafiaDecision(target, SOLO_FALLBACK)

    # ------------------------------------------------------------------
    # Sheriff / Doctor
    # ------------------------------------------------------------------

    async def _single_role_target(
        self, state: GameState, role: Role, extra_info: Optional[str], label: str
    ) -> Optional[str]:
        actors = state.alive_players_by_role(role)
        if not actors:
            return None
        actor = actors[0]

        if role is Role.DOCTOR:
            candidates = [p.id for p in state.alive_players]
        else:
            candidates = [p.id for p in state.alive_players if p.id != actor.id]

        query = self._night_query(actor, state, extra_info, candidates)
        decision = await query_agent(self.agent_client, actor, query, self.config.night_timeout)
        if decision is None:
            return None
        self.game_logger.log_private_thought(actor, decision.thought)

        target = decision.target_id
        if target is None:
            return None
        validation = self.validator.validate_target(actor, target, state)
        if not validation:
            logger.warning(f"Invalid {role.display_name} target {target}: {validation.error_message}")
            return None
        self.game_logger.log_action(actor, f"{label}: {target}")
        return target

    async def _sheriff_action(self, state: GameState) -> Optional[str]:
        sheriffs = state.alive_players_by_role(Role.SHERIFF)
        history = None
        if sheriffs:
            history = "\n".join(sheriffs[0].get_attribute(INVESTIGATIONS_KEY, []))
        return await self._single_role_target(state, Role.SHERIFF, history, "Investigate")

    async def _doctor_action(self, state: GameState) -> Optional[str]:
        return await self._single_role_target(state, Role.DOCTOR, None, "Protect")

    def _record_investigation(self, state: GameState, target_id: str) -> Optional[Faction]:
        """Classify the investigated player and tell the Sheriff, privately."""
        investigated = state.get_player(target_id)
        sheriffs = state.alive_players_by_role(Role.SHERIFF)
        if investigated is None or not sheriffs:
            return None

        result = investigated.role.faction
        sheriff = sheriffs[0]
        note = f"Night {state.day}: {target_id} is {result.name}"

        history = list(sheriff.get_attribute(INVESTIGATIONS_KEY, []))
        history.append(note)
        sheriff.set_attribute(INVESTIGATIONS_KEY, history)
        sheriff.add_to_context(note)

        logger.info(f"Sheriff investigated {target_id}: {result.name}")
        return result

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def _resolve_night(
        self,
        state: GameState,
        mafia_decision: MafiaDecision,
        doctor_target: Optional[str],
        sheriff_target: Optional[str],
        sheriff_result: Optional[Faction],
    ) -> NightResult:
        mafia_target = mafia_decision.target
        result = NightResult(
            mafia_target=mafia_target,
            doctor_target=doctor_target,
            sheriff_target=sheriff_target,
            sheriff_result=sheriff_result,
            mafia_decision=mafia_decision,
        )

        if mafia_target is not None and mafia_target == doctor_target:
            logger.info(f"Doctor saved {mafia_target} from the Mafia!")
            result.kill_prevented = True
            return result

        if mafia_target is not None:
            victim = state.get_player(mafia_target)
            if victim is not None and victim.alive:
                victim.kill()
                result.victim = victim
                logger.info(f"{mafia_target} was killed by the Mafia")

        return result
