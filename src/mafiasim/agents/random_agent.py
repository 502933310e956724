"""Offline agent that answers at random among the offered candidates.

Used when no API key is configured, by the agent service by default, and in
tests.
"""

import random
from typing import TYPE_CHECKING, Optional

from .base import AgentClient, AgentQuery, Decision, QueryKind

if TYPE_CHECKING:
    from ..core.game_state import Player


_LINES = [
    "I have been watching the votes closely.",
    "Something about last night does not add up.",
    "I am Town, and I want to hear from the quiet players.",
    "Let's not rush; accusations without evidence help the Mafia.",
]


class RandomAgentClient(AgentClient):
    """Chooses uniformly among query.candidates."""

    def __init__(self, rng: Optional[random.Random] = None, skip_probability: float = 0.0):
        self.rng = rng or random.Random()
        self.skip_probability = skip_probability

    async def ask(self, player: "Player", query: AgentQuery) -> Decision:
        if query.kind in (QueryKind.DISCUSSION, QueryKind.DEFENSE):
            return Decision(
                thought="Random play",
                message=self.rng.choice(_LINES),
                action="SKIP",
            )

        if not query.candidates or self.rng.random() < self.skip_probability:
            return Decision.skip("Nothing to choose")

        return Decision(thought="Random play", action=self.rng.choice(query.candidates))
