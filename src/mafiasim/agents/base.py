"""Agent query contract shared by every phase.

The phases only need one thing from an agent: ask it a question and get back a
Decision, or nothing, within a bounded time.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from ..core.game_state import Player

logger = logging.getLogger(__name__)

_RESERVED_ACTIONS = ("SKIP", "GUILTY", "INNOCENT")


class Decision(BaseModel):
    """Structured reply from an agent.

    ``action`` is a player id, SKIP, GUILTY or INNOCENT. ``message`` is the
    public statement (discussion/defense only), ``thought`` the private
    reasoning.
    """

    model_config = ConfigDict(extra="ignore")

    thought: str = ""
    message: str = ""
    action: str = ""

    @field_validator("thought", "message", "action", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        if value is None:
            return ""
        return str(value)

    @classmethod
    def skip(cls, reason: str = "") -> "Decision":
        return cls(thought=reason, action="SKIP")

    @property
    def has_action(self) -> bool:
        return bool(self.action.strip())

    @property
    def has_message(self) -> bool:
        return bool(self.message.strip())

    @property
    def is_skip(self) -> bool:
        return self.action.strip().upper() == "SKIP"

    @property
    def is_guilty(self) -> bool:
        return self.action.strip().upper() == "GUILTY"

    @property
    def is_innocent(self) -> bool:
        return self.action.strip().upper() == "INNOCENT"

    @property
    def target_id(self) -> Optional[str]:
        """Player id named by the action, or None for SKIP/GUILTY/INNOCENT/empty."""
        action = self.action.strip()
        if not action or action.upper() in _RESERVED_ACTIONS:
            return None
        return action


class QueryKind(str, Enum):
    NIGHT_ACTION = "night_action"
    DISCUSSION = "discussion"
    NOMINATION = "nomination"
    DEFENSE = "defense"
    JUDGMENT = "judgment"


@dataclass
class AgentQuery:
    """A question posed to one agent."""

    kind: QueryKind
    prompt: str
    # Action tokens the question expects (player ids and/or SKIP/GUILTY/INNOCENT)
    candidates: List[str] = field(default_factory=list)
    system_prompt: str = ""


# Price estimate used for the usage summary, in cents per 1K tokens
INPUT_COST_PER_1K = 0.5
OUTPUT_COST_PER_1K = 1.5


@dataclass
class TokenUsage:
    """Running token counts for one client's model requests."""

    input_tokens: int = 0
    output_tokens: int = 0
    requests: int = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.requests += 1

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def estimated_cost_usd(self) -> float:
        cents = (
            self.input_tokens / 1000 * INPUT_COST_PER_1K
            + self.output_tokens / 1000 * OUTPUT_COST_PER_1K
        )
        return cents / 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requests": self.requests,
            "input_tokens": self.input_tokens,
            "output_tokens": self.output_tokens,
            "total_tokens": self.total_tokens,
            "estimated_cost_usd": round(self.estimated_cost_usd, 4),
        }

    def summary(self) -> str:
        return "\n".join(
            [
                "=== Token Usage Summary ===",
                f"Requests: {self.requests}",
                f"Input tokens: {self.input_tokens:,}",
                f"Output tokens: {self.output_tokens:,}",
                f"Total tokens: {self.total_tokens:,}",
                f"Estimated cost: ${self.estimated_cost_usd:.4f}",
            ]
        )


class AgentQueryError(Exception):
    """Raised by a client once its own retry budget is exhausted."""


class AgentClient(ABC):
    """Abstract base class for everything that can answer an AgentQuery."""

    # Clients that call a metered model keep a TokenUsage here
    usage: Optional[TokenUsage] = None

    @abstractmethod
    async def ask(self, player: "Player", query: AgentQuery) -> Decision:
        """
        Ask one agent a question.

        Returns:
            The agent's Decision

        Raises:
            AgentQueryError: after transport/format retries are exhausted
        """

    async def aclose(self) -> None:
        """Release any transport resources."""


async def query_agent(
    client: AgentClient, player: "Player", query: AgentQuery, timeout: float
) -> Optional[Decision]:
    """Ask with a hard time bound.

    Timeouts and failures come back as None. A timed-out call is cancelled,
    so a late answer is never applied.
    """
    try:
        return await asyncio.wait_for(client.ask(player, query), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"{player.id} timed out after {timeout:.0f}s ({query.kind.value})")
    except AgentQueryError as e:
        logger.warning(f"{player.id} failed to answer ({query.kind.value}): {e}")
    except Exception as e:
        logger.error(f"Error querying {player.id} ({query.kind.value}): {e}", exc_info=True)
    return None
