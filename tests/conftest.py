"""Pytest configuration and fixtures."""

import asyncio
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

from mafiasim.agents.base import AgentClient, AgentQuery, Decision, QueryKind
from mafiasim.core.config import GameConfig
from mafiasim.core.enums import Role
from mafiasim.core.game_state import GameState, Player
from mafiasim.utils.logger import GameLogger


class Hang:
    """Scripted reply that never arrives."""


Reply = Union[Decision, str, Exception, Hang, None]


class ScriptedAgentClient(AgentClient):
    """Test double answering from a per-(player, kind) script.

    Each scripted list is consumed in order; the last entry repeats. A plain
    string is shorthand for Decision(action=...). Unscripted questions get
    ``default(player, query)`` (SKIP unless given).
    """

    def __init__(self, default: Optional[Callable[[Player, AgentQuery], Reply]] = None):
        self.script: Dict[Tuple[str, QueryKind], List[Reply]] = defaultdict(list)
        self.default = default or (lambda player, query: Decision.skip("unscripted"))
        self.calls: List[Tuple[str, AgentQuery]] = []
        self.closed = False

    def on(self, player_id: str, kind: QueryKind, *replies: Reply) -> "ScriptedAgentClient":
        self.script[(player_id, kind)].extend(replies)
        return self

    def calls_for(self, kind: QueryKind) -> List[Tuple[str, AgentQuery]]:
        return [(pid, q) for pid, q in self.calls if q.kind is kind]

    async def ask(self, player: Player, query: AgentQuery) -> Decision:
        self.calls.append((player.id, query))
        replies = self.script.get((player.id, query.kind))
        if replies:
            reply = replies.pop(0) if len(replies) > 1 else replies[0]
        else:
            reply = self.default(player, query)

        if isinstance(reply, Hang):
            await asyncio.sleep(3600)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return Decision(thought=f"{player.id} picks {reply}", action=reply)
        return reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def game_config():
    """Create a small, fast test game configuration."""
    return GameConfig(
        player_count=5,
        mafia_count=2,
        discussion_rounds=1,
        verbose=False,
        save_transcripts=False,
        retry_delay=0.0,
        night_timeout=0.5,
        discussion_timeout=0.5,
        nomination_timeout=0.5,
        defense_timeout=0.5,
        judgment_timeout=0.5,
        seed=7,
    )


@pytest.fixture
def game_state():
    """Five players: two Mafia, Sheriff, Doctor, Villager."""
    roles = [Role.MAFIA, Role.MAFIA, Role.SHERIFF, Role.DOCTOR, Role.VILLAGER]
    return GameState(
        players=[Player(id=f"Player_{i + 1}", role=role) for i, role in enumerate(roles)]
    )


@pytest.fixture
def game_logger():
    """In-memory game logger (no transcript file)."""
    return GameLogger()


@pytest.fixture
def scripted_client():
    return ScriptedAgentClient()
