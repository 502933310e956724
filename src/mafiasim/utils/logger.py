"""Logging configuration and the game event log for mafiasim."""

import logging
import sys
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Any

if TYPE_CHECKING:
    from ..core.game_state import GameState, Player


def setup_logger(
    verbose: bool = True, save_to_file: bool = True, log_dir: str = "logs"
) -> logging.Logger:
    """
    Configure logging for the application.

    Args:
        verbose: If True, set level to DEBUG, otherwise INFO
        save_to_file: If True, also log to file
        log_dir: Directory for timestamped log files

    Returns:
        Configured logger
    """
    # Create root logger
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Clear any existing handlers
    logger.handlers.clear()

    # Create formatters
    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%H:%M:%S"
    )
    simple_formatter = logging.Formatter("%(message)s")

    # Console handler (simple format for main game events)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(simple_formatter)

    # Only show game events in console
    console_handler.addFilter(lambda record: record.name.startswith("mafiasim"))

    logger.addHandler(console_handler)

    if save_to_file:
        try:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)

            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            log_file = log_path / f"mafia_game_{timestamp}.log"

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(logging.DEBUG)
            file_handler.setFormatter(detailed_formatter)
            logger.addHandler(file_handler)

            logger.info(f"Logging to file: {log_file}")
        except OSError as e:
            logger.error(f"Failed to create file handler: {e}")

    return logger


class EventType(str, Enum):
    PHASE_TRANSITION = "PHASE_TRANSITION"
    PUBLIC_EVENT = "PUBLIC_EVENT"
    PRIVATE_THOUGHT = "PRIVATE_THOUGHT"
    ACTION = "ACTION"
    MESSAGE = "MESSAGE"
    DEATH = "DEATH"
    ERROR = "ERROR"
    GAME_END = "GAME_END"


@dataclass
class GameEvent:
    """One discrete, ordered entry in the game transcript."""

    seq: int
    type: EventType
    text: str
    day: Optional[int] = None
    phase: Optional[str] = None
    actor: Optional[str] = None
    timestamp: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["type"] = self.type.value
        return data


class GameLogger:
    """
    Game transcript writer.

    Keeps public events (what every player can see) apart from private
    thoughts (kept for post-game analysis). Every call produces one GameEvent
    with an increasing sequence number; where the events end up (console,
    transcript file, JSON report) is decided by the caller's configuration.
    """

    def __init__(self, log_dir: Optional[str] = None):
        self.events: List[GameEvent] = []
        self._game_logger = logging.getLogger("mafiasim.game")
        self._public_logger = logging.getLogger("mafiasim.game.public")
        self._private_logger = logging.getLogger("mafiasim.game.private")

        self.log_file: Optional[Path] = None
        if log_dir:
            try:
                directory = Path(log_dir)
                directory.mkdir(parents=True, exist_ok=True)
                timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
                self.log_file = directory / f"mafia-game-{timestamp}.log"
                self._write("=== AI MAFIA GAME LOG ===")
                self._write(f"Started: {datetime.now().isoformat()}")
            except OSError as e:
                self._game_logger.error(f"Failed to initialize transcript file: {e}")
                self.log_file = None

    def _record(
        self,
        event_type: EventType,
        text: str,
        state: Optional["GameState"] = None,
        actor: Optional[str] = None,
    ) -> GameEvent:
        event = GameEvent(
            seq=len(self.events) + 1,
            type=event_type,
            text=text,
            day=state.day if state else None,
            phase=state.phase.value if state else None,
            actor=actor,
            timestamp=datetime.now().isoformat(timespec="seconds"),
        )
        self.events.append(event)
        self._write(f"[{event_type.value}] {text}")
        return event

    def _write(self, line: str) -> None:
        if self.log_file is None:
            return
        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            self._game_logger.error(f"Failed to write transcript: {e}")

    def log_phase_transition(self, state: "GameState") -> GameEvent:
        text = f"=== {state.phase.display_name.upper()} {state.day} ==="
        self._game_logger.info(f"\n{text}")
        return self._record(EventType.PHASE_TRANSITION, text, state)

    def log_public_event(self, event: str, state: Optional["GameState"] = None) -> GameEvent:
        if state is not None:
            event = f"[Day {state.day} - {state.phase.display_name}] {event}"
        self._public_logger.info(event)
        return self._record(EventType.PUBLIC_EVENT, event, state)

    def log_private_thought(self, player: "Player", thought: Optional[str]) -> Optional[GameEvent]:
        if not thought or not thought.strip():
            return None
        text = f"[{player.id} ({player.role.name})] Thought: {thought}"
        self._private_logger.debug(text)
        return self._record(EventType.PRIVATE_THOUGHT, text, actor=player.id)

    def log_action(self, player: "Player", action: str) -> GameEvent:
        text = f"[{player.id} ({player.role.name})] Action: {action}"
        self._game_logger.info(text)
        return self._record(EventType.ACTION, text, actor=player.id)

    def log_message(self, player: "Player", message: str) -> GameEvent:
        text = f'{player.id}: "{message}"'
        self._public_logger.info(text)
        return self._record(EventType.MESSAGE, text, actor=player.id)

    def log_death(self, player: "Player", cause: str, reveal_role: bool) -> GameEvent:
        if reveal_role:
            text = f"{player.id} has died! They were a {player.role.display_name}. ({cause})"
        else:
            text = f"{player.id} has died! ({cause})"
        self._public_logger.info(text)
        return self._record(EventType.DEATH, text, actor=player.id)

    def log_error(self, message: str, exc: Optional[BaseException] = None) -> GameEvent:
        if exc is not None:
            message = f"{message}: {exc}"
        self._game_logger.error(message)
        return self._record(EventType.ERROR, message)

    def log_game_end(self, winner: Optional[str], state: "GameState") -> GameEvent:
        lines = [
            "",
            "========================================",
            "              GAME OVER",
            "========================================",
            f"Winner: {winner or 'NONE'}",
            f"Days played: {state.day}",
            "",
            "Final player states:",
        ]
        for p in state.players:
            lines.append(f"  {p.id} - {p.role.display_name} ({p.status.name})")
        lines.append("========================================")
        text = "\n".join(lines)
        self._game_logger.info(text)
        return self._record(EventType.GAME_END, text, state)

    def events_of_type(self, event_type: EventType) -> List[GameEvent]:
        return [e for e in self.events if e.type is event_type]
