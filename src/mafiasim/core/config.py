"""Game configuration dataclass.

A single GameConfig is built once (from code, CLI flags or environment) and
handed explicitly to the engine, every phase and every agent client.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple


MIN_PLAYERS = 5


class ConfigurationError(ValueError):
    """Raised when configuration values are mutually inconsistent."""


@dataclass
class GameConfig:
    """Configuration for game rules, agent transport and logging."""

    # ===========================================
    # PLAYER SETUP
    # ===========================================
    player_count: int = 10
    mafia_count: int = 3  # Must stay below half of player_count

    # Pinned role assignments (1-based player numbers, filled before random roles)
    fixed_mafia_players: Tuple[int, ...] = ()
    fixed_sheriff_player: Optional[int] = None
    fixed_doctor_player: Optional[int] = None

    # ===========================================
    # RULES
    # ===========================================
    reveal_roles_on_death: bool = True
    discussion_rounds: int = 2
    # Trial needs at least floor(alive * percent / 100) nominations
    nomination_threshold_percent: int = 30
    max_days: int = 20  # Safety limit against games that never resolve

    # ===========================================
    # AI CONFIGURATION
    # ===========================================
    player_models: Dict[int, str] = field(default_factory=dict)
    default_model: str = "openai/gpt-4o-mini"
    api_url: str = "https://openrouter.ai/api/v1/chat/completions"
    api_key: Optional[str] = None
    # When set, agents are served by agent_service instances instead of OpenRouter
    agent_base_url: Optional[str] = None
    agent_base_port: int = 18000

    # ===========================================
    # API SETTINGS
    # ===========================================
    max_retries: int = 3
    retry_delay: float = 1.0  # Seconds between retries
    request_timeout: float = 60.0  # Per HTTP request
    temperature: float = 0.7
    max_tokens: int = 500

    # Hard per-query bounds used by the phases (seconds)
    night_timeout: float = 120.0
    discussion_timeout: float = 60.0
    nomination_timeout: float = 60.0
    defense_timeout: float = 60.0
    judgment_timeout: float = 60.0

    # ===========================================
    # LOGGING
    # ===========================================
    verbose: bool = True
    save_transcripts: bool = True
    log_dir: str = "logs"

    seed: Optional[int] = None

    def model_for_player(self, player_number: int) -> str:
        """Model id for a 1-based player number."""
        return self.player_models.get(player_number, self.default_model)

    @property
    def town_count(self) -> int:
        return self.player_count - self.mafia_count

    @property
    def villager_count(self) -> int:
        return self.player_count - self.mafia_count - 2

    def validate(self) -> None:
        """Raise ConfigurationError if the settings cannot produce a game."""
        if self.player_count < MIN_PLAYERS:
            raise ConfigurationError(
                f"Player count must be at least {MIN_PLAYERS}, got {self.player_count}"
            )
        if self.mafia_count < 1:
            raise ConfigurationError("Mafia count must be at least 1")
        if 2 * self.mafia_count >= self.player_count:
            raise ConfigurationError(
                f"Mafia count ({self.mafia_count}) must be less than half of "
                f"the players ({self.player_count})"
            )
        if self.mafia_count + 2 > self.player_count:
            raise ConfigurationError(
                "Not enough players for the Mafia, the Sheriff and the Doctor"
            )
        if not 0 <= self.nomination_threshold_percent <= 100:
            raise ConfigurationError("Nomination threshold must be between 0 and 100")
        if self.discussion_rounds < 0:
            raise ConfigurationError("Discussion rounds cannot be negative")
        if self.max_days < 1:
            raise ConfigurationError("max_days must be at least 1")
        for name in (
            "night_timeout",
            "discussion_timeout",
            "nomination_timeout",
            "defense_timeout",
            "judgment_timeout",
        ):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        self._validate_pinned_roles()

    def _validate_pinned_roles(self) -> None:
        pinned = list(self.fixed_mafia_players)
        if self.fixed_sheriff_player is not None:
            pinned.append(self.fixed_sheriff_player)
        if self.fixed_doctor_player is not None:
            pinned.append(self.fixed_doctor_player)

        for number in pinned:
            if not 1 <= number <= self.player_count:
                raise ConfigurationError(
                    f"Pinned player {number} is outside 1..{self.player_count}"
                )
        if len(set(pinned)) != len(pinned):
            raise ConfigurationError("A player is pinned to more than one role")
        if len(self.fixed_mafia_players) > self.mafia_count:
            raise ConfigurationError(
                f"{len(self.fixed_mafia_players)} pinned Mafia players but "
                f"mafia_count is {self.mafia_count}"
            )

    @classmethod
    def from_env(cls, **overrides) -> "GameConfig":
        """Build a config from MAFIASIM_* environment variables.

        Keyword overrides win over the environment.
        """
        env = os.environ
        values = {}

        int_fields = {
            "MAFIASIM_PLAYER_COUNT": "player_count",
            "MAFIASIM_MAFIA_COUNT": "mafia_count",
            "MAFIASIM_DISCUSSION_ROUNDS": "discussion_rounds",
            "MAFIASIM_NOMINATION_THRESHOLD_PERCENT": "nomination_threshold_percent",
            "MAFIASIM_MAX_DAYS": "max_days",
            "MAFIASIM_MAX_RETRIES": "max_retries",
            "MAFIASIM_SEED": "seed",
            "MAFIASIM_FIXED_SHERIFF_PLAYER": "fixed_sheriff_player",
            "MAFIASIM_FIXED_DOCTOR_PLAYER": "fixed_doctor_player",
        }
        for var, name in int_fields.items():
            if env.get(var):
                values[name] = _env_int(var, env[var])

        if env.get("MAFIASIM_REVEAL_ROLES_ON_DEATH"):
            values["reveal_roles_on_death"] = env["MAFIASIM_REVEAL_ROLES_ON_DEATH"].lower() in (
                "1",
                "true",
                "yes",
            )
        if env.get("MAFIASIM_FIXED_MAFIA_PLAYERS"):
            values["fixed_mafia_players"] = tuple(
                _env_int("MAFIASIM_FIXED_MAFIA_PLAYERS", n)
                for n in env["MAFIASIM_FIXED_MAFIA_PLAYERS"].split(",")
                if n.strip()
            )
        if env.get("MAFIASIM_DEFAULT_MODEL"):
            values["default_model"] = env["MAFIASIM_DEFAULT_MODEL"]
        if env.get("MAFIASIM_AGENT_BASE_URL"):
            values["agent_base_url"] = env["MAFIASIM_AGENT_BASE_URL"]
        if env.get("OPENROUTER_API_URL"):
            values["api_url"] = env["OPENROUTER_API_URL"]
        values["api_key"] = env.get("OPENROUTER_API_KEY") or None

        # Per-player models: MAFIASIM_PLAYER_3_MODEL=anthropic/claude-3.5-haiku
        player_count = overrides.get("player_count", values.get("player_count", cls.player_count))
        models = {}
        for number in range(1, player_count + 1):
            model = env.get(f"MAFIASIM_PLAYER_{number}_MODEL")
            if model and model.strip():
                models[number] = model.strip()
        if models:
            values["player_models"] = models

        values.update(overrides)
        return cls(**values)


def _env_int(var: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigurationError(f"{var} must be an integer, got {raw!r}") from None
