"""Enumerations for game phases, engine states, roles and factions."""

from enum import Enum


class GamePhase(Enum):
    """Game phase states representing the current point in the day/night cycle."""

    NIGHT = "night"
    DISCUSSION = "day_discussion"
    VOTING = "day_voting"

    @property
    def display_name(self) -> str:
        return _PHASE_DISPLAY_NAMES[self]


_PHASE_DISPLAY_NAMES = {
    GamePhase.NIGHT: "Night",
    GamePhase.DISCUSSION: "Day Discussion",
    GamePhase.VOTING: "Day Voting",
}


class EngineState(Enum):
    """States of the engine's top-level state machine."""

    INITIALIZING = "initializing"
    NIGHT = "night"
    DISCUSSION = "discussion"
    VOTING = "voting"
    GAME_OVER = "game_over"


class Faction(Enum):
    """The two competing sides."""

    MAFIA = "mafia"
    TOWN = "town"

    @property
    def victory_message(self) -> str:
        if self is Faction.MAFIA:
            return "The Mafia wins! The Town has been eliminated."
        return "The Town wins! All Mafia members have been eliminated."


class Role(Enum):
    """Player roles in the game."""

    MAFIA = "mafia"
    SHERIFF = "sheriff"
    DOCTOR = "doctor"
    VILLAGER = "villager"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def faction(self) -> Faction:
        return Faction.MAFIA if self is Role.MAFIA else Faction.TOWN

    @property
    def is_mafia(self) -> bool:
        return self is Role.MAFIA

    @property
    def has_night_action(self) -> bool:
        return self is not Role.VILLAGER

    @property
    def description(self) -> str:
        return _ROLE_DESCRIPTIONS[self]


_ROLE_DESCRIPTIONS = {
    Role.MAFIA: (
        "Your goal is to eliminate all Town members. At night, you coordinate "
        "with the other Mafia to kill one player."
    ),
    Role.SHERIFF: (
        "You are a Town investigator. Each night, you can investigate one "
        "player to learn if they are Mafia or Town."
    ),
    Role.DOCTOR: (
        "You are a Town protector. Each night, you can protect one player "
        "(yourself included) from being killed."
    ),
    Role.VILLAGER: (
        "You are a regular Town member. Use logic and discussion to identify "
        "and eliminate the Mafia."
    ),
}


class Status(Enum):
    """Alive/dead status of a player."""

    ALIVE = "alive"
    DEAD = "dead"
