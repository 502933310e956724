"""Utility modules for mafiasim."""

from .logger import EventType, GameEvent, GameLogger, setup_logger

__all__ = [
    "setup_logger",
    "EventType",
    "GameEvent",
    "GameLogger",
]
