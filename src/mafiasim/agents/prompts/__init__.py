"""Prompt templates."""

from .player_templates import PlayerPrompts

__all__ = ["PlayerPrompts"]
