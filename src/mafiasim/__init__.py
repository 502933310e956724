"""mafiasim: AI players compete in the social deduction game Mafia."""

__version__ = "0.1.0"
