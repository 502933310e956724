"""Main entry point for mafiasim.

Runs one game of Mafia between language-model players. Each player is
played by an OpenRouter model, by a remote agent service, or at random
when running offline.
"""

import argparse
import logging
import random
import sys

from dotenv import load_dotenv

from .core.config import ConfigurationError, GameConfig
from .core.game_engine import GameEngine, create_agent_client
from .utils.logger import setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mafiasim", description="Run a game of Mafia between AI players."
    )
    parser.add_argument("--players", type=int, help="Number of players")
    parser.add_argument("--mafia", type=int, help="Number of Mafia members")
    parser.add_argument("--rounds", type=int, help="Discussion rounds per day")
    parser.add_argument(
        "--threshold", type=int, help="Percent of alive players needed to put someone on trial"
    )
    parser.add_argument("--max-days", type=int, help="Stop the game after this many days")
    parser.add_argument("--seed", type=int, help="Random seed for role assignment and ordering")
    parser.add_argument(
        "--no-reveal", action="store_true", help="Do not reveal roles when players die"
    )
    parser.add_argument(
        "--offline", action="store_true", help="Players act at random; no API calls"
    )
    parser.add_argument("--agent-url", help="Base URL of remote agent services")
    parser.add_argument("--model", help="Default model for every player")
    parser.add_argument("--report", help="Write a JSON game report to this path")
    parser.add_argument("--quiet", action="store_true", help="Less console output")
    return parser


def config_from_args(args: argparse.Namespace) -> GameConfig:
    overrides = {}
    if args.players is not None:
        overrides["player_count"] = args.players
    if args.mafia is not None:
        overrides["mafia_count"] = args.mafia
    if args.rounds is not None:
        overrides["discussion_rounds"] = args.rounds
    if args.threshold is not None:
        overrides["nomination_threshold_percent"] = args.threshold
    if args.max_days is not None:
        overrides["max_days"] = args.max_days
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.no_reveal:
        overrides["reveal_roles_on_death"] = False
    if args.agent_url:
        overrides["agent_base_url"] = args.agent_url
    if args.model:
        overrides["default_model"] = args.model
    if args.quiet:
        overrides["verbose"] = False
    return GameConfig.from_env(**overrides)


def main(argv=None):
    """Main entry point for mafiasim."""
    args = build_parser().parse_args(argv)

    # Load environment variables
    load_dotenv()

    try:
        config = config_from_args(args)
    except ConfigurationError as e:
        # No config yet, so log to the console only
        setup_logger(verbose=not args.quiet, save_to_file=False)
        logging.getLogger("mafiasim").error(f"Invalid configuration: {e}")
        sys.exit(1)

    setup_logger(verbose=config.verbose, save_to_file=config.save_transcripts, log_dir=config.log_dir)
    logger = logging.getLogger("mafiasim")

    logger.info("\n" + "=" * 60)
    logger.info("AI MAFIA")
    logger.info("=" * 60 + "\n")

    try:
        config.validate()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    agent_client = None
    if args.offline:
        agent_client = create_agent_client(config, random.Random(config.seed), offline=True)

    engine = GameEngine(config, agent_client=agent_client)

    try:
        result = engine.run_game()
    except KeyboardInterrupt:
        logger.info("\n\nGame interrupted by user")
        sys.exit(130)

    if result.completed:
        logger.info(f"\nWINNER: {result.winner.name} after {result.days_played} days")
    else:
        logger.warning(f"\nGame ended without a winner: {result.error or result.reason}")

    if args.report:
        engine.save_game_report(args.report)

    sys.exit(0 if result.completed else 2)


if __name__ == "__main__":
    main()
