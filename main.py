"""
Card-support assistant entry point.

Runs the offline console demo, either interactively or as a scripted
scenario.

Usage:
    Interactive:  python main.py console [--customer user_overdue]
    Scripted:     python main.py scenario overdue
"""

import argparse
import logging
from typing import Optional, Sequence

from card_support.config import settings
from console_demo import ConsoleSession

logger = logging.getLogger(__name__)


def _run_console_mode(customer_id: str) -> None:
    ConsoleSession(customer_id).run()


def _run_scenario_mode(scenario: str) -> None:
    ConsoleSession().run_scenario(scenario)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Card-support assistant")
    modes = parser.add_subparsers(dest="mode")

    console = modes.add_parser("console", help="Chat interactively in the terminal")
    console.add_argument(
        "--customer",
        default=settings.assistant.default_customer_id,
        help="Customer ID to chat as (defaults to DEFAULT_CUSTOMER_ID)",
    )

    scenario = modes.add_parser("scenario", help="Auto-play a pre-scripted conversation")
    scenario.add_argument("name", choices=sorted(ConsoleSession.SCENARIOS))
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.mode == "scenario":
        _run_scenario_mode(args.name)
        return
    customer = getattr(args, "customer", settings.assistant.default_customer_id)
    logger.info("Starting console session for %s", customer)
    _run_console_mode(customer)


if __name__ == "__main__":
    main()
