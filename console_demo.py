"""
Offline console demo: runs a full card-support conversation in the terminal.

Uses the real classifier, predictor, session store, and orchestrator with
the mock account and weather services. No network calls.

Usage:
    python console_demo.py
    python console_demo.py --scenario overdue
    python console_demo.py --customer user_duplicate_txn
"""

import argparse
from typing import Optional

from card_support.config import settings
from card_support.conversation import ConversationOrchestrator, SessionStore
from card_support.schemas.conversation_schema import ChatReply, FeedbackRating
from card_support.tools.accounts import MockAccountService
from card_support.tools.feedback import FeedbackService
from card_support.tools.weather import WeatherService

BLUE = "\033[94m"
GREEN = "\033[92m"
YELLOW = "\033[93m"
RED = "\033[91m"
DIM = "\033[2m"
RESET = "\033[0m"
BOLD = "\033[1m"

RATINGS = {rating.value: rating for rating in FeedbackRating}


class ConsoleSession:
    """Drives one customer's chat through the orchestrator."""

    # Pre-scripted scenarios for --scenario flag: (customer, messages)
    SCENARIOS: dict[str, tuple[str, list[str]]] = {
        "overdue": ("user_overdue", ["hello", "yes", "thanks"]),
        "recent": ("user_recent_payment", ["hi", "sure", "show my statement", "thank you"]),
        "duplicate": ("user_duplicate_txn", ["good morning", "cancel", "thanks"]),
        "decline": ("user123", ["hello", "no", "what is my balance?", "thanks"]),
    }

    MAX_INPUT_LENGTH = 500

    def __init__(self, customer_id: Optional[str] = None) -> None:
        self.customer_id = customer_id or settings.assistant.default_customer_id
        self.sessions = SessionStore()
        self.orchestrator = ConversationOrchestrator(
            self.sessions, MockAccountService(), WeatherService()
        )
        self.feedback = FeedbackService(self.sessions)
        self.session_id: Optional[str] = None

    def assistant_say(self, reply: ChatReply) -> None:
        colour = RED if reply.error_code else GREEN
        print(f"{colour}{BOLD}[Assistant]{RESET} {colour}{reply.text}{RESET}")

    def system_log(self, text: str) -> None:
        print(f"{DIM}  >> {text}{RESET}")

    def send(self, text: str) -> ChatReply:
        reply = self.orchestrator.handle_message(
            text, session_id=self.session_id, customer_id=self.customer_id
        )
        self.session_id = reply.session_id
        self.assistant_say(reply)
        if reply.state is not None:
            self.system_log(f"State: {reply.state.value}")
        return reply

    def run_scenario(self, scenario: str) -> None:
        """Auto-play a pre-scripted scenario for demo purposes."""
        if scenario not in self.SCENARIOS:
            print(f"{RED}Unknown scenario: {scenario}{RESET}")
            return
        self.customer_id, steps = self.SCENARIOS[scenario]

        self._banner(f"Scenario: {scenario} ({self.customer_id})")
        for step in steps:
            print(f"\n{BLUE}[Customer] {RESET}{step}")
            reply = self.send(step)
            if reply.is_session_complete:
                break
        self._summary()

    def run(self) -> None:
        self._banner(f"Customer: {self.customer_id}  |  Type 'quit' to exit")

        while True:
            user_input = input(f"\n{BLUE}[Customer] {RESET}").strip()
            if not user_input:
                continue
            if user_input.lower() in ("quit", "exit", "q"):
                print(f"\n{DIM}Session ended.{RESET}")
                break
            if len(user_input) > self.MAX_INPUT_LENGTH:
                print(f"{YELLOW}Please keep messages under {self.MAX_INPUT_LENGTH} characters.{RESET}")
                continue

            reply = self.send(user_input)
            if reply.is_session_complete:
                self._ask_rating()
                break

        self._summary()

    def _ask_rating(self) -> None:
        answer = input(f"\n{YELLOW}Rate this chat (happy/neutral/sad, blank to skip): {RESET}")
        rating = RATINGS.get(answer.strip().lower())
        if rating is None or self.session_id is None:
            return
        record = self.feedback.submit_feedback(self.session_id, self.customer_id, rating)
        self.system_log(f"Feedback recorded: {record.feedback_id}")

    def _banner(self, subtitle: str) -> None:
        print()
        print(f"{BOLD}{'=' * 60}{RESET}")
        print(f"{BOLD}  CARD SUPPORT ASSISTANT - Console Demo{RESET}")
        print(f"{BOLD}  {subtitle}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")

    def _summary(self) -> None:
        context = self.sessions.get(self.session_id)
        print(f"\n{BOLD}{'=' * 60}{RESET}")
        if context is not None:
            print(f"{DIM}  State trace: {' -> '.join(context.get_state_trace())}{RESET}")
            print(f"{DIM}  Messages: {context.message_count}{RESET}")
        print(f"{BOLD}{'=' * 60}{RESET}")
        self.sessions.shutdown()


def main() -> None:
    parser = argparse.ArgumentParser(description="Offline card-support console demo")
    parser.add_argument(
        "--scenario",
        choices=sorted(ConsoleSession.SCENARIOS),
        default=None,
        help="Auto-play a pre-scripted scenario instead of interactive mode",
    )
    parser.add_argument(
        "--customer",
        default=None,
        help="Customer ID for interactive mode (defaults to DEFAULT_CUSTOMER_ID)",
    )
    args = parser.parse_args()

    session = ConsoleSession(args.customer)
    if args.scenario:
        session.run_scenario(args.scenario)
    else:
        session.run()


if __name__ == "__main__":
    main()
