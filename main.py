# main.py
import argparse
import json
import signal
import sys
import threading
from typing import List, Optional

from bots._profile_launch import close_chat_browser, open_chat_browser
from bots.lumo_page import LumoPage
from dialogue import DEFAULT_MAX_TURNS, DialogueOrchestrator
from errors import Busy, ElementNotFound, NotAuthenticated, PilotError, TurnFailed, format_error
from executor import TurnExecutor
from planner import FollowUpPlanner
from session_guard import Session
from settings import PilotSettings, resolve_settings
from tracing import set_debug

EXIT_CODES = {
    NotAuthenticated: 2,
    Busy: 3,
    ElementNotFound: 4,
    TurnFailed: 5,
}


def exit_code_for(exc: PilotError) -> int:
    for error_type, code in EXIT_CODES.items():
        if isinstance(exc, error_type):
            return code
    return 1


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lumo-pilot",
        description="Drive a logged-in Proton Lumo chat session from the command line",
    )
    parser.add_argument("--debug", action="store_true", help="Print verbose progress lines")
    parser.add_argument("--headless", action="store_true", help="Run Chromium headless (needs an existing login)")
    sub = parser.add_subparsers(dest="command", required=True)

    prompt = sub.add_parser("prompt", help="Send one prompt and print the settled reply")
    prompt.add_argument("text", nargs="*", help="Prompt text (read from stdin when omitted)")
    prompt.add_argument("--timeout-ms", type=int, default=None, help="Reply timeout for this prompt (default: LUMO_REPLY_TIMEOUT_MS)")

    dialogue = sub.add_parser("dialogue", help="Run an automated multi-turn dialogue")
    dialogue.add_argument("text", nargs="*", help="Initial prompt (read from stdin when omitted)")
    dialogue.add_argument("--max-turns", type=int, default=DEFAULT_MAX_TURNS, help="Turn cap (default: %(default)s)")

    create = sub.add_parser("create-project", help="Create a project")
    create.add_argument("name")
    create.add_argument("--instructions", default="", help="Project instructions")

    open_ = sub.add_parser("open-project", help="Open an existing project from the sidebar")
    open_.add_argument("name")

    sub.add_parser("new-chat", help="Start a new chat")

    for name, label in (("web-search", "web search"), ("ghost-mode", "ghost mode")):
        toggle = sub.add_parser(name, help=f"Turn {label} on or off")
        toggle.add_argument("state", choices=["on", "off"])

    return parser


def _resolve_text(words: List[str], what: str) -> str:
    text = " ".join(words).strip()
    if text:
        return text
    try:
        text = input(f"Enter {what}: ").strip()
    except EOFError:
        text = ""
    if not text:
        raise ValueError(f"{what.capitalize()} is required.")
    return text


def _run_dialogue(executor: TurnExecutor, settings: PilotSettings, initial_prompt: str, max_turns: int) -> int:
    cancel = threading.Event()
    previous_handler = signal.getsignal(signal.SIGINT)

    def _request_stop(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        print("\n🛑 Stopping after the current turn (Ctrl-C again to abort).")
        cancel.set()

    signal.signal(signal.SIGINT, _request_stop)
    try:
        orchestrator = DialogueOrchestrator(executor, FollowUpPlanner(), pause=settings.turn_pause)
        result = orchestrator.run(initial_prompt, max_turns=max_turns, cancel=cancel)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    return 0


def run_command(args: argparse.Namespace, session: Session, view: LumoPage, settings: PilotSettings) -> int:
    executor = TurnExecutor(session, view, settings)

    if args.command == "prompt":
        ceiling = args.timeout_ms / 1000 if args.timeout_ms else None
        reply = executor.send_turn(args.text, ceiling=ceiling)
        print(reply if reply is not None else "Prompt sent, but response not detected.")
        return 0
    if args.command == "dialogue":
        return _run_dialogue(executor, settings, args.text, args.max_turns)
    if args.command == "create-project":
        print(view.create_project(session, args.name, args.instructions))
        return 0
    if args.command == "open-project":
        print(view.open_project(session, args.name))
        return 0
    if args.command == "new-chat":
        print(view.start_new_chat(session))
        return 0
    if args.command == "web-search":
        view.set_web_search(session, args.state == "on")
        return 0
    if args.command == "ghost-mode":
        view.set_ghost_mode(session, args.state == "on")
        return 0
    raise ValueError(f"Unknown command '{args.command}'")


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    try:
        if args.command == "prompt":
            args.text = _resolve_text(args.text, "prompt")
        elif args.command == "dialogue":
            args.text = _resolve_text(args.text, "initial prompt")
    except ValueError as exc:
        print(f"❌ {exc}")
        return 1
    settings = resolve_settings()
    if args.headless:
        settings.headless = True
    set_debug(args.debug or settings.debug)

    browser = None
    try:
        browser = open_chat_browser(settings)
        view = LumoPage(browser.page, settings)
        session = Session(view)
        if not view.wait_for_login(session):
            print("❌ Please login first.")
            return exit_code_for(NotAuthenticated())
        return run_command(args, session, view, settings)
    except PilotError as exc:
        print(f"❌ {format_error(exc)}")
        return exit_code_for(exc)
    except ValueError as exc:
        print(f"❌ {exc}")
        return 1
    finally:
        close_chat_browser(browser)


if __name__ == "__main__":
    sys.exit(main())
