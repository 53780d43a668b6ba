# executor.py
import re
import time
from typing import Any, Callable, Optional, Protocol

from convergence import wait_for_settled
from errors import ElementNotFound, InputNotFound
from session_guard import Session
from settings import PilotSettings
from tracing import debug, trace

# UI button labels that end up concatenated into a reply block's innerText.
# Usually they render on their own line, so strip from a line start onwards.
AFFORDANCE_PATTERNS = [
    re.compile(r"^[ \t]*I like this response\b.*\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^[ \t]*Report an issue\b.*\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^[ \t]*Copy[ \t]*$.*\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL),
    re.compile(r"^[ \t]*Regenerate[ \t]*$.*\Z", re.IGNORECASE | re.MULTILINE | re.DOTALL),
]

# Labels glued straight onto the closing punctuation of the last sentence,
# e.g. "...the capital.CopyRegenerate". Case-sensitive, as rendered.
TRAILING_AFFORDANCES = re.compile(
    r"(?<=[.!?:;)\]\"'`])[ \t]*(?:(?:I like this response|Report an issue|Copy|Regenerate)[ \t]*)+\Z"
)


class ChatView(Protocol):
    """What the turn executor needs from the page driver."""

    def focus_session(self) -> None: ...

    def locate(self, selector: str, timeout_ms: int) -> Any: ...

    def read_last_reply_text(self) -> Optional[str]: ...

    def clear_and_type(self, handle: Any, text: str) -> None: ...

    def submit(self, handle: Any) -> None: ...

    def pause(self, seconds: float) -> None: ...


def strip_affordances(text: Optional[str]) -> Optional[str]:
    """Remove trailing action-button labels from a captured reply."""
    if text is None:
        return None
    cleaned = text
    for pattern in AFFORDANCE_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = TRAILING_AFFORDANCES.sub("", cleaned.strip()).strip()
    return cleaned or None


def _shorten(text: str, limit: int = 60) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 1] + "…"


class TurnExecutor:
    """Send one prompt to the chat page and wait for its settled reply."""

    def __init__(
        self,
        session: Session,
        view: Optional[ChatView] = None,
        settings: Optional[PilotSettings] = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.session = session
        self.view = view if view is not None else session.view
        if self.view is None:
            raise ValueError("TurnExecutor needs a view to drive")
        self.settings = settings or PilotSettings()
        self._clock = clock
        self._sleep = sleep or self.view.pause

    def _read_reply(self) -> Optional[str]:
        return strip_affordances(self.view.read_last_reply_text())

    def _locate_input(self) -> Any:
        last_error = "no candidates configured"
        for selector in self.settings.input_selectors:
            trace("SEND_PROMPT: waiting for selector", selector=selector)
            try:
                handle = self.view.locate(selector, self.settings.input_wait_ms)
            except ElementNotFound as exc:
                last_error = str(exc)
                continue
            if handle is not None:
                trace("SEND_PROMPT: input found", selector=selector)
                return handle
            last_error = f"{selector} matched 0 elements"
        raise InputNotFound(f"Prompt input field not found. Last error: {last_error}")

    def send_turn(self, prompt: str, *, ceiling: Optional[float] = None) -> Optional[str]:
        """
        Submit ``prompt`` and return the settled reply text.
        Returns None when no new reply settled before the timeout.

        ``ceiling`` (seconds) overrides ``settings.reply_ceiling`` for callers
        that only need a best-effort reply, such as one-off relayed prompts.
        """
        self.session.require_authenticated()
        if not prompt or not prompt.strip():
            raise ValueError("Prompt is required.")
        if ceiling is None:
            ceiling = self.settings.reply_ceiling
        elif ceiling <= 0:
            raise ValueError("ceiling must be positive")

        trace("SEND_PROMPT: start", prompt=_shorten(prompt))
        self.view.focus_session()
        handle = self._locate_input()

        baseline = self._read_reply()
        debug(f"previous reply captured: {bool(baseline)}")

        self.view.clear_and_type(handle, prompt)
        self.view.submit(handle)
        trace("SEND_PROMPT: submitted")

        result = wait_for_settled(
            self._read_reply,
            baseline=baseline,
            settle=self.settings.settle_duration,
            ceiling=ceiling,
            interval=self.settings.poll_interval,
            clock=self._clock,
            sleep=self._sleep,
        )
        if result.timed_out:
            print(f"⏱️ SEND_PROMPT: response timeout after {result.elapsed:.1f}s")
            return None

        trace("SEND_PROMPT: response received", seconds=round(result.elapsed, 1))
        return strip_affordances(result.value)
