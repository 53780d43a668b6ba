import pytest

from session_guard import Session
from settings import PilotSettings


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class FakeView:
    """
    Scripted chat page. ``baseline`` is shown until the prompt is submitted,
    then each read returns the next scripted reply (the last one repeats).
    """

    def __init__(self, clock, replies=None, baseline=None, missing=()):
        self.clock = clock
        self.replies = list(replies or [])
        self.baseline = baseline
        self.missing = set(missing)
        self.submitted = False
        self.calls = []
        self.typed = []

    def focus_session(self):
        self.calls.append("focus")

    def locate(self, selector, timeout_ms):
        self.calls.append(("locate", selector))
        if selector in self.missing:
            from errors import ElementNotFound

            self.clock.sleep(timeout_ms / 1000)
            raise ElementNotFound(f"{selector} not visible after {timeout_ms}ms")
        return f"handle:{selector}"

    def read_last_reply_text(self):
        if not self.submitted:
            return self.baseline
        if len(self.replies) > 1:
            return self.replies.pop(0)
        return self.replies[0] if self.replies else self.baseline

    def clear_and_type(self, handle, text):
        self.calls.append(("type", handle))
        self.typed.append(text)

    def submit(self, handle):
        self.calls.append(("submit", handle))
        self.submitted = True

    def pause(self, seconds):
        self.clock.sleep(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    return PilotSettings(poll_ms=250, settle_ms=2000, reply_timeout_ms=10000, input_wait_ms=1000)


@pytest.fixture
def session():
    return Session(authenticated=True)


@pytest.fixture
def make_view(clock):
    def _make(**kwargs):
        return FakeView(clock, **kwargs)

    return _make
