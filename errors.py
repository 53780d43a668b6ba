# errors.py
"""Typed errors raised while driving the Lumo session.

Convergence timeouts are not errors: ``send_turn`` returns ``None`` for them.
"""

from __future__ import annotations

__all__ = [
    "PilotError",
    "NotAuthenticated",
    "Busy",
    "ElementNotFound",
    "InputNotFound",
    "TurnFailed",
    "format_error",
]


class PilotError(Exception):
    """Base class for every operator-facing error in lumo-pilot."""


class NotAuthenticated(PilotError):
    """The browser session has not been logged in yet."""


class Busy(PilotError):
    """Another guarded operation currently holds the session."""


class ElementNotFound(PilotError):
    """An expected control is missing from the page."""


class InputNotFound(ElementNotFound):
    """None of the prompt entry candidates could be located."""


class TurnFailed(PilotError):
    """A dialogue turn could not produce a reply."""

    def __init__(self, index: int, message: str):
        super().__init__(f"turn {index}: {message}")
        self.index = index


def format_error(e: BaseException) -> str:
    """Return a short message like 'Busy: project creation already in progress'."""
    name = e.__class__.__name__
    msg = str(e).strip()
    return f"{name}: {msg}" if msg else name
