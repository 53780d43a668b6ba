# session_guard.py
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from itertools import count
from typing import Any, Iterator, Optional

from errors import Busy, NotAuthenticated
from tracing import trace

_TOKEN_IDS = count(1)


@dataclass(frozen=True)
class GuardToken:
    operation: str
    token_id: int = field(default_factory=lambda: next(_TOKEN_IDS))
    acquired_at: datetime = field(default_factory=lambda: datetime.now(UTC))


class Session:
    """
    The one logical handle on the logged-in chat page.

    Multi-step mutations of the page (open a modal, fill it, submit) must run
    while holding the guard; a second caller is rejected with ``Busy`` rather
    than queued.
    """

    def __init__(self, view: Any = None, authenticated: bool = False):
        self.view = view
        self.authenticated = authenticated
        self._lock = threading.Lock()
        self._holder: Optional[GuardToken] = None

    @property
    def busy(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[GuardToken]:
        return self._holder

    def mark_authenticated(self) -> None:
        if not self.authenticated:
            self.authenticated = True
            print("✅ Login detected!")

    def require_authenticated(self) -> None:
        if not self.authenticated:
            raise NotAuthenticated("Please login first.")

    def acquire(self, operation: str = "operation") -> GuardToken:
        if not self._lock.acquire(blocking=False):
            current = self._holder.operation if self._holder else "another operation"
            raise Busy(f"{current} already in progress")
        token = GuardToken(operation=operation)
        self._holder = token
        trace(f"{operation}: lock acquired")
        return token

    def release(self, token: GuardToken) -> bool:
        """Release the guard held by ``token``. Stale or foreign tokens are ignored."""
        if self._holder is None or self._holder.token_id != token.token_id:
            print(f"  ⚠️ Ignoring release of stale guard token for {token.operation}")
            return False
        self._holder = None
        self._lock.release()
        trace(f"{token.operation}: lock released")
        return True

    @contextmanager
    def guarded(self, operation: str = "operation") -> Iterator[GuardToken]:
        token = self.acquire(operation)
        try:
            yield token
        finally:
            self.release(token)
