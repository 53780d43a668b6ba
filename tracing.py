# tracing.py
import os
from itertools import count
from typing import Any

DEBUG = os.environ.get("LUMO_DEBUG", "").strip().lower() in {"1", "true", "yes", "debug"}
_ACTION_SEQ = count(1)


def trace(action: str, **extra: Any) -> int:
    """Print a numbered action line and return its sequence number."""
    seq = next(_ACTION_SEQ)
    if extra:
        details = ", ".join(f"{key}={value!r}" for key, value in extra.items())
        print(f"🧭 [{seq}] {action} ({details})")
    else:
        print(f"🧭 [{seq}] {action}")
    return seq


def debug(message: str) -> None:
    if DEBUG:
        print(f"   ↳ {message}")


def set_debug(enabled: bool) -> None:
    global DEBUG
    DEBUG = bool(enabled)
