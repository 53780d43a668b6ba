# settings.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional

from dotenv import load_dotenv

LUMO_CHAT_URL = "https://lumo.proton.me/chat"
PROFILES_ROOT = Path("profiles")
DOM_DEBUG_DIR = Path("dom_dumps")

# prompt entry candidates, most specific first
INPUT_SELECTORS = [
    'p[data-placeholder="Ask anything…"]',
    "div.ProseMirror",
]
REPLY_BLOCK_SELECTOR = ".assistant-msg-container"
ACCOUNT_MENU_SELECTOR = 'button[data-testid="heading:userdropdown"]'


@dataclass
class PilotSettings:
    url: str = LUMO_CHAT_URL
    profile_dir: str = str(PROFILES_ROOT / "lumo")
    headless: bool = False
    poll_ms: int = 150
    settle_ms: int = 2000
    reply_timeout_ms: int = 50000
    input_wait_ms: int = 8000
    turn_pause_ms: int = 2000
    login_poll_ms: int = 2000
    login_timeout_ms: int = 300000
    dump_dir: str = str(DOM_DEBUG_DIR)
    debug: bool = False
    input_selectors: List[str] = field(default_factory=lambda: list(INPUT_SELECTORS))

    @property
    def poll_interval(self) -> float:
        return self.poll_ms / 1000

    @property
    def settle_duration(self) -> float:
        return self.settle_ms / 1000

    @property
    def reply_ceiling(self) -> float:
        return self.reply_timeout_ms / 1000

    @property
    def turn_pause(self) -> float:
        return self.turn_pause_ms / 1000


_INT_SETTINGS: Dict[str, str] = {
    "LUMO_POLL_MS": "poll_ms",
    "LUMO_SETTLE_MS": "settle_ms",
    "LUMO_REPLY_TIMEOUT_MS": "reply_timeout_ms",
    "LUMO_INPUT_WAIT_MS": "input_wait_ms",
    "LUMO_TURN_PAUSE_MS": "turn_pause_ms",
    "LUMO_LOGIN_TIMEOUT_MS": "login_timeout_ms",
}


def _parse_flag(name: str, raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on", "debug"}:
        return True
    if normalized in {"0", "false", "no", "off", ""}:
        return False
    print(f"  • Unrecognized {name} value '{raw}', keeping {default}.")
    return default


def _parse_ms(name: str, raw: str, default: int) -> int:
    try:
        value = int(raw.strip())
    except ValueError:
        print(f"  • {name} must be an integer number of milliseconds, got '{raw}'. Using {default}.")
        return default
    if value < 0:
        print(f"  • {name} cannot be negative. Using {default}.")
        return default
    return value


def resolve_settings(env: Optional[Mapping[str, str]] = None, *, dotenv: bool = True) -> PilotSettings:
    """
    Build settings from LUMO_* environment variables.
    A .env file in the working directory is loaded first unless ``dotenv`` is False.
    """
    if env is None:
        if dotenv:
            load_dotenv()
        env = os.environ

    settings = PilotSettings()

    url = (env.get("LUMO_URL") or "").strip()
    if url:
        settings.url = url

    profile_dir = (env.get("LUMO_PROFILE_DIR") or "").strip()
    if profile_dir:
        settings.profile_dir = str(Path(profile_dir).expanduser())

    dump_dir = (env.get("LUMO_DUMP_DIR") or "").strip()
    if dump_dir:
        settings.dump_dir = str(Path(dump_dir).expanduser())

    settings.headless = _parse_flag("LUMO_HEADLESS", env.get("LUMO_HEADLESS"), settings.headless)
    settings.debug = _parse_flag("LUMO_DEBUG", env.get("LUMO_DEBUG"), settings.debug)

    for var, attr in _INT_SETTINGS.items():
        raw = env.get(var)
        if raw is not None:
            setattr(settings, attr, _parse_ms(var, raw, getattr(settings, attr)))

    # a zero interval would spin on the page
    if settings.poll_ms == 0:
        settings.poll_ms = PilotSettings.poll_ms

    return settings
