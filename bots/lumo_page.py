"""Playwright driver for the Proton Lumo chat page.

``LumoPage`` implements the view interface used by ``TurnExecutor`` and the
guarded workspace operations (projects, new chat, feature toggles). Every
multi-step mutation runs inside ``Session.guarded``.
"""

from __future__ import annotations

import json
import time
from itertools import count
from pathlib import Path
from typing import Any, Dict, Optional

from playwright.sync_api import Error as PWError, Locator, Page, TimeoutError as PWTimeoutError

from errors import ElementNotFound, InputNotFound, PilotError
from session_guard import Session
from settings import ACCOUNT_MENU_SELECTOR, REPLY_BLOCK_SELECTOR, PilotSettings
from tracing import debug, trace

_SNAPSHOT_COUNTER = count(1)

PROJECTS_SIDEBAR_SELECTOR = 'button[aria-label="Projects"]'
PROJECT_CREATE_SELECTOR = "button.projects-create-button"
PROJECT_NAME_SELECTOR = "#project-name"
PROJECT_INSTRUCTIONS_SELECTOR = "#project-instructions"
PROJECT_ITEM_SELECTOR = "a.project-sidebar-item"

# path data prefixes of the ghost-mode icon in its two states
GHOST_ICON_DISABLED = "M14.7497 9.25362L15.4433 9.50118L18.0931 7.79902"
GHOST_ICON_ENABLED = "M17.0185 11.5867C17.7224 11.6254"

_LAST_REPLY_JS = """
(selector) => {
    const blocks = Array.from(document.querySelectorAll(selector))
        .map(div => (div.innerText || '').trim())
        .filter(Boolean);
    return blocks.length ? blocks[blocks.length - 1] : null;
}
"""

_RESET_FOCUS_JS = """
() => {
    document.dispatchEvent(new KeyboardEvent('keydown', { key: 'Escape', bubbles: true }));
    if (document.activeElement) document.activeElement.blur();
}
"""

_ACTIVE_TAG_JS = "() => document.activeElement ? document.activeElement.tagName : null"

_CLEAR_ACTIVE_JS = """
() => {
    const editor = document.activeElement;
    if (editor) editor.textContent = '';
}
"""

_NEW_CHAT_JS = """
() => {
    const span = Array.from(document.querySelectorAll('span.sidebar-item-label'))
        .find(s => (s.textContent || '').trim().toLowerCase() === 'new chat');
    const clickable = span ? span.closest('button, div[role="button"]') : null;
    if (!clickable) return false;
    clickable.click();
    return true;
}
"""

_WEB_SEARCH_STATE_JS = """
() => {
    const button = Array.from(document.querySelectorAll('button'))
        .find(btn => (btn.innerText || '').trim() === 'Web search');
    if (!button) return null;
    return button.classList.contains('is-active');
}
"""

_WEB_SEARCH_CLICK_JS = """
() => {
    const button = Array.from(document.querySelectorAll('button'))
        .find(btn => (btn.innerText || '').trim() === 'Web search');
    if (!button) return false;
    button.click();
    return true;
}
"""

_GHOST_STATE_JS = """
([disabledIcon, enabledIcon]) => {
    const paths = Array.from(document.querySelectorAll('path'));
    if (paths.some(p => p.outerHTML.includes(enabledIcon))) return 'enabled';
    if (paths.some(p => p.outerHTML.includes(disabledIcon))) return 'disabled';
    return null;
}
"""

_GHOST_CLICK_JS = """
([disabledIcon, enabledIcon]) => {
    const ghostPath = Array.from(document.querySelectorAll('path'))
        .find(p => p.outerHTML.includes(disabledIcon) || p.outerHTML.includes(enabledIcon));
    const button = ghostPath ? ghostPath.closest('button') : null;
    if (!button) return false;
    button.click();
    return true;
}
"""


def _css_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class LumoPage:
    def __init__(self, page: Page, settings: Optional[PilotSettings] = None):
        self.page = page
        self.settings = settings or PilotSettings()

    # -- view interface used by TurnExecutor ---------------------------------

    def focus_session(self) -> None:
        self.page.bring_to_front()

    def locate(self, selector: str, timeout_ms: int) -> Locator:
        target = self.page.locator(selector).first
        try:
            target.wait_for(state="visible", timeout=timeout_ms)
        except PWTimeoutError as exc:
            raise ElementNotFound(f"{selector} not visible after {timeout_ms}ms") from exc
        except PWError as exc:
            raise ElementNotFound(f"{selector} could not be located: {exc}") from exc
        return target

    def read_last_reply_text(self) -> Optional[str]:
        try:
            text = self.page.evaluate(_LAST_REPLY_JS, REPLY_BLOCK_SELECTOR)
        except PWError as exc:
            # the page can be mid-render; the next poll will retry
            debug(f"reply read failed: {exc}")
            return None
        return text or None

    def clear_and_type(self, handle: Locator, text: str) -> None:
        try:
            handle.click(timeout=5000)
            active_tag = self.page.evaluate(_ACTIVE_TAG_JS)
        except PWError as exc:
            raise InputNotFound(f"Prompt input could not be focused: {exc}") from exc
        if active_tag == "BUTTON":
            raise ElementNotFound("Active element is BUTTON, refusing to type the prompt")
        try:
            self.page.evaluate(_CLEAR_ACTIVE_JS)
            self.page.keyboard.type(text, delay=20)
        except PWError as exc:
            raise InputNotFound(f"Failed to type the prompt: {exc}") from exc
        debug("prompt typed")

    def submit(self, handle: Locator) -> None:
        try:
            self.page.keyboard.press("Enter")
        except PWError as exc:
            raise ElementNotFound(f"Failed to submit the prompt: {exc}") from exc

    def pause(self, seconds: float) -> None:
        self.page.wait_for_timeout(seconds * 1000)

    # -- login ---------------------------------------------------------------

    def is_logged_in(self) -> bool:
        try:
            return self.page.locator(ACCOUNT_MENU_SELECTOR).count() > 0
        except PWError:
            return False

    def wait_for_login(self, session: Session, poll_ms: Optional[int] = None, timeout_ms: Optional[int] = None) -> bool:
        """Poll for the account menu until the user has signed in by hand."""
        poll_ms = poll_ms or self.settings.login_poll_ms
        timeout_ms = timeout_ms if timeout_ms is not None else self.settings.login_timeout_ms
        if self.is_logged_in():
            session.mark_authenticated()
            return True
        print("🔐 Please log in manually to Proton Lumo in the opened browser.")
        deadline = time.monotonic() + timeout_ms / 1000
        while time.monotonic() < deadline:
            self.page.wait_for_timeout(poll_ms)
            if self.is_logged_in():
                session.mark_authenticated()
                return True
        print(f"⏱️ No login detected within {timeout_ms / 1000:.0f}s")
        return False

    # -- diagnostics ---------------------------------------------------------

    def save_failure_snapshot(self, label: str) -> Optional[Path]:
        """Write a screenshot and the page HTML next to each other for debugging."""
        dump_dir = Path(self.settings.dump_dir)
        try:
            dump_dir.mkdir(parents=True, exist_ok=True)
            base_name = f"{next(_SNAPSHOT_COUNTER):04d}_{time.strftime('%Y%m%d-%H%M%S')}_{label}"
            screenshot_path = dump_dir / f"{base_name}.png"
            self.page.screenshot(path=str(screenshot_path), full_page=True)
            (dump_dir / f"{base_name}.html").write_text(self.page.content(), encoding="utf-8")
            meta: Dict[str, Any] = {"label": label, "url": self.page.url, "title": self.page.title()}
            (dump_dir / f"{base_name}.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")
        except (PWError, OSError) as exc:
            print(f"  ⚠️ Failed to save diagnostics: {exc}")
            return None
        print(f"  🗂️ Saved diagnostics: {screenshot_path.name}")
        return screenshot_path

    # -- guarded workspace operations ----------------------------------------

    def _reset_focus(self) -> None:
        try:
            self.page.evaluate(_RESET_FOCUS_JS)
        except PWError as exc:
            print(f"⚠️ Cleanup failed: {exc}")

    def _expand_projects_sidebar(self, operation: str) -> None:
        sidebar_btn = self.page.locator(PROJECTS_SIDEBAR_SELECTOR)
        if sidebar_btn.count() > 0:
            trace(f"{operation}: sidebar collapsed → clicking")
            sidebar_btn.first.click(timeout=5000)
            self.page.wait_for_timeout(200)
        else:
            trace(f"{operation}: sidebar already expanded")

    def create_project(self, session: Session, name: str, instructions: str = "") -> str:
        session.require_authenticated()
        if not name or not name.strip():
            raise ValueError("Project name is required.")

        with session.guarded("CREATE_PROJECT"):
            try:
                self.focus_session()
                self._reset_focus()
                self.page.wait_for_timeout(200)
                self._expand_projects_sidebar("CREATE_PROJECT")

                self.locate(PROJECT_CREATE_SELECTOR, 5000).click(timeout=5000)
                trace("CREATE_PROJECT: + create clicked")

                name_input = self.locate(PROJECT_NAME_SELECTOR, 5000)
                instructions_input = self.locate(PROJECT_INSTRUCTIONS_SELECTOR, 5000)
                trace("CREATE_PROJECT: modal ready")
                name_input.fill(name)
                instructions_input.fill(instructions or "")

                create_btn = self.page.get_by_role("button", name="Create project", exact=True)
                if create_btn.count() == 0:
                    raise ElementNotFound("Create Project button not found")
                if create_btn.first.is_disabled():
                    raise PilotError("Create Project button disabled")
                create_btn.first.click(timeout=5000)
                trace("CREATE_PROJECT: create button clicked")
                self.page.wait_for_timeout(500)
            except Exception as exc:
                trace("CREATE_PROJECT: error", message=str(exc))
                self.save_failure_snapshot("create_project")
                self._reset_focus()
                if isinstance(exc, PWError):
                    raise ElementNotFound(f"Failed to create project: {exc}") from exc
                raise

        return f'✅ Project "{name}" created successfully'

    def open_project(self, session: Session, name: str) -> str:
        session.require_authenticated()
        if not name or not name.strip():
            raise ValueError("Project name is required.")

        with session.guarded("OPEN_PROJECT"):
            self.focus_session()
            self._expand_projects_sidebar("OPEN_PROJECT")
            item = self.page.locator(PROJECT_ITEM_SELECTOR).filter(
                has=self.page.locator(f'span[title="{_css_string(name)}"]')
            )
            if item.count() == 0:
                self.save_failure_snapshot("open_project")
                raise ElementNotFound(f'Project "{name}" not found')
            try:
                item.first.click(timeout=5000)
            except PWError as exc:
                raise ElementNotFound(f'Project "{name}" could not be opened: {exc}') from exc
            trace(f'OPEN_PROJECT: project "{name}" clicked')
            self.page.wait_for_timeout(300)

        return f'✅ Project "{name}" opened successfully'

    def start_new_chat(self, session: Session) -> str:
        session.require_authenticated()
        with session.guarded("NEW_CHAT"):
            self.focus_session()
            if not self.page.evaluate(_NEW_CHAT_JS):
                self.save_failure_snapshot("new_chat")
                raise ElementNotFound('"New chat" button not found')
            self.page.wait_for_timeout(300)
        return "✅ New chat started successfully."

    def set_web_search(self, session: Session, enabled: bool) -> bool:
        """Bring web search to ``enabled``. Returns True when a click was needed."""
        session.require_authenticated()
        with session.guarded("SET_WEBSEARCH"):
            self.focus_session()
            current = self.page.evaluate(_WEB_SEARCH_STATE_JS)
            if current is None:
                raise ElementNotFound("Web search button not found")
            if current == enabled:
                debug(f"web search already {'on' if enabled else 'off'}")
                return False
            self.page.evaluate(_WEB_SEARCH_CLICK_JS)
            self.page.wait_for_timeout(300)
            if self.page.evaluate(_WEB_SEARCH_STATE_JS) != enabled:
                raise PilotError(f"Tried to {'enable' if enabled else 'disable'} web search, but the toggle did not change")
        print(f"✅ Web search {'enabled' if enabled else 'disabled'}.")
        return True

    def _ghost_state(self) -> Optional[str]:
        return self.page.evaluate(_GHOST_STATE_JS, [GHOST_ICON_DISABLED, GHOST_ICON_ENABLED])

    def set_ghost_mode(self, session: Session, enabled: bool) -> bool:
        """
        Bring ghost mode to ``enabled``. Returns True when a click was needed.
        Ghost mode is left by opening a new chat, which the page does not allow
        to be undone from the icon itself.
        """
        session.require_authenticated()
        with session.guarded("SET_GHOSTMODE"):
            self.focus_session()
            state = self._ghost_state()
            if enabled:
                if state is None:
                    raise ElementNotFound("Ghost mode button not found")
                if state == "enabled":
                    return False
                self.page.evaluate(_GHOST_CLICK_JS, [GHOST_ICON_DISABLED, GHOST_ICON_ENABLED])
                self.page.wait_for_timeout(300)
                if self._ghost_state() != "enabled":
                    raise PilotError("Tried to enable ghost mode, but it's still disabled.")
                print("✅ Ghost mode enabled 🕵️")
                return True

            if state != "enabled":
                return False
            if not self.page.evaluate(_NEW_CHAT_JS):
                raise ElementNotFound('"New chat" button not found while leaving ghost mode')
            self.page.wait_for_timeout(300)
            if self._ghost_state() == "enabled":
                raise PilotError("Tried to disable ghost mode, but it's still enabled.")
            print("✅ Ghost mode disabled 👻")
            return True
