"""Open the Lumo chat in a persistent Chromium profile.

The profile directory keeps the Proton login between runs; only the first run
needs a manual sign-in in the visible window.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from playwright.sync_api import BrowserContext, Error as PWError, Page, Playwright, sync_playwright

from settings import PilotSettings
from tracing import trace


@dataclass
class ChatBrowser:
    playwright: Playwright
    context: BrowserContext
    page: Page


def _first_page(context: BrowserContext) -> Page:
    return context.pages[0] if context.pages else context.new_page()


def open_chat_browser(settings: PilotSettings) -> ChatBrowser:
    """Start Chromium on ``settings.profile_dir`` and load ``settings.url``.

    A failed first navigation is reported but not raised: the login watcher
    keeps polling the page, and the user can reload it by hand.
    """
    profile_path = Path(settings.profile_dir).expanduser()
    profile_path.mkdir(parents=True, exist_ok=True)

    playwright = sync_playwright().start()
    try:
        context = playwright.chromium.launch_persistent_context(
            str(profile_path),
            headless=settings.headless,
            args=["--start-maximized"],
            no_viewport=True,
        )
    except PWError:
        playwright.stop()
        raise
    page = _first_page(context)
    trace("BROWSER: profile ready", profile=str(profile_path), headless=settings.headless)

    try:
        page.goto(settings.url, wait_until="networkidle")
    except PWError as exc:
        print(f"⚠️ Initial navigation to {settings.url} failed: {exc}")
    return ChatBrowser(playwright, context, page)


def close_chat_browser(browser: Optional[ChatBrowser]) -> None:
    if browser is None:
        return
    try:
        browser.context.close()
    finally:
        browser.playwright.stop()
