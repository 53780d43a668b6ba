from unittest.mock import MagicMock

import pytest
from playwright.sync_api import Error as PWError

import bots._profile_launch as profile_launch
from settings import PilotSettings


@pytest.fixture
def playwright(monkeypatch):
    pw = MagicMock()
    pw.chromium.launch_persistent_context.return_value.pages = []
    monkeypatch.setattr(profile_launch, "sync_playwright", lambda: MagicMock(start=lambda: pw))
    return pw


def test_open_chat_browser_loads_chat_url(playwright, tmp_path):
    settings = PilotSettings(profile_dir=str(tmp_path / "profile"), headless=True)

    browser = profile_launch.open_chat_browser(settings)

    context = playwright.chromium.launch_persistent_context.return_value
    assert (tmp_path / "profile").is_dir()
    assert playwright.chromium.launch_persistent_context.call_args.kwargs["headless"] is True
    assert browser.page is context.new_page.return_value
    browser.page.goto.assert_called_once_with(settings.url, wait_until="networkidle")


def test_failed_navigation_keeps_browser_open(playwright, tmp_path, capsys):
    context = playwright.chromium.launch_persistent_context.return_value
    existing = MagicMock()
    existing.goto.side_effect = PWError("net::ERR_INTERNET_DISCONNECTED")
    context.pages = [existing]

    browser = profile_launch.open_chat_browser(PilotSettings(profile_dir=str(tmp_path)))

    assert browser.page is existing
    assert "Initial navigation" in capsys.readouterr().out
    context.close.assert_not_called()


def test_close_stops_playwright_even_if_context_close_fails(playwright, tmp_path):
    browser = profile_launch.open_chat_browser(PilotSettings(profile_dir=str(tmp_path)))
    browser.context.close.side_effect = PWError("Target closed")

    with pytest.raises(PWError):
        profile_launch.close_chat_browser(browser)
    playwright.stop.assert_called_once()
    profile_launch.close_chat_browser(None)
