from settings import INPUT_SELECTORS, LUMO_CHAT_URL, PilotSettings, resolve_settings


def test_defaults_without_environment():
    settings = resolve_settings({})

    assert settings.url == LUMO_CHAT_URL
    assert settings.headless is False
    assert settings.settle_duration == 2.0
    assert settings.reply_ceiling == 50.0
    assert settings.poll_interval == 0.15
    assert settings.input_selectors == INPUT_SELECTORS


def test_environment_overrides():
    settings = resolve_settings(
        {
            "LUMO_URL": "https://lumo.example/chat",
            "LUMO_HEADLESS": "yes",
            "LUMO_SETTLE_MS": "3000",
            "LUMO_REPLY_TIMEOUT_MS": "20000",
            "LUMO_TURN_PAUSE_MS": "500",
            "LUMO_PROFILE_DIR": "/tmp/lumo-profile",
        }
    )

    assert settings.url == "https://lumo.example/chat"
    assert settings.headless is True
    assert settings.settle_duration == 3.0
    assert settings.reply_ceiling == 20.0
    assert settings.turn_pause == 0.5
    assert settings.profile_dir == "/tmp/lumo-profile"


def test_invalid_values_keep_defaults(capsys):
    settings = resolve_settings({"LUMO_SETTLE_MS": "soon", "LUMO_HEADLESS": "maybe", "LUMO_POLL_MS": "-5"})

    assert settings.settle_ms == PilotSettings.settle_ms
    assert settings.headless is False
    assert settings.poll_ms == PilotSettings.poll_ms
    out = capsys.readouterr().out
    assert "LUMO_SETTLE_MS" in out
    assert "LUMO_HEADLESS" in out


def test_zero_poll_interval_is_reset():
    assert resolve_settings({"LUMO_POLL_MS": "0"}).poll_ms == PilotSettings.poll_ms


def test_selector_lists_are_not_shared():
    first = PilotSettings()
    first.input_selectors.append("textarea")
    assert PilotSettings().input_selectors == INPUT_SELECTORS
