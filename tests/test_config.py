"""Tests for environment-driven settings validation."""

import pytest
from pydantic import ValidationError

from app.core.config import AppSettings, LogSettings


class TestLogSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        cfg = LogSettings()

        assert (cfg.level, cfg.format, cfg.output) == ("INFO", "json", "stdout")

    def test_choices_are_case_insensitive(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "PLAIN")
        monkeypatch.setenv("LOG_OUTPUT", "File")

        cfg = LogSettings()

        assert (cfg.level, cfg.format, cfg.output) == ("DEBUG", "plain", "file")

    @pytest.mark.parametrize(
        "name,value",
        [("LOG_FORMAT", "jsn"), ("LOG_OUTPUT", "syslog"), ("LOG_LEVEL", "verbose")],
    )
    def test_rejects_unknown_choice(self, monkeypatch: pytest.MonkeyPatch, name: str, value: str):
        monkeypatch.setenv(name, value)

        with pytest.raises(ValidationError):
            LogSettings()


def test_sweep_probability_is_bounded(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("APP_RATE_LIMIT_SWEEP_PROBABILITY", "1.5")

    with pytest.raises(ValidationError):
        AppSettings()
