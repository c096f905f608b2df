# This project was developed with assistance from AI tools.
"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from walletbot.core.config import Settings


def test_defaults():
    """Should sweep expired sessions at most once a minute by default."""
    settings = Settings(_env_file=None)
    assert settings.SESSION_PURGE_INTERVAL_SECONDS == 60


def test_env_var_overrides_field(monkeypatch):
    """Should read a field from the env var of the same name."""
    monkeypatch.setenv("SESSION_PURGE_INTERVAL_SECONDS", "5")
    assert Settings(_env_file=None).SESSION_PURGE_INTERVAL_SECONDS == 5


def test_negative_purge_interval_rejected(monkeypatch):
    monkeypatch.setenv("SESSION_PURGE_INTERVAL_SECONDS", "-1")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
