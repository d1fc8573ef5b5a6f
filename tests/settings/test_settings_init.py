"""Tests for settings __init__.py module.

Covers: Settings class, get_settings_summary
"""

import pytest
from pydantic import ValidationError

from src.settings import (
    BuzzSettings,
    Settings,
    get_settings_summary,
    settings,
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove environment variables for isolated testing."""
    env_vars = [
        "ENVIRONMENT",
        "DEBUG",
        "LEVENSHTEIN_MAX_DISTANCE",
        "BUZZ_LOVING_MIN",
    ]
    for var in env_vars:
        monkeypatch.delenv(var, raising=False)


class TestSettingsSingleton:
    """Tests for settings singleton instance."""

    @staticmethod
    def test_singleton_exists() -> None:
        """settings singleton is available."""
        assert settings is not None
        assert isinstance(settings, Settings)

    @staticmethod
    def test_singleton_has_subsettings() -> None:
        """settings has all expected sub-settings."""
        for section in ("paths", "logging", "resolver", "dedup", "verifier", "buzz"):
            assert hasattr(settings, section)
        assert isinstance(settings.buzz, BuzzSettings)


@pytest.mark.usefixtures("clean_env")
class TestSettingsClass:
    """Tests for Settings class."""

    @staticmethod
    def test_default_environment() -> None:
        """Default environment is development."""
        s = Settings(_env_file=None)
        assert s.environment == "development"
        assert s.debug is False

    @staticmethod
    def test_valid_environments(monkeypatch: pytest.MonkeyPatch) -> None:
        """Valid environment values are accepted."""
        for env in ["development", "production", "test"]:
            monkeypatch.setenv("ENVIRONMENT", env)
            s = Settings(_env_file=None)
            assert s.environment == env

    @staticmethod
    def test_environment_case_insensitive(monkeypatch: pytest.MonkeyPatch) -> None:
        """Environment validation is case-insensitive."""
        monkeypatch.setenv("ENVIRONMENT", "PRODUCTION")
        s = Settings(_env_file=None)
        assert s.environment == "production"

    @staticmethod
    def test_invalid_environment(monkeypatch: pytest.MonkeyPatch) -> None:
        """Invalid environment raises ValidationError."""
        monkeypatch.setenv("ENVIRONMENT", "staging")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)

    @staticmethod
    def test_sections_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
        """Nested sections pick up their own variables."""
        monkeypatch.setenv("LEVENSHTEIN_MAX_DISTANCE", "1")
        s = Settings(_env_file=None)
        assert s.resolver.max_distance == 1

    @staticmethod
    def test_invalid_section_fails_whole_settings(monkeypatch: pytest.MonkeyPatch) -> None:
        """A bad band ordering prevents Settings from loading."""
        monkeypatch.setenv("BUZZ_LOVING_MIN", "50")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)


class TestGetSettingsSummary:
    """Tests for get_settings_summary function."""

    @staticmethod
    def test_flat_keys() -> None:
        """Sections are flattened to section.key entries."""
        summary = get_settings_summary()
        assert summary["resolver.max_distance"] == settings.resolver.max_distance
        assert summary["buzz.loving_min"] == settings.buzz.loving_min
        assert summary["verifier.max_mismatch_rate"] == settings.verifier.max_mismatch_rate
        assert summary["environment"] == settings.environment

    @staticmethod
    def test_paths_and_logging_excluded() -> None:
        """Machine-specific sections are left out."""
        summary = get_settings_summary()
        assert not any(key.startswith(("paths.", "logging.")) for key in summary)
