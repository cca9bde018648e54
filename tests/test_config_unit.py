"""Unit tests for application settings."""

import pytest
from pydantic import ValidationError

from ecoledger_core.config import Settings, get_settings


class TestSettings:
    """Tests for settings defaults and validation."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("COLLECT_REWARD_MODE", raising=False)
        settings = Settings()

        assert settings.report_reward_points == 10
        assert settings.collect_reward_mode == "random"
        assert settings.collect_reward_min == 10
        assert settings.collect_reward_max == 1009
        assert settings.verification_confidence_threshold == 0.5
        assert settings.oracle_url is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///./test.db")
        monkeypatch.setenv("COLLECT_REWARD_MODE", "quantity")
        monkeypatch.setenv("ORACLE_URL", "http://oracle:8080")

        settings = Settings()

        assert settings.database_url == "sqlite:///./test.db"
        assert settings.collect_reward_mode == "quantity"
        assert settings.oracle_url == "http://oracle:8080"

    def test_empty_database_url_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_url="")

    def test_unknown_reward_mode_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(collect_reward_mode="lottery")

    @pytest.mark.parametrize("threshold", [-0.1, 1.0, 1.5])
    def test_threshold_out_of_range_is_rejected(self, threshold):
        with pytest.raises(ValidationError):
            Settings(verification_confidence_threshold=threshold)

    def test_inverted_reward_range_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(collect_reward_min=100, collect_reward_max=50)

    def test_non_positive_report_reward_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(report_reward_points=0)

    def test_isolation_level_defaults_to_read_committed(self, monkeypatch):
        monkeypatch.delenv("DATABASE_ISOLATION_LEVEL", raising=False)
        assert Settings().database_isolation_level == "READ COMMITTED"

    def test_isolation_level_is_normalized(self):
        settings = Settings(database_isolation_level="serializable")
        assert settings.database_isolation_level == "SERIALIZABLE"

    def test_unknown_isolation_level_is_rejected(self):
        with pytest.raises(ValidationError):
            Settings(database_isolation_level="READ SOMETIMES")


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
