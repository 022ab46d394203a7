"""Unit tests for settings loading and validation."""

import pytest
from pydantic import ValidationError

from common_lib.config import DatabaseEngine, Settings, build_settings, get_settings, validate_settings
from common_lib.errors import ConfigurationError


class TestSettings:
    """Test Settings defaults and environment loading."""

    def test_defaults(self):
        """Test defaults before any configuration is supplied."""
        settings = Settings()
        assert settings.database_engine is DatabaseEngine.SQLSERVER
        assert settings.quarantine_dir == "quarantine"
        assert settings.input_dir == ""
        assert settings.log_format == "text"

    def test_environment_prefix(self, monkeypatch):
        """Test CVE_* variables populate the settings."""
        monkeypatch.setenv("CVE_INPUT_DIR", "/data/cves")
        monkeypatch.setenv("CVE_DATABASE_ENGINE", "MySQL")
        monkeypatch.setenv("CVE_LOG_LEVEL", "DEBUG")

        settings = get_settings()
        assert settings.input_dir == "/data/cves"
        assert settings.database_engine is DatabaseEngine.MYSQL
        assert settings.log_level == "DEBUG"

    def test_dotenv_file(self, tmp_path):
        """Test a .env file in the working directory is read."""
        (tmp_path / ".env").write_text("CVE_QUARANTINE_DIR=/var/quarantine\n", encoding="utf-8")
        assert Settings().quarantine_dir == "/var/quarantine"

    def test_invalid_engine(self):
        """Test an unknown engine name is rejected."""
        with pytest.raises(ValidationError):
            Settings(database_engine="oracle")

    def test_invalid_log_format(self):
        """Test only text and json log formats are accepted."""
        with pytest.raises(ValidationError):
            Settings(log_format="xml")


class TestBuildSettings:
    """Test build_settings function."""

    def test_none_overrides_ignored(self, monkeypatch):
        """Test unset CLI flags fall back to the environment."""
        monkeypatch.setenv("CVE_INPUT_DIR", "/from/env")

        settings = build_settings({"input_dir": None, "database_url": "sqlite:///cve.sqlite"})
        assert settings.input_dir == "/from/env"
        assert settings.database_url == "sqlite:///cve.sqlite"

    def test_explicit_override_wins(self, monkeypatch):
        """Test a CLI flag beats the environment."""
        monkeypatch.setenv("CVE_INPUT_DIR", "/from/env")
        assert build_settings({"input_dir": "/from/cli"}).input_dir == "/from/cli"

    def test_invalid_environment_engine_is_configuration_error(self, monkeypatch):
        """Test an unsupported engine from the environment raises ConfigurationError."""
        monkeypatch.setenv("CVE_DATABASE_ENGINE", "oracle")

        with pytest.raises(ConfigurationError) as exc_info:
            build_settings({"input_dir": "cves"})
        assert exc_info.value.setting == "database_engine"

    def test_invalid_log_format_is_configuration_error(self):
        """Test a rejected log format names the offending setting."""
        with pytest.raises(ConfigurationError, match="log_format") as exc_info:
            build_settings({"log_format": "xml"})
        assert exc_info.value.setting == "log_format"


class TestValidateSettings:
    """Test validate_settings function."""

    def test_complete_settings_pass(self):
        """Test fully configured settings are returned unchanged."""
        settings = Settings(input_dir="cves", database_url="sqlite:///cve.sqlite")
        assert validate_settings(settings) is settings

    @pytest.mark.parametrize(
        "overrides, setting",
        [
            ({"database_url": "sqlite:///cve.sqlite"}, "input_dir"),
            ({"input_dir": "cves"}, "database_url"),
            ({"input_dir": "cves", "database_url": "sqlite:///cve.sqlite", "quarantine_dir": " "}, "quarantine_dir"),
        ],
    )
    def test_missing_required(self, overrides, setting):
        """Test each required setting is checked."""
        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings(Settings(**overrides))
        assert exc_info.value.setting == setting
