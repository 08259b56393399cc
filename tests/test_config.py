"""
Tests for settings resolution.
"""

import json

import pytest

from authz_engine.config import Settings, load_settings
from authz_engine.errors import ConfigurationError


class TestSettings:
    """Test cases for the Settings model."""

    def test_defaults(self):
        """Test the documented defaults."""
        settings = Settings()

        assert settings.base_url == ""
        assert settings.client_id == "sas.cli"
        assert settings.cas_server == "cas-shared-default"
        assert settings.response_limit == 1000
        assert settings.valid_tls is True
        assert settings.log_level == "INFO"
        assert settings.profile == "Default"
        assert settings.log_file.startswith("gva-") and settings.log_file.endswith(".log")

    def test_base_url_trailing_slash_is_stripped(self):
        assert Settings(base_url="https://viya.example.com/").base_url == "https://viya.example.com"

    def test_log_level_is_normalized(self):
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            Settings(log_level="chatty")

    def test_original_key_names_are_accepted(self):
        settings = Settings(baseurl="https://viya.example.com", pw="secret", validtls=False)

        assert settings.base_url == "https://viya.example.com"
        assert settings.password == "secret"
        assert settings.valid_tls is False


class TestLoadSettings:
    """Test cases for load_settings precedence."""

    @pytest.fixture(autouse=True)
    def clean_environment(self, monkeypatch):
        for key in ("GVA_BASE_URL", "GVA_BASEURL", "GVA_RESPONSE_LIMIT", "GVA_CAS_SERVER", "GVA_LOG_LEVEL"):
            monkeypatch.delenv(key, raising=False)

    def test_missing_default_file_uses_defaults(self, tmp_path):
        """Test that no config file is not an error."""
        settings = load_settings(home=tmp_path)

        assert settings.response_limit == 1000
        assert settings.home == tmp_path

    def test_default_json_file_is_read(self, tmp_path):
        """Test that ~/.sas/gva.json is picked up with case-insensitive keys."""
        (tmp_path / ".sas").mkdir()
        (tmp_path / ".sas" / "gva.json").write_text(
            json.dumps({"BASE_URL": "https://viya.example.com", "response_limit": 50}),
            encoding="utf-8",
        )

        settings = load_settings(home=tmp_path)

        assert settings.base_url == "https://viya.example.com"
        assert settings.response_limit == 50

    def test_yaml_file_environment_and_overrides(self, tmp_path, monkeypatch):
        """Test precedence: file < environment < overrides."""
        config = tmp_path / "gva.yaml"
        config.write_text("cas_server: cas-file\nresponse_limit: 10\nlog_level: DEBUG\n", encoding="utf-8")
        monkeypatch.setenv("GVA_RESPONSE_LIMIT", "20")
        monkeypatch.setenv("GVA_CAS_SERVER", "cas-env")

        settings = load_settings(config, home=tmp_path, cas_server="cas-flag", profile=None)

        assert settings.cas_server == "cas-flag"
        assert settings.response_limit == 20
        assert settings.log_level == "DEBUG"
        assert settings.profile == "Default"

    def test_gva_json_key_names(self, tmp_path, monkeypatch):
        """Test that an existing gva.json with its own key names is understood."""
        (tmp_path / ".sas").mkdir()
        (tmp_path / ".sas" / "gva.json").write_text(
            json.dumps({
                "baseurl": "https://viya-file.example.com",
                "casserver": "cas-shared-finance",
                "responselimit": 250,
                "validtls": False,
                "user": "admin",
                "pw": "secret",
                "clientid": "gva",
                "clientsecret": "shh",
                "logfile": "run.log",
                "loglevel": "debug",
            }),
            encoding="utf-8",
        )
        monkeypatch.setenv("GVA_BASEURL", "https://viya-env.example.com")

        settings = load_settings(home=tmp_path)

        assert settings.base_url == "https://viya-env.example.com"
        assert settings.cas_server == "cas-shared-finance"
        assert settings.response_limit == 250
        assert settings.valid_tls is False
        assert settings.password == "secret"
        assert settings.client_id == "gva"
        assert settings.client_secret == "shh"
        assert settings.log_file == "run.log"
        assert settings.log_level == "DEBUG"

    def test_override_wins_over_file_alias(self, tmp_path):
        config = tmp_path / "gva.json"
        config.write_text(json.dumps({"ResponseLimit": 5}), encoding="utf-8")

        assert load_settings(config, home=tmp_path, response_limit=7).response_limit == 7

    def test_unknown_keys_are_ignored(self, tmp_path):
        config = tmp_path / "gva.yaml"
        config.write_text("clidir: /opt/sas/viya/home/bin/\n", encoding="utf-8")

        settings = load_settings(config, home=tmp_path)

        assert not hasattr(settings, "clidir")

    def test_explicit_missing_file_is_an_error(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "missing.yaml", home=tmp_path)

    def test_invalid_value_is_an_error(self, tmp_path):
        config = tmp_path / "gva.yaml"
        config.write_text("response_limit: 0\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_settings(config, home=tmp_path)

    def test_non_mapping_file_is_an_error(self, tmp_path):
        config = tmp_path / "gva.yaml"
        config.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_settings(config, home=tmp_path)
