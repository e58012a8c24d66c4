"""Tests for umber_cli.config -- connection config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config)
or test_config_schema.py (Pydantic models). This tests the connection
bootstrap path: validate_config() and load_config().
"""

import logging

import pytest

from umber_cli.config import Config, load_config, validate_config
from umber_cli.errors import ConfigurationError

# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config() -- URL format and token checks."""

    def test_valid_config(self):
        validate_config(Config(nodebb_url="https://forum.example.com", api_token="t"))

    def test_http_url_valid(self):
        validate_config(Config(nodebb_url="http://localhost:4567", api_token="t"))

    def test_invalid_url_no_scheme(self):
        config = Config(nodebb_url="forum.example.com", api_token="t")
        with pytest.raises(ConfigurationError, match="must start with http:// or https://"):
            validate_config(config)

    def test_url_without_hostname(self):
        config = Config(nodebb_url="https://", api_token="t")
        with pytest.raises(ConfigurationError, match="hostname"):
            validate_config(config)

    def test_trailing_slash_stripped(self):
        config = Config(nodebb_url="https://forum.example.com/", api_token="t")
        validate_config(config)
        assert config.nodebb_url == "https://forum.example.com"

    def test_empty_token(self):
        config = Config(nodebb_url="https://forum.example.com", api_token="  ")
        with pytest.raises(ConfigurationError, match="token cannot be empty"):
            validate_config(config)

    def test_non_positive_timeout(self):
        config = Config(nodebb_url="https://forum.example.com", api_token="t", timeout=0)
        with pytest.raises(ConfigurationError, match="timeout"):
            validate_config(config)

    def test_configuration_error_is_value_error(self):
        config = Config(nodebb_url="nope", api_token="t")
        with pytest.raises(ValueError):
            validate_config(config)

    def test_insecure_warns(self, caplog):
        config = Config(nodebb_url="https://forum.example.com", api_token="t", insecure=True)
        with caplog.at_level(logging.WARNING, logger="umber_cli.config"):
            validate_config(config)
        assert "SSL verification disabled" in caplog.text


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config() precedence: CLI > env > YAML > defaults."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("NODEBB_URL", "https://env.example.com")
        monkeypatch.setenv("NODEBB_API_TOKEN", "env-token")

        config = load_config()

        assert config.nodebb_url == "https://env.example.com"
        assert config.api_token == "env-token"
        assert config.insecure is False
        assert config.timeout == 60.0

    def test_cli_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("NODEBB_URL", "https://env.example.com")
        monkeypatch.setenv("NODEBB_API_TOKEN", "env-token")

        config = load_config(url="https://cli.example.com", api_token="cli-token")

        assert config.nodebb_url == "https://cli.example.com"
        assert config.api_token == "cli-token"

    def test_env_wins_over_yaml(self, monkeypatch):
        monkeypatch.setenv("NODEBB_URL", "https://env.example.com")
        config = load_config(
            yaml_fallbacks={"url": "https://yaml.example.com", "api_token": "yaml-token"}
        )
        assert config.nodebb_url == "https://env.example.com"
        assert config.api_token == "yaml-token"

    def test_yaml_fallbacks(self):
        config = load_config(
            yaml_fallbacks={
                "url": "https://yaml.example.com/",
                "api_token": "yaml-token",
                "insecure": True,
                "timeout": 15,
            }
        )
        assert config.nodebb_url == "https://yaml.example.com"
        assert config.insecure is True
        assert config.timeout == 15.0

    def test_missing_url(self):
        with pytest.raises(ConfigurationError, match="NodeBB URL not found"):
            load_config(api_token="t")

    def test_missing_token(self):
        with pytest.raises(ConfigurationError, match="API token not found"):
            load_config(url="https://forum.example.com")

    @pytest.mark.parametrize("value, expected", [("true", True), ("1", True), ("no", False)])
    def test_insecure_env(self, monkeypatch, value, expected):
        monkeypatch.setenv("NODEBB_INSECURE", value)
        config = load_config(url="https://forum.example.com", api_token="t")
        assert config.insecure is expected

    def test_insecure_flag_wins(self, monkeypatch):
        monkeypatch.setenv("NODEBB_INSECURE", "false")
        config = load_config(url="https://forum.example.com", api_token="t", insecure=True)
        assert config.insecure is True

    def test_debug_env(self, monkeypatch):
        monkeypatch.setenv("UMBER_DEBUG", "yes")
        config = load_config(url="https://forum.example.com", api_token="t")
        assert config.debug is True

    def test_timeout_env(self, monkeypatch):
        monkeypatch.setenv("NODEBB_TIMEOUT", "12.5")
        config = load_config(url="https://forum.example.com", api_token="t")
        assert config.timeout == 12.5

    def test_invalid_timeout_env(self, monkeypatch):
        monkeypatch.setenv("NODEBB_TIMEOUT", "soon")
        with pytest.raises(ConfigurationError, match="NODEBB_TIMEOUT"):
            load_config(url="https://forum.example.com", api_token="t")
