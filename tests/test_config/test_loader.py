"""
Tests for the config loader module.
"""

import json
import os

import pytest

from typed_graphql.config import ConfigLoader, LogLevel, load_config


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and working directory."""
    for name in list(os.environ):
        if name.startswith("TYPED_GRAPHQL_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.chdir(tmp_path)
    return monkeypatch


class TestConfigLoader:
    """Test loading configuration from files and the environment."""

    def test_load_from_environment(self, clean_env):
        """Test environment variables."""
        clean_env.setenv("TYPED_GRAPHQL_ENDPOINT", "https://api.example.com/graphql")
        clean_env.setenv("TYPED_GRAPHQL_TIMEOUT", "12.5")
        clean_env.setenv("TYPED_GRAPHQL_STRICT_HANDSHAKE", "false")
        clean_env.setenv("TYPED_GRAPHQL_LOG_LEVEL", "DEBUG")

        config = ConfigLoader().load_config()

        assert config.client.endpoint == "https://api.example.com/graphql"
        assert config.client.timeout == 12.5
        assert config.client.strict_handshake is False
        assert config.logging.level == LogLevel.DEBUG

    def test_header_variables(self, clean_env):
        """Test that HEADER_ variables become request headers."""
        clean_env.setenv("TYPED_GRAPHQL_ENDPOINT", "http://localhost/query")
        clean_env.setenv("TYPED_GRAPHQL_HEADER_X_API_KEY", "secret")
        clean_env.setenv("TYPED_GRAPHQL_HEADER_AUTHORIZATION", "Bearer abc")

        config = load_config()

        assert config.client.headers == {"X-Api-Key": "secret", "Authorization": "Bearer abc"}

    def test_load_from_file(self, clean_env, tmp_path):
        """Test an explicit JSON configuration file."""
        config_file = tmp_path / "settings.json"
        config_file.write_text(
            json.dumps(
                {
                    "client": {"endpoint": "http://localhost:8080/query", "headers": {"A": "1"}},
                    "logging": {"enable_structured": True},
                }
            )
        )

        config = load_config(config_file)

        assert config.client.endpoint == "http://localhost:8080/query"
        assert config.client.headers == {"A": "1"}
        assert config.logging.enable_structured is True

    def test_default_search_path(self, clean_env, tmp_path):
        """Test discovery of typed_graphql.json in the working directory."""
        (tmp_path / "typed_graphql.json").write_text(
            json.dumps({"client": {"endpoint": "ws://localhost/graphql"}})
        )

        assert load_config().client.endpoint == "ws://localhost/graphql"

    def test_environment_overrides_file(self, clean_env, tmp_path):
        """Test that environment values win over file values."""
        config_file = tmp_path / "settings.json"
        config_file.write_text(
            json.dumps({"client": {"endpoint": "http://file/query", "headers": {"A": "1"}}})
        )
        clean_env.setenv("TYPED_GRAPHQL_ENDPOINT", "http://env/query")
        clean_env.setenv("TYPED_GRAPHQL_HEADER_B", "2")

        config = load_config(config_file)

        assert config.client.endpoint == "http://env/query"
        assert config.client.headers == {"A": "1", "B": "2"}

    def test_custom_prefix(self, clean_env):
        """Test a custom environment prefix."""
        clean_env.setenv("MYAPP_ENDPOINT", "http://localhost/query")
        assert load_config(env_prefix="MYAPP_").client.endpoint == "http://localhost/query"

    def test_missing_file(self, clean_env, tmp_path):
        """Test an explicit file that does not exist."""
        with pytest.raises(ValueError, match="not found"):
            load_config(tmp_path / "missing.json")

    def test_unsupported_format(self, clean_env, tmp_path):
        """Test a non-JSON configuration file."""
        config_file = tmp_path / "settings.yaml"
        config_file.write_text("client: {}")

        with pytest.raises(ValueError, match="Unsupported"):
            load_config(config_file)

    def test_invalid_json(self, clean_env, tmp_path):
        """Test a corrupt configuration file."""
        config_file = tmp_path / "settings.json"
        config_file.write_text("{not json")

        with pytest.raises(ValueError, match="Failed to parse"):
            load_config(config_file)

    def test_missing_endpoint(self, clean_env):
        """Test that an endpoint is required."""
        with pytest.raises(ValueError):
            load_config()
