"""Tests for configuration management."""

import pytest

from orcaloop.config import OrcaloopConfig, get_config, reset_config, set_config


class TestOrcaloopConfig:
    """Test configuration defaults, environment loading and validation."""

    def test_defaults(self):
        """Test default configuration values."""
        config = OrcaloopConfig()

        assert config.workflow_definitions_path == "./.orcaloop/workflows/"
        assert config.yaml_cache_ttl == 300
        assert config.yaml_cache_size == 100
        assert config.expression_cache_size == 256
        assert config.strict_validation is False
        assert config.log_level == "INFO"

    def test_from_environment(self, monkeypatch):
        """Test reading configuration from environment variables."""
        monkeypatch.setenv("WORKFLOW_DEFINITIONS_PATH", "/srv/workflows")
        monkeypatch.setenv("YAML_CACHE_TTL", "60")
        monkeypatch.setenv("EXPRESSION_CACHE_SIZE", "16")
        monkeypatch.setenv("STRICT_VALIDATION", "TRUE")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        config = OrcaloopConfig.from_environment()

        assert config.workflow_definitions_path == "/srv/workflows"
        assert config.yaml_cache_ttl == 60
        assert config.expression_cache_size == 16
        assert config.strict_validation is True
        assert config.log_level == "DEBUG"

    def test_invalid_values(self):
        """Test that invalid settings are rejected on construction."""
        with pytest.raises(ValueError, match="yaml_cache_ttl must be positive"):
            OrcaloopConfig(yaml_cache_ttl=0)

        with pytest.raises(ValueError, match="log_level"):
            OrcaloopConfig(log_level="LOUD")

        with pytest.raises(ValueError, match="workflow_definitions_path"):
            OrcaloopConfig(workflow_definitions_path="")

    def test_validate_reports_every_error(self):
        """Test that validate() lists all problems."""
        config = OrcaloopConfig()
        config.yaml_cache_size = 0
        config.expression_cache_size = -1

        is_valid, errors = config.validate()

        assert is_valid is False
        assert len(errors) == 2

    def test_global_configuration(self, monkeypatch):
        """Test the shared configuration instance."""
        monkeypatch.setenv("YAML_CACHE_SIZE", "7")

        assert get_config() is get_config()
        assert get_config().yaml_cache_size == 7

        custom = OrcaloopConfig(yaml_cache_size=3)
        set_config(custom)
        assert get_config() is custom

        reset_config()
        assert get_config() is not custom
