"""Tests for configuration loading and ImageClientConfig."""

import os
from unittest.mock import patch

import pytest

from utils.config import ImageClientConfig, load_config, validate_config


class TestLoadConfig:
    """Tests for load_config()."""

    def test_reads_environment(self):
        env = {
            "OPENAI_API_KEY": "sk-test",
            "IMAGE_MAX_ATTEMPTS": "5",
            "IMAGE_BACKOFF_STEP": "1.5",
            "IMAGE_RESUBMIT_ON_FETCH_FAILURE": "TRUE",
        }
        with patch.dict(os.environ, env):
            config = load_config()

        assert config["openai_api_key"] == "sk-test"
        assert config["max_attempts"] == 5
        assert config["backoff_step"] == 1.5
        assert config["resubmit_on_fetch_failure"] is True

    def test_defaults(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            for name in (
                "OPENAI_API_BASE",
                "IMAGE_REQUEST_TIMEOUT",
                "IMAGE_RESOURCE_TIMEOUT",
                "IMAGE_MAX_ATTEMPTS",
                "IMAGE_BACKOFF_STEP",
                "IMAGE_RESUBMIT_ON_FETCH_FAILURE",
            ):
                os.environ.pop(name, None)
            config = load_config()

        assert config["openai_api_base"] == "https://api.openai.com/v1"
        assert config["request_timeout"] == 60.0
        assert config["resource_timeout"] == 90.0
        assert config["max_attempts"] == 3
        assert config["backoff_step"] == 2.0
        assert config["resubmit_on_fetch_failure"] is False


class TestValidateConfig:
    """Tests for validate_config()."""

    @pytest.fixture
    def valid_config(self) -> dict:
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test"}):
            return load_config()

    def test_valid(self, valid_config):
        assert validate_config(valid_config) == []

    def test_missing_key(self, valid_config):
        valid_config["openai_api_key"] = None

        assert "OPENAI_API_KEY is required" in validate_config(valid_config)

    def test_bad_api_base(self, valid_config):
        valid_config["openai_api_base"] = "ftp://example.com"

        errors = validate_config(valid_config)

        assert len(errors) == 1
        assert "OPENAI_API_BASE" in errors[0]

    def test_resource_timeout_shorter_than_request(self, valid_config):
        valid_config["resource_timeout"] = 30.0

        errors = validate_config(valid_config)

        assert any("IMAGE_RESOURCE_TIMEOUT" in e for e in errors)

    def test_zero_attempts(self, valid_config):
        valid_config["max_attempts"] = 0

        assert "IMAGE_MAX_ATTEMPTS must be at least 1" in validate_config(valid_config)


class TestImageClientConfig:
    """Tests for ImageClientConfig."""

    def test_defaults(self):
        config = ImageClientConfig(api_key="sk-test")

        assert config.edit_model == "dall-e-2"
        assert config.generation_model == "dall-e-3"
        assert config.edit_size == "512x512"
        assert config.max_connections == 1
        assert config.max_attempts == 3

    def test_endpoint_urls(self):
        config = ImageClientConfig(api_key="sk-test", api_base="https://proxy.local/v1/")

        assert config.edits_url == "https://proxy.local/v1/images/edits"
        assert config.generations_url == "https://proxy.local/v1/images/generations"

    def test_from_config(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": "sk-test", "IMAGE_MAX_ATTEMPTS": "2"}):
            config = ImageClientConfig.from_config(load_config())

        assert config.api_key == "sk-test"
        assert config.max_attempts == 2

    def test_from_config_rejects_invalid(self):
        with patch.dict(os.environ, {"OPENAI_API_KEY": ""}):
            with pytest.raises(ValueError, match="OPENAI_API_KEY"):
                ImageClientConfig.from_config(load_config())

    def test_frozen(self):
        config = ImageClientConfig(api_key="sk-test")

        with pytest.raises(AttributeError):
            config.api_key = "other"
