"""Tests for configuration loading."""

import logging

import pytest

from hairstyle_studio.config import GeminiConfig, PipelineConfig
from hairstyle_studio.logging_utils import LOGGER_NAME, setup_logging


class TestPipelineConfig:
    """Tests for PipelineConfig defaults and environment loading."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)

        config = PipelineConfig(_env_file=None)

        assert config.gemini_api_key is None
        assert config.suggestion_count == 4
        assert config.call_timeout_seconds == 120.0
        assert config.gemini.image_model == "gemini-2.5-flash-image"

    @pytest.mark.parametrize("env_name", ["GEMINI_API_KEY", "API_KEY"])
    def test_api_key_from_environment(self, monkeypatch, env_name):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        monkeypatch.delenv("API_KEY", raising=False)
        monkeypatch.setenv(env_name, "secret")

        config = PipelineConfig(_env_file=None)

        assert config.gemini_api_key == "secret"

    def test_nested_override_from_environment(self, monkeypatch):
        monkeypatch.setenv("GEMINI__IMAGE_MODEL", "custom-image-model")

        config = PipelineConfig(_env_file=None)

        assert config.gemini.image_model == "custom-image-model"

    def test_suggestion_count_must_be_positive(self):
        with pytest.raises(ValueError):
            PipelineConfig(_env_file=None, suggestion_count=0)

    def test_model_url(self):
        config = GeminiConfig(base_url="https://example.test/v1beta")

        assert config.model_url("m") == "https://example.test/v1beta/models/m:generateContent"


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging_is_idempotent(self):
        logger = setup_logging("DEBUG")
        handlers = list(logger.handlers)

        again = setup_logging("WARNING")

        assert again is logger
        assert again.handlers == handlers
        assert again.level == logging.WARNING
        assert logger.name == LOGGER_NAME

    def test_unknown_level_falls_back_to_info(self):
        logger = setup_logging("LOUD")

        assert logger.level == logging.INFO
