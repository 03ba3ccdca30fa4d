"""Tests for settings validation."""

import pytest

from coursegen.config import Settings, validate_settings
from coursegen.errors import ConfigurationError


def test_missing_api_key_fails_fast():
    with pytest.raises(ConfigurationError):
        validate_settings(Settings(groq_api_key="", _env_file=None))


def test_non_positive_timeout_rejected():
    with pytest.raises(ConfigurationError):
        validate_settings(Settings(groq_api_key="k", llm_timeout=0, _env_file=None))


def test_valid_settings_pass(settings):
    assert validate_settings(settings) is settings
