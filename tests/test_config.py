# tests/test_config.py
import os
from unittest.mock import patch

from intl_quote.config import DEFAULT_API_VERSION, Settings, get_log_level, load_settings


def test_load_settings_from_env():
    env = {
        "SHOPIFY_API_SECRET": " hush ",
        "SHOPIFY_ADMIN_ACCESS_TOKEN": "",
        "SHOPIFY_ACCESS_TOKEN": "shpat_fallback",
        "SHOPIFY_API_VERSION": "2024-10",
    }
    with patch.dict(os.environ, env):
        settings = load_settings()

    assert settings.api_secret == "hush"
    assert settings.admin_token == "shpat_fallback"
    assert settings.api_version == "2024-10"
    assert settings.has_secret


def test_missing_secret_is_empty():
    with patch.dict(os.environ, {"SHOPIFY_API_SECRET": "", "SHOPIFY_API_VERSION": ""}):
        settings = load_settings()
    assert settings.api_secret == ""
    assert not settings.has_secret
    assert settings.api_version == DEFAULT_API_VERSION


def test_repr_hides_secrets():
    text = repr(Settings(api_secret="hush", admin_token="shpat_x"))
    assert "hush" not in text
    assert "shpat_x" not in text
    assert "SET" in text


def test_unknown_log_level_falls_back_to_info():
    with patch.dict(os.environ, {"LOG_LEVEL": "VERBOSE"}):
        assert get_log_level() == "INFO"
    with patch.dict(os.environ, {"LOG_LEVEL": ""}):
        assert get_log_level() == "INFO"
    with patch.dict(os.environ, {"LOG_LEVEL": "debug"}):
        assert get_log_level() == "DEBUG"
