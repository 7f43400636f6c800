from __future__ import annotations

import pytest
from pydantic import ValidationError

from tts_gateway.config import DEFAULT_USER_AGENT, Settings, get_settings


def test_defaults() -> None:
    settings = Settings()

    assert settings.static_api_key.get_secret_value() == "sk-123456"
    assert settings.upstream_root == "https://bot.n.cn"
    assert settings.upstream_user_agent == DEFAULT_USER_AGENT
    assert settings.tts_concurrency == 3
    assert settings.segment_max_chars == 200


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STATIC_API_KEY", "sk-env")
    monkeypatch.setenv("UPSTREAM_BASE_URL", "http://localhost:9000/")
    monkeypatch.setenv("UPSTREAM_TIMEOUT", "5")
    monkeypatch.setenv("TTS_CONCURRENCY", "6")

    settings = get_settings()

    assert settings.static_api_key.get_secret_value() == "sk-env"
    assert settings.upstream_root == "http://localhost:9000"
    assert settings.request_timeout == 5.0
    assert settings.tts_concurrency == 6


def test_get_settings_is_cached() -> None:
    assert get_settings() is get_settings()


def test_rejects_zero_concurrency(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TTS_CONCURRENCY", "0")

    with pytest.raises(ValidationError):
        Settings()
