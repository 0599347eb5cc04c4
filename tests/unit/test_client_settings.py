"""Testes para config/settings.py."""

from __future__ import annotations

import pytest

from medconnect_client.config.settings import (
    AUTH_STORAGE_KEY,
    DEFAULT_LOGIN_PATH,
    Settings,
    get_settings,
)


class TestSettingsDefaults:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.auth_storage_key == AUTH_STORAGE_KEY == "auth-storage"
        assert settings.login_path == DEFAULT_LOGIN_PATH == "/auth/login"
        assert settings.unauthorized_cooldown_seconds == 2.0
        assert settings.chat_history_page_size == 50
        assert settings.validate_all() == []

    def test_env_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MEDCONNECT_API_BASE_URL", "https://api.medconnect.dev///")
        monkeypatch.setenv("MEDCONNECT_BROADCAST_BACKEND", "none")
        settings = get_settings()
        assert settings.api_base_url == "https://api.medconnect.dev"
        assert settings.broadcast_backend == "none"

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()

    def test_socket_url_falls_back_to_api(self) -> None:
        assert Settings(api_base_url="http://a.test").resolved_socket_url == "http://a.test"
        settings = Settings(api_base_url="http://a.test", socket_url="ws://rt.test/")
        assert settings.resolved_socket_url == "ws://rt.test"

    def test_environment_flags(self) -> None:
        assert Settings(environment="prod").is_production is True
        assert Settings(environment="local").is_development is True


class TestSettingsValidation:
    def test_redis_requires_url(self) -> None:
        settings = Settings(durable_storage_backend="redis", broadcast_backend="redis")
        errors = settings.validate_all()
        assert len(errors) == 2
        assert all("REDIS_URL" in e for e in errors)

    def test_invalid_backends(self) -> None:
        settings = Settings(durable_storage_backend="s3", broadcast_backend="kafka")
        assert len(settings.validate_storage_config()) == 1
        assert len(settings.validate_broadcast_config()) == 1

    def test_session_parameters(self) -> None:
        settings = Settings(
            unauthorized_cooldown_seconds=0, chat_history_page_size=0, login_path="login"
        )
        assert len(settings.validate_session_config()) == 3

    def test_session_storage_must_be_memory(self) -> None:
        assert Settings(session_storage_backend="file").validate_storage_config()
