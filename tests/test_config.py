"""Tests for configuration helpers."""

import pytest
from pydantic import ValidationError

from task_manager.config import DEV_SECRET_KEY, Settings, parse_comma_list


def test_parse_comma_list_defaults() -> None:
    assert parse_comma_list(None, ["a"]) == ["a"]


def test_parse_comma_list_accepts_list() -> None:
    assert parse_comma_list(["x", "y"], ["a"]) == ["x", "y"]


def test_parse_comma_list_splits_string() -> None:
    assert parse_comma_list("x, y, ,z", ["a"]) == ["x", "y", "z"]


def test_defaults(monkeypatch) -> None:
    for name in ("SECRET_KEY", "ACCESS_TOKEN_EXPIRE_MINUTES", "CORS_ORIGINS", "TRUST_PROXY"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings(_env_file=None)

    assert settings.secret_key == DEV_SECRET_KEY
    assert settings.jwt_algorithm == "HS256"
    assert settings.access_token_expire_minutes == 60 * 24 * 7
    assert settings.avatar_max_bytes == 1_000_000
    assert settings.trust_proxy is False
    assert settings.cors_origins == ["http://localhost:3000", "http://127.0.0.1:3000"]


def test_environment_alias_reads_deployment_environment(monkeypatch) -> None:
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("ENV", "staging")
    settings = Settings(_env_file=None)
    assert settings.environment == "staging"


def test_cors_origins_from_env(monkeypatch) -> None:
    monkeypatch.setenv("CORS_ORIGINS", "https://app.example.com, https://admin.example.com")
    settings = Settings(_env_file=None)
    assert settings.cors_origins == ["https://app.example.com", "https://admin.example.com"]


def test_emails_enabled_follows_api_key(monkeypatch) -> None:
    monkeypatch.setenv("SENDGRID_API_KEY", "")
    assert Settings(_env_file=None).emails_enabled is False

    monkeypatch.setenv("SENDGRID_API_KEY", "sg-key")
    assert Settings(_env_file=None).emails_enabled is True


def test_token_expiry_can_be_disabled(monkeypatch) -> None:
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "0")
    assert Settings(_env_file=None).access_token_expire_minutes == 0


def test_empty_token_expiry_is_rejected(monkeypatch) -> None:
    """Only 0 disables expiry; an empty value is a configuration error."""
    monkeypatch.setenv("ACCESS_TOKEN_EXPIRE_MINUTES", "")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
