"""Tests for settings loading and backend configuration checks."""
import pytest

from return_reward.backend import build_backend
from return_reward.config import DEFAULT_DATABASE_URL, Settings, load_settings
from return_reward.errors import ConfigurationMissing


@pytest.fixture
def clean_env(monkeypatch):
    for key in ("DATABASE_URL", "AUTH_SECRET", "APP_ID", "PROFILE_PAGE_SIZE", "QR_SIZE", "ENVIRONMENT"):
        monkeypatch.delenv(key, raising=False)
    # Keep a developer's .env out of the test run
    monkeypatch.setattr("return_reward.config.load_dotenv", lambda: False)
    return monkeypatch


def test_load_settings_reads_environment(clean_env):
    clean_env.setenv("AUTH_SECRET", "a-long-enough-secret")
    clean_env.setenv("PROFILE_PAGE_SIZE", "20")
    clean_env.setenv("QR_SIZE", "512")

    settings = load_settings()

    assert settings.auth_secret == "a-long-enough-secret"
    assert settings.profile_page_size == 20
    assert settings.qr_size == 512
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.missing_backend_settings() == []


def test_missing_secret_is_reported(clean_env):
    settings = load_settings()
    with pytest.raises(ConfigurationMissing) as excinfo:
        settings.require_backend()
    assert excinfo.value.missing == ["AUTH_SECRET"]
    assert excinfo.value.message == "App configuration is missing. Login is disabled."


def test_short_secret_is_invalid():
    assert Settings(auth_secret="short").missing_backend_settings() == ["AUTH_SECRET"]


def test_empty_database_url_is_invalid():
    settings = Settings(database_url="", auth_secret="a-long-enough-secret")
    assert settings.missing_backend_settings() == ["DATABASE_URL"]


def test_build_backend_refuses_incomplete_configuration():
    with pytest.raises(ConfigurationMissing):
        build_backend(Settings(database_url="sqlite://"))
