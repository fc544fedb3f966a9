"""Unit tests for configuration management."""

import pytest
from pydantic import ValidationError

from sitechat.config import DEFAULT_USER_AGENT, Settings


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove the overrides the test session sets so defaults apply."""
    for name in (
        "DATABASE_URL",
        "ENVIRONMENT",
        "LOG_LEVEL",
        "RENDER_SEED_PAGE",
        "CRAWL_DELAY_MS",
        "REQUIRE_API_KEY",
        "AUTO_CREATE_TABLES",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_default_values(clean_env):
    settings = Settings(_env_file=None)

    assert settings.database_url.startswith("postgresql+asyncpg://")
    assert settings.crawl_max_pages == 20
    assert settings.crawl_delay_ms == 500
    assert settings.min_page_content_length == 50
    assert settings.fetch_timeout_seconds == 15.0
    assert settings.render_seed_page is True
    assert settings.user_agent == DEFAULT_USER_AGENT
    assert settings.log_level == "INFO"
    assert settings.environment == "development"
    assert settings.scan_in_background is False


def test_settings_from_environment(clean_env):
    clean_env.setenv("CRAWL_MAX_PAGES", "5")
    clean_env.setenv("CRAWL_DELAY_MS", "0")
    clean_env.setenv("RENDER_SEED_PAGE", "false")
    clean_env.setenv("BASE_URL", "https://chat.example.com")

    settings = Settings(_env_file=None)

    assert settings.crawl_max_pages == 5
    assert settings.crawl_delay_ms == 0
    assert settings.render_seed_page is False
    assert settings.base_url == "https://chat.example.com"


def test_log_level_is_uppercased(clean_env):
    clean_env.setenv("LOG_LEVEL", "debug")
    assert Settings(_env_file=None).log_level == "DEBUG"


def test_log_level_validation_invalid(clean_env):
    clean_env.setenv("LOG_LEVEL", "LOUD")

    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)

    assert "Invalid log_level" in str(exc_info.value)


def test_environment_validation_invalid(clean_env):
    clean_env.setenv("ENVIRONMENT", "staging")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


@pytest.mark.parametrize("name", ["CRAWL_MAX_PAGES", "FETCH_TIMEOUT_SECONDS", "BROWSER_MAX_CONTEXTS"])
def test_limits_must_be_positive(clean_env, name):
    clean_env.setenv(name, "0")

    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)

    assert "must be greater than zero" in str(exc_info.value)


def test_delay_cannot_be_negative(clean_env):
    clean_env.setenv("CRAWL_DELAY_MS", "-1")

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_cors_origins_from_comma_separated_string():
    settings = Settings(_env_file=None, cors_allowed_origins="https://a.com, https://b.com")
    assert settings.cors_allowed_origins == ["https://a.com", "https://b.com"]


def test_api_key_required_in_production(clean_env):
    clean_env.setenv("ENVIRONMENT", "production")
    clean_env.setenv("REQUIRE_API_KEY", "true")
    clean_env.delenv("API_KEY", raising=False)

    with pytest.raises(ValidationError) as exc_info:
        Settings(_env_file=None)

    assert "API_KEY must be set" in str(exc_info.value)


def test_api_key_accepted_in_production(clean_env):
    clean_env.setenv("ENVIRONMENT", "production")
    clean_env.setenv("REQUIRE_API_KEY", "true")
    clean_env.setenv("API_KEY", "secret-key")

    settings = Settings(_env_file=None)

    assert settings.api_key is not None
    assert settings.api_key.get_secret_value() == "secret-key"
