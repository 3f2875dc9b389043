"""Tests for application settings."""

from castellan.core.config import Settings, get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("CASTELLAN_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url == "sqlite:///./castellan.db"
        assert settings.is_sqlite
        assert settings.locale == "en"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("CASTELLAN_DATABASE_URL", "postgresql://db/castellan")
        monkeypatch.setenv("CASTELLAN_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("CASTELLAN_FALLBACK_LOCALE", "fr")
        settings = Settings(_env_file=None)
        assert settings.database_url == "postgresql://db/castellan"
        assert not settings.is_sqlite
        assert settings.log_level == "DEBUG"
        assert settings.fallback_locale == "fr"

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
