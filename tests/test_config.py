"""
Settings Tests

Tests for environment-driven configuration.
"""

from learnlytics.core.config import Settings


class TestSettings:
    """Tests for derived settings properties."""

    def test_defaults_use_local_sqlite(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)

        assert settings.is_sqlite
        assert settings.AGGREGATE_ON_WRITE is True
        assert settings.DEFAULT_SUMMARY_TIMEFRAME == "30d"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://user:pw@db/learnlytics")
        monkeypatch.setenv("AGGREGATE_ON_WRITE", "false")
        monkeypatch.setenv("ENVIRONMENT", "production")

        settings = Settings(_env_file=None)

        assert not settings.is_sqlite
        assert not settings.is_development
        assert settings.AGGREGATE_ON_WRITE is False

    def test_cors_origins_list(self):
        settings = Settings(_env_file=None, CORS_ORIGINS="http://a.test, http://b.test")
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
