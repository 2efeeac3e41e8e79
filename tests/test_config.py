"""Tests for settings-derived values."""

from sqlalchemy import make_url

from truck_assistant.config import Settings


class TestDatabaseUrl:

    def test_components(self):
        settings = Settings(_env_file=None, db_host="db.internal", db_port=6543, db_name="fleet")
        url = make_url(settings.database_url)
        assert url.drivername == "postgresql"
        assert url.host == "db.internal"
        assert url.port == 6543
        assert url.database == "fleet"
        assert url.username == "postgres"

    def test_reserved_characters_in_password_survive(self):
        settings = Settings(
            _env_file=None, db_host="db.internal", db_user="fleet@ops", db_password="p@ss:w/rd%1"
        )
        url = make_url(settings.database_url)
        assert url.host == "db.internal"
        assert url.username == "fleet@ops"
        assert url.password == "p@ss:w/rd%1"


def test_configured_integrations_excludes_ai_providers():
    settings = Settings(_env_file=None, youtube_api_key="key", mongodb_uri=None, db_host=None)
    assert settings.configured_integrations() == {
        "mongodb": False,
        "postgres": False,
        "youtube": True,
    }
