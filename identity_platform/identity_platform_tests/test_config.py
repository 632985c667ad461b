"""Tests for settings loading."""
from identity_platform.identity_platform.identity_service.config import Settings
from identity_platform.identity_platform.identity_service.db import ConnectionPoolManager


def test_database_url_from_pg_fields(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("PGHOST", "db.internal")
    monkeypatch.setenv("PGPORT", "6543")
    monkeypatch.setenv("PGDATABASE", "identity")
    monkeypatch.setenv("PGUSER", "svc")
    monkeypatch.setenv("PGPASSWORD", "hunter2")

    url = Settings(_env_file=None).database_url()
    assert url.drivername == "postgresql+psycopg"
    assert url.host == "db.internal"
    assert url.port == 6543
    assert url.database == "identity"
    assert url.username == "svc"
    assert "hunter2" not in url.render_as_string(hide_password=True)


def test_database_url_override(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite:///./local.db")
    assert Settings(_env_file=None).database_url().get_backend_name() == "sqlite"


def test_pool_options_follow_settings(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("DB_POOL_SIZE", "15")
    monkeypatch.setenv("DB_CONNECT_TIMEOUT_SECONDS", "7")
    monkeypatch.setenv("DB_SSL_REQUIRE", "true")
    pool = ConnectionPoolManager.from_settings(Settings(_env_file=None))

    options = pool._engine_options()
    assert options["pool_size"] == 15
    assert options["max_overflow"] == 0
    assert options["pool_timeout"] == 7
    assert options["connect_args"] == {"connect_timeout": 7, "sslmode": "require"}


def test_default_secret_is_flagged(monkeypatch):
    monkeypatch.delenv("JWT_SECRET", raising=False)
    assert Settings(_env_file=None).uses_default_secret
    assert not Settings(_env_file=None, JWT_SECRET="real-secret").uses_default_secret


def test_sub_second_recycle_age_is_clamped():
    pool = ConnectionPoolManager("sqlite:///./local.db", idle_timeout=0.4)
    assert pool._engine_options()["pool_recycle"] == 1

    pool = ConnectionPoolManager("sqlite:///./local.db", idle_timeout=90.7)
    assert pool._engine_options()["pool_recycle"] == 90
