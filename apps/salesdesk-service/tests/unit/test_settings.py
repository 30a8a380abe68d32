import pytest

from salesdesk.errors import ConfigurationError
from salesdesk.utils import settings as settings_module
from salesdesk.utils.settings import DEFAULT_ADMIN_EMAIL, get_settings, load_settings


def test_sql_backend_with_database_url():
    cfg = load_settings({"DATABASE_URL": "sqlite:///:memory:", "SESSION_SECRET": "s3cret"})
    assert cfg.storage_backend == "sql"
    assert cfg.database_url == "sqlite:///:memory:"
    assert cfg.session_ttl_hours == 24
    assert cfg.bootstrap_admin_email == DEFAULT_ADMIN_EMAIL
    assert cfg.uses_default_admin_password


def test_sql_url_is_assembled_from_postgres_parts():
    cfg = load_settings({
        "POSTGRES_USER": "crm",
        "POSTGRES_PASSWORD": "pw",
        "POSTGRES_HOST": "db",
        "POSTGRES_PORT": "5432",
        "POSTGRES_DB": "salesdesk",
        "SESSION_SECRET": "s3cret",
    })
    assert cfg.database_url == "postgresql://crm:pw@db:5432/salesdesk"


def test_missing_variables_are_all_reported():
    with pytest.raises(ConfigurationError) as exc:
        load_settings({"STORAGE_BACKEND": "baserow", "BASEROW_API_URL": "https://api.baserow.io"})
    message = str(exc.value)
    assert "BASEROW_API_KEY" in message
    assert "BASEROW_SCHEMA_FILE" in message
    assert "SESSION_SECRET" in message
    assert "BASEROW_API_URL" not in message


def test_missing_postgres_parts_are_named():
    with pytest.raises(ConfigurationError) as exc:
        load_settings({"POSTGRES_USER": "crm", "SESSION_SECRET": "s3cret"})
    assert "POSTGRES_HOST" in str(exc.value)
    assert "POSTGRES_USER" not in str(exc.value)


def test_supabase_backend():
    cfg = load_settings({
        "STORAGE_BACKEND": " Supabase ",
        "SUPABASE_URL": "https://xyz.supabase.co",
        "SUPABASE_SERVICE_KEY": "service-key",
        "SESSION_SECRET": "s3cret",
        "SESSION_TTL_HOURS": "8",
        "LOG_LEVEL": "debug",
    })
    assert cfg.storage_backend == "supabase"
    assert cfg.supabase_url == "https://xyz.supabase.co"
    assert cfg.database_url is None
    assert cfg.session_ttl_hours == 8
    assert cfg.log_level == "DEBUG"


def test_unsupported_backend():
    with pytest.raises(ConfigurationError, match="Unsupported STORAGE_BACKEND 'mongo'"):
        load_settings({"STORAGE_BACKEND": "mongo", "SESSION_SECRET": "s3cret"})


@pytest.mark.parametrize("name,value", [("SESSION_TTL_HOURS", "a day"), ("HTTP_TIMEOUT_SECONDS", "soon")])
def test_bad_numbers(name, value):
    env = {"DATABASE_URL": "sqlite://", "SESSION_SECRET": "s3cret", name: value}
    with pytest.raises(ConfigurationError, match=name):
        load_settings(env)


def test_get_settings_reads_environment_once(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "sql")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("SESSION_SECRET", "from-env")
    first = get_settings()
    monkeypatch.setenv("SESSION_SECRET", "changed")
    assert get_settings() is first

    settings_module.refresh_settings_cache()
    assert get_settings().session_secret == "changed"
