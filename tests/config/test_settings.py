from __future__ import annotations

from typing import Any, cast

from src.config.settings import Settings, load_settings, validate_settings


def _valid_settings(**overrides: object) -> Settings:
    defaults = {
        "database_url": "",
        "sqlite_db_path": "data/barbershop.db",
        "log_level": "INFO",
        "timezone": "America/Sao_Paulo",
        "booking_days_ahead": 1,
        "slot_times_config_path": "config/slot_times.yaml",
        "store_timeout_seconds": 5.0,
        "host": "0.0.0.0",
        "port": 3000,
    }
    defaults.update(overrides)
    return Settings(**cast(dict[str, Any], defaults))


def test_valid_settings_have_no_errors():
    assert validate_settings(_valid_settings()) == []


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("SQLITE_DB_PATH", "/tmp/x.db")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("BOOKING_DAYS_AHEAD", "2")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    settings = load_settings()
    assert settings.sqlite_db_path == "/tmp/x.db"
    assert settings.log_level == "DEBUG"
    assert settings.booking_days_ahead == 2
    assert settings.database_url == ""


def test_validate_settings_rejects_unknown_timezone():
    errors = validate_settings(_valid_settings(timezone="Nowhere/Town"))
    assert any("TIMEZONE" in e for e in errors)


def test_validate_settings_rejects_bad_database_url():
    errors = validate_settings(_valid_settings(database_url="mysql://db"))
    assert "DATABASE_URL must start with postgres:// or postgresql://" in errors


def test_validate_settings_rejects_bad_numbers():
    errors = validate_settings(
        _valid_settings(booking_days_ahead=-1, store_timeout_seconds=0, port=70000)
    )
    assert "BOOKING_DAYS_AHEAD must be >= 0" in errors
    assert "STORE_TIMEOUT_SECONDS must be > 0" in errors
    assert "PORT must be between 1 and 65535" in errors


def test_validate_settings_rejects_unknown_log_level():
    errors = validate_settings(_valid_settings(log_level="LOUD"))
    assert any("LOG_LEVEL" in e for e in errors)
