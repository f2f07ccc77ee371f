from __future__ import annotations

from dataclasses import replace

from src.config.settings import ensure_runtime_dirs, load_settings, validate_settings


def test_load_settings_defaults(monkeypatch):
    for name in (
        "DATABASE_URL",
        "ADMIN_USERNAME",
        "QUESTION_COUNT",
        "RECENT_VOTES_LIMIT",
        "STATS_REFRESH_SECONDS",
        "DEFAULT_MODEL_COLOR",
    ):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings()
    assert settings.admin_username == "admin"
    assert settings.question_count == 5
    assert settings.recent_votes_limit == 50
    assert settings.stats_refresh_seconds == 30
    assert settings.default_model_color == "#3B82F6"


def test_load_settings_reads_env(monkeypatch):
    monkeypatch.setenv("QUESTION_COUNT", "7")
    monkeypatch.setenv("LOG_LEVEL", "warning")
    settings = load_settings()
    assert settings.question_count == 7
    assert settings.log_level == "WARNING"


def test_valid_settings_have_no_errors(settings):
    assert validate_settings(settings) == []


def test_validate_settings_flags_bad_values(settings):
    broken = replace(
        settings,
        admin_password="",
        question_count=0,
        admin_token_ttl_hours=-1,
        database_url="mysql://x",
        default_model_color="blue",
    )
    errors = validate_settings(broken)
    assert "ADMIN_PASSWORD is required" in errors
    assert "QUESTION_COUNT must be > 0" in errors
    assert "ADMIN_TOKEN_TTL_HOURS must be > 0" in errors
    assert any("DATABASE_URL" in e for e in errors)
    assert any("DEFAULT_MODEL_COLOR" in e for e in errors)


def test_validate_settings_rejects_unknown_log_level(settings):
    errors = validate_settings(replace(settings, log_level="LOUD"))
    assert any("LOG_LEVEL" in e for e in errors)


def test_ensure_runtime_dirs_creates_sqlite_parent(tmp_path, settings):
    db_path = tmp_path / "nested" / "dir" / "votes.db"
    ensure_runtime_dirs(replace(settings, sqlite_db_path=str(db_path)))
    assert db_path.parent.is_dir()
