from __future__ import annotations

import pytest

from src.config.settings import Settings, validate_settings


@pytest.mark.smoke
def test_settings_validation_flags_missing_admin_login():
    settings = Settings(
        database_url="",
        sqlite_db_path="data/ai_league.db",
        admin_username="",
        admin_password="",
        admin_token_ttl_hours=24,
        question_count=5,
        recent_votes_limit=50,
        stats_refresh_seconds=30,
        default_model_color="#3B82F6",
        default_event_name="AI League Game Show - Event 1",
        log_level="INFO",
    )
    errors = validate_settings(settings)
    assert "ADMIN_USERNAME is required" in errors
    assert "ADMIN_PASSWORD is required" in errors
