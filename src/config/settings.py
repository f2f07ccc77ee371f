from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _get_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    database_url: str
    sqlite_db_path: str
    admin_username: str
    admin_password: str
    admin_token_ttl_hours: int
    question_count: int
    recent_votes_limit: int
    stats_refresh_seconds: int
    default_model_color: str
    default_event_name: str
    log_level: str


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_db_path=os.getenv("SQLITE_DB_PATH", "data/ai_league.db"),
        admin_username=os.getenv("ADMIN_USERNAME", "admin"),
        admin_password=os.getenv("ADMIN_PASSWORD", "admin123"),
        admin_token_ttl_hours=_get_int_env("ADMIN_TOKEN_TTL_HOURS", 24),
        question_count=_get_int_env("QUESTION_COUNT", 5),
        recent_votes_limit=_get_int_env("RECENT_VOTES_LIMIT", 50),
        stats_refresh_seconds=_get_int_env("STATS_REFRESH_SECONDS", 30),
        default_model_color=os.getenv("DEFAULT_MODEL_COLOR", "#3B82F6"),
        default_event_name=os.getenv("DEFAULT_EVENT_NAME", "AI League Game Show - Event 1"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def validate_settings(settings: Settings) -> list[str]:
    errors: list[str] = []
    if not settings.admin_username.strip():
        errors.append("ADMIN_USERNAME is required")
    if not settings.admin_password:
        errors.append("ADMIN_PASSWORD is required")
    if settings.admin_token_ttl_hours <= 0:
        errors.append("ADMIN_TOKEN_TTL_HOURS must be > 0")
    if settings.question_count <= 0:
        errors.append("QUESTION_COUNT must be > 0")
    if settings.recent_votes_limit <= 0:
        errors.append("RECENT_VOTES_LIMIT must be > 0")
    if settings.stats_refresh_seconds <= 0:
        errors.append("STATS_REFRESH_SECONDS must be > 0")
    if not settings.default_model_color.startswith("#"):
        errors.append("DEFAULT_MODEL_COLOR must be a hex colour, e.g. #3B82F6")
    if settings.log_level not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")
    if settings.database_url and not settings.database_url.startswith(
        ("postgres://", "postgresql://")
    ):
        errors.append("DATABASE_URL must start with postgres:// or postgresql://")
    return errors


def ensure_runtime_dirs(settings: Settings) -> None:
    if not settings.database_url:
        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
