from __future__ import annotations

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

import pytest

from src.config.settings import Settings
from src.db.sqlite_client import create_event, get_connection, init_schema


@pytest.fixture
def sqlite_db(tmp_path: Path) -> Generator[sqlite3.Connection, None, None]:
    os.environ.pop("DATABASE_URL", None)
    db_path = str(tmp_path / "test.db")
    conn = get_connection(db_path)
    init_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url="",
        sqlite_db_path="data/ai_league.db",
        admin_username="admin",
        admin_password="s3cret",
        admin_token_ttl_hours=24,
        question_count=5,
        recent_votes_limit=50,
        stats_refresh_seconds=30,
        default_model_color="#3B82F6",
        default_event_name="AI League Game Show - Event 1",
        log_level="INFO",
    )


@pytest.fixture
def event_id(sqlite_db) -> int:
    return create_event(sqlite_db, "E1", "2026-03-10")
