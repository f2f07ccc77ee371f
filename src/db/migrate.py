from __future__ import annotations

import argparse
import importlib
import pkgutil
from pathlib import Path

from src.db.sqlite_client import get_connection
from src.utils.status_log import log_status

MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"


def _is_postgres(conn: object) -> bool:
    return conn.__class__.__module__.startswith("psycopg")


def ensure_migrations_table(conn: object) -> None:
    if _is_postgres(conn):
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id BIGSERIAL PRIMARY KEY,
                name TEXT NOT NULL UNIQUE,
                applied_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
    else:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS _migrations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                applied_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
    conn.commit()


def applied_migration_names(conn: object) -> set[str]:
    cur = conn.cursor() if _is_postgres(conn) else conn
    rows = cur.execute("SELECT name FROM _migrations").fetchall()
    return {row["name"] if isinstance(row, dict) else row[0] for row in rows}


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[str]:
    modules = [name for _, name, _ in pkgutil.iter_modules([str(directory)]) if name[0:3].isdigit()]
    return sorted(modules)


def apply_all(db_path: str) -> list[str]:
    """Apply every migration not yet recorded in _migrations, in name order."""
    conn = get_connection(db_path)
    try:
        ensure_migrations_table(conn)
        already = applied_migration_names(conn)
        applied: list[str] = []
        for module_name in discover_migrations():
            if module_name in already:
                continue
            mod = importlib.import_module(f"migrations.{module_name}")
            mod.up(conn)
            cur = conn.cursor() if _is_postgres(conn) else conn
            if _is_postgres(conn):
                cur.execute("INSERT INTO _migrations(name) VALUES (%s)", (module_name,))
            else:
                cur.execute("INSERT INTO _migrations(name) VALUES (?)", (module_name,))
            conn.commit()
            applied.append(module_name)
            log_status("MIGRATE", "applied", name=module_name)
        return applied
    finally:
        conn.close()


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--db-path", default="data/ai_league.db")
    args = parser.parse_args()
    applied = apply_all(args.db_path)
    if not applied:
        log_status("MIGRATE", "up_to_date")


if __name__ == "__main__":
    main()
