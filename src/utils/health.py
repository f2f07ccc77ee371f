from __future__ import annotations

from typing import Any

from src.db.sqlite_client import get_table_names

REQUIRED_TABLES = ("events", "event_models", "votes", "admin_tokens")


def _schema_status(conn: Any) -> str:
    try:
        tables = get_table_names(conn)
    except Exception as exc:
        return f"error: {exc}"
    missing = [name for name in REQUIRED_TABLES if name not in tables]
    return f"missing tables: {', '.join(missing)}" if missing else "ready"


def readiness(conn: Any | None) -> dict[str, Any]:
    """Report whether the vote store can serve ballots and the dashboard."""
    status = "error: unavailable" if conn is None else _schema_status(conn)
    return {"ok": status == "ready", "dependencies": {"database": status}}
