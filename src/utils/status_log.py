from __future__ import annotations

import os
import sys
from typing import Any

_FAILURE_STATUSES = {"failed", "rejected", "degraded", "duplicate", "denied"}
_LEVELS = {"DEBUG": 10, "INFO": 20, "WARNING": 30, "ERROR": 40}


def _quiet() -> bool:
    level = os.getenv("LOG_LEVEL", "INFO").strip().upper()
    return _LEVELS.get(level, 20) > _LEVELS["INFO"]


def format_status(tag: str, status: str, **fields: Any) -> str:
    parts = [f"[{tag}]", f"status={status}"]
    parts.extend(f"{key}={value}" for key, value in fields.items())
    return " ".join(parts)


def log_status(tag: str, status: str, **fields: Any) -> None:
    """Print one tagged status line; failures go to stderr."""
    failed = status in _FAILURE_STATUSES
    if not failed and _quiet():
        return
    stream = sys.stderr if failed else sys.stdout
    print(format_status(tag, status, **fields), file=stream)
