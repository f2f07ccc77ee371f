from __future__ import annotations

import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

from src.config.settings import Settings
from src.db.sqlite_client import create_admin_token, delete_admin_token, get_admin_token
from src.engine.errors import InvalidCredential, InvalidLogin, MissingCredential
from src.utils.status_log import log_status


def _parse_expires_at(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            return None
        return parsed if parsed.tzinfo is not None else parsed.replace(tzinfo=UTC)
    return None


def _matches(given: str, expected: str) -> bool:
    return hmac.compare_digest(given.encode("utf-8"), expected.encode("utf-8"))


def authenticate(conn: Any, username: str, password: str, settings: Settings) -> str:
    """Check the configured admin login and issue an opaque bearer token."""
    user_ok = _matches(username or "", settings.admin_username)
    pass_ok = _matches(password or "", settings.admin_password)
    if not (user_ok and pass_ok):
        log_status("ADMIN", "denied", action="login", username=username or "")
        raise InvalidLogin()
    token = secrets.token_urlsafe(32)
    expires_at = datetime.now(UTC) + timedelta(hours=settings.admin_token_ttl_hours)
    create_admin_token(conn, token, settings.admin_username, expires_at.isoformat())
    log_status("ADMIN", "login", username=settings.admin_username)
    return token


def authorize(conn: Any, credential: str | None, now: datetime | None = None) -> str:
    """Return the admin principal for a credential or raise AuthFailure.

    No credential raises MissingCredential; an unknown or expired one raises
    InvalidCredential. Expired tokens are removed on sight.
    """
    if not credential or not credential.strip():
        raise MissingCredential()
    record = get_admin_token(conn, credential.strip())
    if not record:
        raise InvalidCredential()
    expires_at = _parse_expires_at(record.get("expires_at"))
    if expires_at is None or (now or datetime.now(UTC)) >= expires_at:
        delete_admin_token(conn, credential.strip())
        raise InvalidCredential()
    return str(record["username"])


def revoke(conn: Any, credential: str | None) -> bool:
    if not credential:
        return False
    return delete_admin_token(conn, credential.strip())
