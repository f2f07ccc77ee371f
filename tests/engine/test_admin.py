from __future__ import annotations

import pytest

from src.engine.admin import (
    admin_add_model,
    admin_create_event,
    admin_delete_model,
    admin_list_events,
    admin_set_event_status,
    admin_stats,
)
from src.engine.catalog import list_models
from src.engine.errors import InvalidCredential, MissingCredential
from src.engine.stats import STATS_KEYS
from src.sessions.manager import authenticate


@pytest.fixture
def token(sqlite_db, settings) -> str:
    return authenticate(sqlite_db, "admin", "s3cret", settings)


def test_admin_stats_without_credential_is_401(sqlite_db, settings):
    with pytest.raises(MissingCredential) as excinfo:
        admin_stats(sqlite_db, None, settings)
    assert excinfo.value.status_code == 401


def test_admin_stats_with_bad_credential_is_403(sqlite_db, settings):
    with pytest.raises(InvalidCredential) as excinfo:
        admin_stats(sqlite_db, "not-a-real-token", settings)
    assert excinfo.value.status_code == 403


def test_admin_stats_with_token(sqlite_db, settings, token):
    stats = admin_stats(sqlite_db, token, settings)
    assert set(stats) == set(STATS_KEYS)


def test_rejected_call_performs_no_write(sqlite_db, settings, event_id):
    with pytest.raises(InvalidCredential):
        admin_add_model(sqlite_db, "bogus", settings, event_id, "Alpha")
    with pytest.raises(MissingCredential):
        admin_create_event(sqlite_db, "", "Sneaky", "2026-01-01")
    assert list_models(sqlite_db, event_id) == []
    count = sqlite_db.execute("SELECT COUNT(*) AS c FROM events").fetchone()["c"]
    assert count == 1


def test_admin_catalog_round_trip(sqlite_db, settings, token):
    event_id = admin_create_event(sqlite_db, token, "Finals", "2026-05-01")
    model_id = admin_add_model(sqlite_db, token, settings, event_id, "Alpha", "Fast", None)
    assert list_models(sqlite_db, event_id)[0]["color"] == settings.default_model_color
    admin_delete_model(sqlite_db, token, event_id, model_id)
    assert list_models(sqlite_db, event_id) == []
    assert admin_set_event_status(sqlite_db, token, event_id, "inactive") is True
    statuses = {e["id"]: e["status"] for e in admin_list_events(sqlite_db, token)}
    assert statuses[event_id] == "inactive"
