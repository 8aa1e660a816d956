"""
Tests for persisted system log events.
"""
from unittest.mock import MagicMock

from orderportal.db.models import SystemLog, LogType
from orderportal.services.system_log import log_event


def test_log_event_persists_and_scrubs(db_session):
    entry = log_event(
        db_session,
        LogType.STATUS_CHECK,
        "Manual status check completed",
        {"changed": 2, "smtp": {"password": "hunter2"}},
        created_by="admin",
    )

    assert entry is not None
    row = db_session.query(SystemLog).one()
    assert row.log_type == "status_check"
    assert row.created_by == "admin"
    assert row.details == {"changed": 2, "smtp": {"password": "***REDACTED***"}}


def test_log_event_never_raises():
    db = MagicMock()
    db.commit.side_effect = RuntimeError("database unavailable")

    assert log_event(db, "error", "Scheduled status check failed") is None
    db.rollback.assert_called_once()
