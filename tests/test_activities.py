import logging
from datetime import datetime

import pytest

from app.domain.activities.service import record_activity
from app.models import Activity
from app.shared.dates import format_date, format_timestamp, parse_instant


def test_record_activity_writes_a_row(db, customer, user):
    activity = record_activity(
        db, "customer_updated", customer_id=customer.id, created_by=user.id, note="Customer information updated"
    )
    assert activity.id is not None
    assert db.query(Activity).count() == 1


def test_record_activity_swallows_failures(db, customer, user, caplog):
    with caplog.at_level(logging.ERROR):
        result = record_activity(db, "not_a_type", customer_id=customer.id, created_by=user.id, note="x")

    assert result is None
    assert db.query(Activity).count() == 0
    assert "Activity log failed" in caplog.text


def test_activities_cannot_be_updated(db, customer, user):
    activity = record_activity(db, "note", customer_id=customer.id, created_by=user.id, note="original")
    activity.note = "rewritten"

    with pytest.raises(ValueError, match="immutable"):
        db.commit()
    db.rollback()

    db.refresh(activity)
    assert activity.note == "original"


def test_timestamp_formats():
    assert format_timestamp(datetime(2026, 10, 19, 15, 4)) == "Oct 19, 2026, 3:04 PM"
    assert format_timestamp(datetime(2026, 1, 5, 0, 30)) == "Jan 5, 2026, 12:30 AM"
    assert format_date(datetime(2026, 11, 2, 8, 0)) == "11/2/2026"


def test_parse_instant_normalizes_to_naive_utc():
    assert parse_instant("2026-11-02T10:00:00+02:00") == datetime(2026, 11, 2, 8, 0)
    assert parse_instant("2026-11-02T08:00:00Z") == datetime(2026, 11, 2, 8, 0)
    assert parse_instant("") is None
    assert parse_instant("next tuesday") is None
