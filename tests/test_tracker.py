from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from taskreminder.reminders.tracker import clear_notification

from .conftest import NOW

HORIZON = timedelta(hours=24)


def test_unknown_task_was_not_notified(tracker):
    assert not tracker.was_notified("nope", NOW)


def test_record_then_lookup(tracker):
    due = NOW + timedelta(hours=3)
    tracker.record("t1", due, NOW)
    assert tracker.was_notified("t1", due)


def test_changed_due_date_is_not_notified(tracker):
    due = NOW + timedelta(hours=3)
    tracker.record("t1", due, NOW)
    assert not tracker.was_notified("t1", due + timedelta(minutes=30))
    assert not tracker.was_notified("t1", due - timedelta(microseconds=1))


def test_record_is_an_upsert(tracker):
    first = NOW + timedelta(hours=3)
    second = NOW + timedelta(hours=5)
    tracker.record("t1", first, NOW)
    tracker.record("t1", second, NOW + timedelta(minutes=10))
    assert tracker.was_notified("t1", second)
    assert not tracker.was_notified("t1", first)


def test_invalidate(tracker):
    tracker.record("t1", NOW, NOW)
    tracker.invalidate("t1")
    assert not tracker.was_notified("t1", NOW)


def test_prune_drops_only_records_past_the_horizon(tracker):
    tracker.record("old", NOW - HORIZON - timedelta(minutes=1), NOW - HORIZON)
    tracker.record("recent", NOW - timedelta(hours=1), NOW - timedelta(hours=2))
    tracker.record("upcoming", NOW + timedelta(hours=1), NOW)

    assert tracker.prune(NOW, HORIZON) == 1
    assert not tracker.was_notified("old", NOW - HORIZON - timedelta(minutes=1))
    assert tracker.was_notified("recent", NOW - timedelta(hours=1))
    assert tracker.was_notified("upcoming", NOW + timedelta(hours=1))


def test_clear_notification_follows_the_callers_transaction(tracker, db):
    tracker.record("t1", NOW, NOW)

    assert clear_notification(db, "t1") == 1
    db.rollback()
    assert tracker.was_notified("t1", NOW)

    clear_notification(db, "t1")
    db.commit()
    assert not tracker.was_notified("t1", NOW)


def test_invalidate_rolls_back_on_failure(tracker, session_factory, monkeypatch):
    def failing_commit():
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    def failing_factory():
        session = session_factory()
        monkeypatch.setattr(session, "commit", failing_commit)
        return session

    tracker.record("t1", NOW, NOW)
    tracker.session_factory = failing_factory

    with pytest.raises(OperationalError):
        tracker.invalidate("t1")

    tracker.session_factory = session_factory
    assert tracker.was_notified("t1", NOW)
