from datetime import timedelta

import pytest
from sqlalchemy.pool import StaticPool

from taskreminder.db.session import create_db_engine, make_session_factory
from taskreminder.reminders.exceptions import QueryError
from taskreminder.reminders.repository import find_due_soon

from .conftest import NOW

HORIZON = timedelta(hours=24)


def test_window_is_closed_on_both_ends(session_factory, make_task):
    at_now = make_task(NOW, title="at now")
    at_upper = make_task(NOW + HORIZON, title="at upper bound")
    inside = make_task(NOW + timedelta(hours=2), title="inside")

    found = find_due_soon(session_factory, NOW, HORIZON)

    ids = [t.id for t in found]
    assert sorted(ids) == sorted([at_now.id, at_upper.id, inside.id])
    assert len(ids) == len(set(ids))


def test_tasks_outside_window_are_excluded(session_factory, make_task):
    make_task(NOW - timedelta(microseconds=1), title="just past")
    make_task(NOW - timedelta(hours=3), title="overdue")
    make_task(NOW + HORIZON + timedelta(microseconds=1), title="just beyond")
    make_task(NOW + timedelta(hours=48), title="two days out")

    assert find_due_soon(session_factory, NOW, HORIZON) == []


def test_window_compares_absolute_instants(session_factory, make_task):
    # Display zone plays no part in when a task is due
    task = make_task(NOW + timedelta(hours=23), timezone="Pacific/Kiritimati")
    make_task(NOW + timedelta(hours=25), timezone="Pacific/Pago_Pago")

    assert [t.id for t in find_due_soon(session_factory, NOW, HORIZON)] == [task.id]


def test_returns_detached_snapshots(session_factory, make_task):
    make_task(NOW + timedelta(hours=1))
    (snapshot,) = find_due_soon(session_factory, NOW, HORIZON)
    assert snapshot.due_date.tzinfo is not None
    assert snapshot.due_date == NOW + timedelta(hours=1)


def test_store_failure_raises_query_error():
    # No tables created: every query fails at the database
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    try:
        with pytest.raises(QueryError):
            find_due_soon(make_session_factory(engine), NOW, HORIZON)
    finally:
        engine.dispose()
