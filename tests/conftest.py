import threading
from datetime import datetime, timezone as dt_timezone

import pytest
from sqlalchemy.pool import StaticPool

from taskreminder.crud.task import task as crud_task
from taskreminder.db.session import create_db_engine, init_db, make_session_factory
from taskreminder.reminders.config import ReminderSettings
from taskreminder.reminders.exceptions import TransportError
from taskreminder.reminders.tracker import NotificationTracker
from taskreminder.schemas.task import TaskCreate

NOW = datetime(2026, 10, 19, 8, 0, 0, tzinfo=dt_timezone.utc)


class FakeTransport:
    def __init__(self):
        self.sent = []
        self.fail_for = set()
        self._lock = threading.Lock()

    def verify(self):
        return True

    def send(self, sender, to, subject, body):
        if to in self.fail_for:
            raise TransportError(f"refused {to}")
        with self._lock:
            self.sent.append({"from": sender, "to": to, "subject": subject, "body": body})


@pytest.fixture
def engine():
    eng = create_db_engine("sqlite://", poolclass=StaticPool)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def tracker(session_factory):
    return NotificationTracker(session_factory)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def reminder_settings():
    return ReminderSettings(
        SCAN_INTERVAL_SECONDS=600,
        HORIZON_SECONDS=24 * 60 * 60,
        DEFAULT_TIMEZONE="Asia/Ho_Chi_Minh",
        WORKER_CONCURRENCY=1,
        _env_file=None,
    )


@pytest.fixture
def make_task(db):
    def _make(due_date, email="owner@example.com", title="Write report", description="Quarterly numbers",
              timezone="Asia/Ho_Chi_Minh"):
        return crud_task.create(
            db,
            obj_in=TaskCreate(
                title=title,
                description=description,
                due_date=due_date,
                email=email,
                timezone=timezone,
            ),
        )
    return _make


@pytest.fixture
def insert_raw_task(db):
    """Store a task bypassing write validation, as another writer might."""
    from taskreminder.models.task import Task

    def _insert(due_date, email, title="Legacy task", description="Imported", timezone="Asia/Ho_Chi_Minh"):
        row = Task(title=title, description=description, due_date=due_date, email=email, timezone=timezone)
        db.add(row)
        db.commit()
        db.refresh(row)
        return row
    return _insert
