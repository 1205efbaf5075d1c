import signal

from sqlalchemy.pool import StaticPool

from taskreminder.db.session import create_db_engine
from taskreminder.reminders import worker
from taskreminder.reminders.scheduler import ReminderScheduler

from .conftest import FakeTransport


def test_sigterm_stops_worker_and_shuts_scheduler_down(monkeypatch):
    handlers = {}
    schedulers = []
    engine = create_db_engine("sqlite://", poolclass=StaticPool)

    class SignalledScheduler(ReminderScheduler):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            schedulers.append(self)

        def start(self, run_immediately=True):
            super().start(run_immediately=False)
            handlers[signal.SIGTERM](signal.SIGTERM, None)

    monkeypatch.setattr(worker, "create_db_engine", lambda: engine)
    monkeypatch.setattr(worker, "build_transport", FakeTransport)
    monkeypatch.setattr(worker, "ReminderScheduler", SignalledScheduler)
    monkeypatch.setattr(worker.signal, "signal", lambda signum, handler: handlers.__setitem__(signum, handler))

    assert worker.main() == 0

    assert set(handlers) == {signal.SIGINT, signal.SIGTERM}
    (scheduler,) = schedulers
    assert scheduler.stopping
    assert scheduler._scheduler is None
