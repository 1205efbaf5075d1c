#!/usr/bin/env python3
"""
Reminder worker process.

Run with `python -m taskreminder.reminders.worker`. Stops gracefully on SIGINT/SIGTERM.
"""

import logging
import signal

from prometheus_client import start_http_server

from taskreminder.core.config import settings as core_settings
from taskreminder.db.session import create_db_engine, init_db, make_session_factory
from .config import settings as reminder_settings
from .dispatcher import build_transport
from .scheduler import ReminderScheduler

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=core_settings.LOG_LEVEL,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


def main() -> int:
    configure_logging()
    logger.info(f"🚀 [WorkerProcess] Starting reminder worker ({core_settings.ENVIRONMENT.value})")

    engine = create_db_engine()
    try:
        init_db(engine)
        session_factory = make_session_factory(engine)

        transport = build_transport()
        # Unreachable mail server is reported but not fatal; sends retry every tick
        transport.verify()

        if reminder_settings.METRICS_ENABLED:
            start_http_server(reminder_settings.METRICS_PORT)
            logger.info(f"📊 [WorkerProcess] Metrics exposed on :{reminder_settings.METRICS_PORT}")

        scheduler = ReminderScheduler(session_factory, transport)

        def _handle_signal(signum, frame):
            logger.info(f"🛑 [WorkerProcess] Signal {signum} received - finishing current send and stopping")
            scheduler.request_stop()

        signal.signal(signal.SIGINT, _handle_signal)
        signal.signal(signal.SIGTERM, _handle_signal)

        scheduler.run_forever()
    finally:
        engine.dispose()
        logger.info("🚪 [WorkerProcess] Exited")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
