import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import sessionmaker

from taskreminder.schemas.task import Task
from taskreminder.utils.timezone import now_utc, to_utc_aware
from .config import ReminderSettings, settings as default_settings
from .exceptions import QueryError, TransportError
from .metrics import (
    reminders_already_notified_total,
    reminders_dispatch_failed_total,
    reminders_dispatch_success_total,
    reminders_invalid_recipient_total,
    scheduler_query_failures_total,
    scheduler_ticks_skipped_total,
    scheduler_ticks_total,
)
from .policy import Decision, SkipAlreadyNotified, SkipInvalidAddress, should_notify
from .repository import find_due_soon
from .tracker import NotificationTracker

logger = logging.getLogger(__name__)

JOB_ID = "scan-and-dispatch"


class Outcome(str, Enum):
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class TickResult:
    started_at: datetime
    due: int = 0
    decisions: Dict[str, Decision] = field(default_factory=dict)
    outcomes: Dict[str, Outcome] = field(default_factory=dict)
    aborted: bool = False
    interrupted: bool = False

    def ids_with(self, outcome: Outcome) -> List[str]:
        return [task_id for task_id, o in self.outcomes.items() if o == outcome]

    @property
    def sent(self) -> List[str]:
        return self.ids_with(Outcome.SENT)

    @property
    def failed(self) -> List[str]:
        return self.ids_with(Outcome.FAILED)


class ReminderScheduler:
    """
    Recurring driver for reminder e-mails.

    Each tick captures one `now`, loads the tasks due within the horizon, runs the
    dispatch policy on each, sends through the transport and records successful
    sends with the tracker. Ticks never overlap: a tick that fires while another is
    still running is skipped. A failed send leaves no record, so the task is
    retried by the next tick.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        transport,
        tracker: Optional[NotificationTracker] = None,
        reminder_settings: Optional[ReminderSettings] = None,
        clock: Callable[[], datetime] = now_utc,
        sender: Optional[str] = None,
    ):
        self.session_factory = session_factory
        self.transport = transport
        self.tracker = tracker or NotificationTracker(session_factory)
        self.settings = reminder_settings or default_settings
        self.clock = clock
        self.sender = sender

        self._tick_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._scheduler: Optional[BackgroundScheduler] = None

    # --- one tick ---
    def tick(self, now: Optional[datetime] = None) -> Optional[TickResult]:
        if not self._tick_lock.acquire(blocking=False):
            logger.warning("⚠️ [Scheduler] Previous tick still running - skipping this one")
            scheduler_ticks_skipped_total.inc()
            return None
        try:
            return self._run_tick(to_utc_aware(now or self.clock()))
        finally:
            self._tick_lock.release()

    def _run_tick(self, now: datetime) -> TickResult:
        result = TickResult(started_at=now)
        scheduler_ticks_total.inc()
        logger.info(f"⏰ [Scheduler] Tick running at: {now.isoformat()} (UTC)")

        try:
            tasks = find_due_soon(self.session_factory, now, self.settings.horizon)
        except QueryError:
            logger.exception("❌ [Scheduler] Could not load due tasks - abandoning this tick")
            scheduler_query_failures_total.inc()
            result.aborted = True
            return result

        result.due = len(tasks)
        logger.info(f"🔍 [Scheduler] Tasks due within {self.settings.horizon} (UTC): {len(tasks)}")

        if self.settings.WORKER_CONCURRENCY > 1 and len(tasks) > 1:
            self._process_parallel(tasks, now, result)
        else:
            for task in tasks:
                if self._stop_event.is_set():
                    result.interrupted = True
                    break
                self._collect(result, task, self._process_task(task, now))

        if result.interrupted:
            logger.info("🛑 [Scheduler] Stop requested - leaving remaining tasks for the next run")
        logger.info(f"📬 [Scheduler] Tick done: {len(result.sent)} sent, {len(result.failed)} failed")

        self._prune(now)
        return result

    def _process_parallel(self, tasks: List[Task], now: datetime, result: TickResult) -> None:
        with ThreadPoolExecutor(max_workers=self.settings.WORKER_CONCURRENCY) as pool:
            futures = {pool.submit(self._process_unless_stopping, task, now): task for task in tasks}
            for future in as_completed(futures):
                task = futures[future]
                processed = future.result()
                if processed is None:
                    result.interrupted = True
                    continue
                self._collect(result, task, processed)

    def _process_unless_stopping(self, task: Task, now: datetime) -> Optional[Tuple[Optional[Decision], Outcome]]:
        if self._stop_event.is_set():
            return None
        return self._process_task(task, now)

    @staticmethod
    def _collect(result: TickResult, task: Task, processed: Tuple[Optional[Decision], Outcome]) -> None:
        decision, outcome = processed
        if decision is not None:
            result.decisions[task.id] = decision
        result.outcomes[task.id] = outcome

    def _process_task(self, task: Task, now: datetime) -> Tuple[Optional[Decision], Outcome]:
        """Policy, send and record for one task. Never raises."""
        try:
            decision = should_notify(task, self.tracker.was_notified, self.settings)
        except Exception:
            logger.exception(f"❌ [Scheduler] Could not evaluate task {task.id} ({task.title})")
            return None, Outcome.ERROR

        if isinstance(decision, SkipInvalidAddress):
            logger.warning(f"⚠️ [Dispatch] Invalid email for task: {task.title} ({decision.address!r})")
            reminders_invalid_recipient_total.inc()
            return decision, Outcome.SKIPPED

        if isinstance(decision, SkipAlreadyNotified):
            logger.debug(f"[Dispatch] Reminder already sent for task: {task.title}")
            reminders_already_notified_total.inc()
            return decision, Outcome.SKIPPED

        message = decision.message
        try:
            self.transport.send(self.sender, message.to, message.subject, message.body)
        except TransportError as e:
            logger.error(f"❌ [Dispatch] Failed to send reminder for task: {task.title}: {e}")
            reminders_dispatch_failed_total.inc()
            return decision, Outcome.FAILED
        except Exception:
            logger.exception(f"❌ [Dispatch] Transport error for task: {task.title}")
            reminders_dispatch_failed_total.inc()
            return decision, Outcome.FAILED

        reminders_dispatch_success_total.inc()
        logger.info(
            f"✅ [Dispatch] Reminder sent for task: {task.title}, Due: {message.local_due} "
            f"({message.zone}), Email: {message.to}"
        )
        try:
            self.tracker.record(task.id, task.due_date, now)
        except Exception:
            # The mail is out; without a record the next tick will send it again
            logger.exception(f"❌ [Scheduler] Reminder sent but not recorded for task {task.id}")
        return decision, Outcome.SENT

    def _prune(self, now: datetime) -> None:
        try:
            self.tracker.prune(now, self.settings.horizon)
        except Exception:
            logger.exception("❌ [Scheduler] Pruning notification records failed")

    # --- recurring driver ---
    def start(self, run_immediately: bool = True) -> None:
        if self._scheduler is not None:
            logger.info("[Scheduler] Already running, skipping start")
            return
        self._stop_event.clear()
        self._scheduler = BackgroundScheduler(
            timezone="UTC",
            job_defaults={
                "coalesce": True,  # Combine missed runs into one
                "max_instances": 1,  # Only one tick at a time
                "misfire_grace_time": self.settings.MISFIRE_GRACE_SECONDS,
            },
        )
        job_kwargs = {}
        if run_immediately:
            job_kwargs["next_run_time"] = datetime.now(dt_timezone.utc)
        self._scheduler.add_job(
            self.tick,
            trigger=IntervalTrigger(seconds=self.settings.SCAN_INTERVAL_SECONDS),
            id=JOB_ID,
            replace_existing=True,
            **job_kwargs,
        )
        self._scheduler.start()
        logger.info(
            f"🚀 [Scheduler] Started: scanning every {self.settings.cadence} "
            f"for tasks due within {self.settings.horizon}"
        )

    def request_stop(self) -> None:
        """Ask the running tick to stop after its current send; safe from signal handlers."""
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def shutdown(self, wait: bool = True) -> None:
        self._stop_event.set()
        if self._scheduler is not None:
            if self._scheduler.running:
                # Waits for an in-flight tick to return
                self._scheduler.shutdown(wait=wait)
            self._scheduler = None
        logger.info("🛑 [Scheduler] Stopped")

    def run_forever(self, poll_seconds: float = 1.0) -> None:
        self.start()
        try:
            while not self._stop_event.wait(timeout=poll_seconds):
                pass
        finally:
            self.shutdown(wait=True)
