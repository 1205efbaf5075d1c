import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from taskreminder.models.notification import TaskNotification
from taskreminder.utils.timezone import now_utc, to_utc_aware

logger = logging.getLogger(__name__)


def clear_notification(db: Session, task_id: str) -> int:
    """Delete the record for `task_id` inside the caller's transaction; the caller commits."""
    return (
        db.query(TaskNotification)
        .filter(TaskNotification.task_id == task_id)
        .delete(synchronize_session=False)
    )


class NotificationTracker:
    """
    Remembers which due date each task was last reminded about.

    Records live in the `task_notifications` table so a restarted worker does not
    resend reminders it already delivered. Every call uses its own short session,
    so concurrent workers can upsert different task ids safely.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def record(self, task_id: str, due_date_at_send: datetime, notified_at: Optional[datetime] = None) -> None:
        db = self.session_factory()
        try:
            db.merge(
                TaskNotification(
                    task_id=task_id,
                    due_date=to_utc_aware(due_date_at_send),
                    notified_at=to_utc_aware(notified_at) or now_utc(),
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def was_notified(self, task_id: str, current_due_date: datetime) -> bool:
        db = self.session_factory()
        try:
            rec = db.get(TaskNotification, task_id)
            if rec is None:
                return False
            return to_utc_aware(rec.due_date) == to_utc_aware(current_due_date)
        finally:
            db.close()

    def invalidate(self, task_id: str) -> None:
        db = self.session_factory()
        try:
            clear_notification(db, task_id)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def prune(self, now: datetime, horizon: timedelta) -> int:
        """Drop records whose due date is more than `horizon` in the past."""
        cutoff = to_utc_aware(now) - horizon
        db = self.session_factory()
        try:
            removed = (
                db.query(TaskNotification)
                .filter(TaskNotification.due_date < cutoff)
                .delete(synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        if removed:
            logger.debug(f"[Tracker] Pruned {removed} stale notification records")
        return removed
