from datetime import datetime, timedelta
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from taskreminder.crud.task import task as crud_task
from taskreminder.schemas.task import Task
from taskreminder.utils.timezone import to_utc_aware
from .exceptions import QueryError


def due_window(now: datetime, horizon: timedelta) -> tuple[datetime, datetime]:
    start = to_utc_aware(now)
    return start, start + horizon


def find_due_soon(session_factory: sessionmaker, now: datetime, horizon: timedelta) -> List[Task]:
    """
    Every stored task with now <= due_date <= now + horizon.
    Closed on both ends so a task landing exactly on a tick boundary is never skipped.
    Results are detached snapshots in store order.
    """
    start, end = due_window(now, horizon)
    db = session_factory()
    try:
        rows = crud_task.get_due_between(db, start=start, end=end)
        return [Task.model_validate(row) for row in rows]
    except SQLAlchemyError as e:
        raise QueryError(f"due-window query failed: {e}") from e
    finally:
        db.close()
