import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from taskreminder.models.task import Task
from taskreminder.reminders.tracker import clear_notification
from taskreminder.schemas.task import TaskCreate, TaskUpdate
from taskreminder.utils.timezone import to_utc_aware

logger = logging.getLogger(__name__)


class CRUDTask:
    def create(self, db: Session, *, obj_in: TaskCreate) -> Task:
        db_obj = Task(
            title=obj_in.title,
            description=obj_in.description,
            due_date=to_utc_aware(obj_in.due_date),
            email=obj_in.email,
            timezone=obj_in.timezone,
        )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(
            f"[TaskStore] Task created: {db_obj.title}, Due: {to_utc_aware(db_obj.due_date).isoformat()}, "
            f"Timezone: {db_obj.timezone}"
        )
        return db_obj

    def get(self, db: Session, id: str) -> Optional[Task]:
        return db.query(Task).filter(Task.id == id).first()

    def get_all(self, db: Session) -> List[Task]:
        return db.query(Task).all()

    def get_due_between(self, db: Session, *, start: datetime, end: datetime) -> List[Task]:
        """Tasks due inside [start, end], both ends inclusive."""
        return (
            db.query(Task)
            .filter(Task.due_date >= to_utc_aware(start), Task.due_date <= to_utc_aware(end))
            .all()
        )

    def update(self, db: Session, *, id: str, obj_in: TaskUpdate) -> Optional[Task]:
        db_obj = self.get(db, id)
        if not db_obj:
            return None
        update_data = obj_in.model_dump()
        update_data["due_date"] = to_utc_aware(update_data["due_date"])
        for field, value in update_data.items():
            setattr(db_obj, field, value)
        db.add(db_obj)
        # Any edit makes the task eligible for a fresh reminder
        clear_notification(db, id)
        db.commit()
        db.refresh(db_obj)
        logger.info(
            f"[TaskStore] Task updated: {db_obj.title}, Due: {to_utc_aware(db_obj.due_date).isoformat()}, "
            f"Timezone: {db_obj.timezone}"
        )
        return db_obj

    def remove(self, db: Session, *, id: str) -> Optional[Task]:
        db_obj = self.get(db, id)
        if not db_obj:
            return None
        db.delete(db_obj)
        clear_notification(db, id)
        db.commit()
        logger.info(f"[TaskStore] Task deleted: {db_obj.title}")
        return db_obj


# Create instance that can be imported directly
task = CRUDTask()
