from sqlalchemy import Column, String, DateTime, Index

from taskreminder.db.base import Base


class TaskNotification(Base):
    """Dedup record: the due date a task had when its reminder went out."""
    __tablename__ = "task_notifications"

    task_id = Column(String(36), primary_key=True)
    due_date = Column(DateTime(timezone=True), nullable=False)
    notified_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("ix_task_notifications_due_date", "due_date"),
    )
