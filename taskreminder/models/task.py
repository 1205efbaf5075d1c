from datetime import datetime
import uuid

from sqlalchemy import Column, String, Text, DateTime

from taskreminder.reminders.config import settings as reminder_settings
from taskreminder.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def _default_timezone() -> str:
    return reminder_settings.DEFAULT_TIMEZONE


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    due_date = Column(DateTime(timezone=True), nullable=False, index=True)  # always stored as UTC
    email = Column(String, nullable=False)
    timezone = Column(String, nullable=False, default=_default_timezone)  # display only
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
