import re
from datetime import datetime, date, timezone as dt_timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from taskreminder.reminders.config import settings as reminder_settings
from taskreminder.utils.timezone import now_utc, resolve_zone, to_utc_aware


def is_valid_email(email: Any, pattern: Optional[str] = None) -> bool:
    if not isinstance(email, str):
        return False
    # Whole-string match: `$` alone would accept a trailing newline
    return re.fullmatch(pattern or reminder_settings.ADDRESS_PATTERN, email) is not None


def parse_due_date(value: Any) -> datetime:
    """
    Coerce a client-supplied due date to a UTC-aware instant.
    Anything that cannot be read as a point in time becomes "now".
    """
    if isinstance(value, datetime):
        return to_utc_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=dt_timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Epoch milliseconds, as JavaScript clients send them
        try:
            return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)
        except (OverflowError, OSError, ValueError):
            return now_utc()
    if isinstance(value, str):
        try:
            return to_utc_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return now_utc()
    return now_utc()


class TaskBase(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    due_date: datetime
    email: str = Field(..., min_length=1)
    timezone: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("title", "description", "email", mode="before")
    @classmethod
    def strip_required(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("email")
    @classmethod
    def email_shape(cls, v: str) -> str:
        if not is_valid_email(v):
            raise ValueError("invalid email address")
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def coerce_due_date(cls, v: Any) -> datetime:
        if v is None or (isinstance(v, str) and v.strip() == ""):
            raise ValueError("due_date is required")
        return parse_due_date(v)

    @field_validator("timezone", mode="before")
    @classmethod
    def known_timezone(cls, v: Any) -> str:
        return resolve_zone(v if isinstance(v, str) else None, reminder_settings.DEFAULT_TIMEZONE)


class TaskCreate(TaskBase):
    pass


class TaskUpdate(TaskBase):
    pass


class Task(BaseModel):
    """Read snapshot of a stored task, detached from any session."""
    id: str
    title: str
    description: str
    due_date: datetime
    email: str
    timezone: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("due_date", "created_at", "updated_at", mode="after")
    @classmethod
    def as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_utc_aware(v)

    class Config:
        from_attributes = True
