from datetime import timedelta
from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings

from taskreminder.core.config import settings as core_settings


class ReminderSettings(BaseSettings):
    # Scheduling
    SCAN_INTERVAL_SECONDS: int = 600
    HORIZON_SECONDS: int = 24 * 60 * 60
    MISFIRE_GRACE_SECONDS: int = 60
    WORKER_CONCURRENCY: int = 1

    # Dispatch
    DEFAULT_TIMEZONE: Optional[str] = None  # falls back to the global DEFAULT_TIMEZONE
    ADDRESS_PATTERN: str = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
    SEND_TIMEOUT_SECONDS: int = 30
    SUBJECT_TEMPLATE: str = 'Reminder: Task "{title}" is due soon!'
    BODY_TEMPLATE: str = 'Task "{title}" is due at {due}. Description: {description}'

    # Metrics
    METRICS_ENABLED: bool = False
    METRICS_PORT: int = 9108

    @model_validator(mode="after")
    def _check_window(self) -> "ReminderSettings":
        if self.SCAN_INTERVAL_SECONDS <= 0:
            raise ValueError("SCAN_INTERVAL_SECONDS must be positive")
        # A task has to be scanned more than once before it falls due
        if self.HORIZON_SECONDS <= self.SCAN_INTERVAL_SECONDS:
            raise ValueError("HORIZON_SECONDS must exceed SCAN_INTERVAL_SECONDS")
        if self.WORKER_CONCURRENCY < 1:
            raise ValueError("WORKER_CONCURRENCY must be at least 1")
        if not self.DEFAULT_TIMEZONE:
            self.DEFAULT_TIMEZONE = core_settings.DEFAULT_TIMEZONE
        return self

    @property
    def cadence(self) -> timedelta:
        return timedelta(seconds=self.SCAN_INTERVAL_SECONDS)

    @property
    def horizon(self) -> timedelta:
        return timedelta(seconds=self.HORIZON_SECONDS)

    class Config:
        env_prefix = "REMINDER_"
        env_file = ".env"
        extra = "ignore"


settings = ReminderSettings()
