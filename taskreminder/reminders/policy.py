"""
Dispatch policy: decide, per due task, whether a reminder goes out and what it says.

The policy only reads. Sending and dedup bookkeeping belong to the scheduler.
"""
from dataclasses import dataclass
from typing import Callable, Optional, Union

from taskreminder.schemas.task import Task, is_valid_email
from taskreminder.utils.timezone import format_local, resolve_zone
from .config import ReminderSettings, settings as default_settings
from .exceptions import InvalidRecipient


@dataclass(frozen=True)
class ReminderMessage:
    to: str
    subject: str
    body: str
    zone: str
    local_due: str


@dataclass(frozen=True)
class Send:
    message: ReminderMessage


@dataclass(frozen=True)
class SkipInvalidAddress:
    address: str


@dataclass(frozen=True)
class SkipAlreadyNotified:
    pass


Decision = Union[Send, SkipInvalidAddress, SkipAlreadyNotified]

# (task_id, current_due_date) -> already reminded about this due date?
NotifiedLookup = Callable[..., bool]


def check_recipient(address: str, pattern: Optional[str] = None) -> None:
    if not is_valid_email(address, pattern):
        raise InvalidRecipient(address)


def build_message(task: Task, reminder_settings: Optional[ReminderSettings] = None) -> ReminderMessage:
    cfg = reminder_settings or default_settings
    zone = resolve_zone(task.timezone, cfg.DEFAULT_TIMEZONE)
    local_due = format_local(task.due_date, zone)
    fields = {"title": task.title, "description": task.description, "due": local_due}
    return ReminderMessage(
        to=task.email,
        subject=cfg.SUBJECT_TEMPLATE.format(**fields),
        body=cfg.BODY_TEMPLATE.format(**fields),
        zone=zone,
        local_due=local_due,
    )


def should_notify(
    task: Task,
    was_notified: NotifiedLookup,
    reminder_settings: Optional[ReminderSettings] = None,
) -> Decision:
    cfg = reminder_settings or default_settings
    try:
        check_recipient(task.email, cfg.ADDRESS_PATTERN)
    except InvalidRecipient as e:
        return SkipInvalidAddress(address=e.address)
    if was_notified(task.id, task.due_date):
        return SkipAlreadyNotified()
    return Send(message=build_message(task, cfg))
