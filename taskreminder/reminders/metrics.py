from prometheus_client import Counter


scheduler_ticks_total = Counter(
    "reminder_scheduler_ticks_total",
    "Total scheduler scan cycles",
)

scheduler_ticks_skipped_total = Counter(
    "reminder_scheduler_ticks_skipped_total",
    "Ticks skipped because the previous tick was still running",
)

scheduler_query_failures_total = Counter(
    "reminder_scheduler_query_failures_total",
    "Ticks aborted because the task store could not be scanned",
)

reminders_dispatch_success_total = Counter(
    "reminders_dispatch_success_total",
    "Total reminders handed to the transport",
)

reminders_dispatch_failed_total = Counter(
    "reminders_dispatch_failed_total",
    "Total failed reminder sends",
)

reminders_invalid_recipient_total = Counter(
    "reminders_invalid_recipient_total",
    "Due tasks skipped because of an invalid recipient address",
)

reminders_already_notified_total = Counter(
    "reminders_already_notified_total",
    "Due tasks skipped because their reminder was already sent",
)
