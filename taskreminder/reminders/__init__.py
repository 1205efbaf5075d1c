"""Reminder engine (due-window scan, dispatch policy, dedup tracking, scheduler).

Runs as a long-lived background worker next to the task store. Every tick it
looks for tasks falling due within the horizon and e-mails their owners once
per due date.
"""
