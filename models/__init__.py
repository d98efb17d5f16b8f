"""ORM models exposed by the Planner application."""
from .task import OccurrenceCompletion, Task
from .family import Category, Helper, Member
from .notification_log import NotificationLogEntry, ReminderClaim

__all__ = [
    "Task",
    "OccurrenceCompletion",
    "Member",
    "Category",
    "Helper",
    "NotificationLogEntry",
    "ReminderClaim",
]
