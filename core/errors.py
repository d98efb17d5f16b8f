"""Exception types shared by the planner services."""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner errors."""


class InvalidTaskError(PlannerError, ValueError):
    """Raised when task input is malformed (bad date, time or recurrence)."""


class TaskNotFoundError(PlannerError, LookupError):
    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TransportError(PlannerError):
    """Raised by chat transports when a message could not be handed off."""


__all__ = ["PlannerError", "InvalidTaskError", "TaskNotFoundError", "TransportError"]
