"""Task primitives."""

from .base import ExecutionReport, Phase, Plan, Task, TaskOutcome, TaskStatus
from .queue import TaskQueue
from .runner import ActionExecutor, EchoExecutor, Executor

__all__ = [
    "ActionExecutor",
    "EchoExecutor",
    "ExecutionReport",
    "Executor",
    "Phase",
    "Plan",
    "Task",
    "TaskOutcome",
    "TaskQueue",
    "TaskStatus",
]
