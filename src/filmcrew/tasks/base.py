"""Task dataclasses and the task status state machine."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import AbstractSet, Any, Dict, Iterable, List, Optional, Tuple

from ..errors import TaskStateError


class TaskStatus(str, Enum):
    """Lifecycle states of a task."""

    PENDING = "pending"
    BLOCKED = "blocked"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)

    @property
    def is_waiting(self) -> bool:
        return self in (TaskStatus.PENDING, TaskStatus.BLOCKED)


def generate_task_id() -> str:
    return f"task_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}"


@dataclass(eq=False)
class Task:
    """A single unit of work targeted at an agent.

    ``params``, ``context`` and ``metadata`` are handed to the executor
    untouched. Only :class:`~filmcrew.tasks.queue.TaskQueue` should drive the
    status transitions once a task has been registered.
    """

    name: str = "Unnamed Task"
    agent_id: Optional[str] = None
    action: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    priority: int = 0
    dependencies: Tuple[str, ...] = ()
    context: Dict[str, Any] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=generate_task_id)
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        self.dependencies = tuple(self.dependencies)
        self.priority = int(self.priority)
        self.status = TaskStatus(self.status)

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "Task":
        known = {
            "id",
            "name",
            "description",
            "agent_id",
            "action",
            "params",
            "context",
            "metadata",
            "priority",
            "dependencies",
        }
        kwargs = {key: value for key, value in data.items() if key in known and value is not None}
        return cls(**kwargs)

    def dependencies_met(self, completed_ids: AbstractSet[str]) -> bool:
        return all(dep in completed_ids for dep in self.dependencies)

    def can_run(self, completed_ids: AbstractSet[str]) -> bool:
        """Return True when the task is waiting and every dependency completed."""
        return self.status.is_waiting and self.dependencies_met(completed_ids)

    def start(self) -> None:
        if self.status is not TaskStatus.PENDING:
            raise TaskStateError(f"Cannot start task {self.id} from status '{self.status.value}'")
        self.status = TaskStatus.RUNNING
        self.started_at = datetime.now()

    def complete(self, result: Any) -> None:
        self._ensure_open("complete")
        self.status = TaskStatus.COMPLETED
        self.result = result
        self.error = None
        self.completed_at = datetime.now()

    def fail(self, error: BaseException | str) -> None:
        self._ensure_open("fail")
        self.status = TaskStatus.FAILED
        self.error = str(error) or repr(error)
        self.result = None
        self.completed_at = datetime.now()

    def cancel(self) -> None:
        if not self.status.is_waiting:
            raise TaskStateError(f"Cannot cancel task {self.id} from status '{self.status.value}'")
        self.status = TaskStatus.CANCELLED
        self.completed_at = datetime.now()

    def _ensure_open(self, verb: str) -> None:
        if self.status.is_terminal:
            raise TaskStateError(f"Cannot {verb} task {self.id}: already {self.status.value}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "agent_id": self.agent_id,
            "action": self.action,
            "params": self.params,
            "status": self.status.value,
            "priority": self.priority,
            "dependencies": list(self.dependencies),
            "result": self.result,
            "error": self.error,
            "created_at": _isoformat(self.created_at),
            "started_at": _isoformat(self.started_at),
            "completed_at": _isoformat(self.completed_at),
        }


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Phase:
    """Named group of tasks inside a plan. Carries no ordering of its own."""

    name: str
    tasks: List[Task] = field(default_factory=list)


@dataclass
class Plan:
    """Phase-grouped bundle of tasks produced from a template."""

    description: str
    phases: List[Phase] = field(default_factory=list)
    id: str = field(default_factory=lambda: f"plan_{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}")

    @property
    def tasks(self) -> List[Task]:
        return [task for phase in self.phases for task in phase.tasks]

    def add_phase(self, name: str, tasks: Iterable[Task]) -> Phase:
        phase = Phase(name=name, tasks=list(tasks))
        self.phases.append(phase)
        return phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "phases": [
                {"name": phase.name, "tasks": [task.to_dict() for task in phase.tasks]}
                for phase in self.phases
            ],
        }


@dataclass
class TaskOutcome:
    """Result of running one task through an executor."""

    task: Task
    success: bool
    result: Any = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"task": self.task.to_dict(), "success": self.success}
        if self.success:
            data["result"] = self.result
        else:
            data["error"] = self.error
        return data


@dataclass
class ExecutionReport:
    """Outcomes of a drain plus the queue statistics afterwards."""

    results: List[TaskOutcome]
    stats: Dict[str, int]

    @property
    def succeeded(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.results if outcome.success]

    @property
    def failed(self) -> List[TaskOutcome]:
        return [outcome for outcome in self.results if not outcome.success]

    def to_dict(self) -> Dict[str, Any]:
        return {"results": [outcome.to_dict() for outcome in self.results], "stats": dict(self.stats)}
