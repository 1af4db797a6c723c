"""Dependency-aware task orchestration for a film production agent team."""

from importlib import metadata

from .agents import AgentDefinition, AgentRegistry, Orchestrator, TaskReceipt
from .errors import ConfigError, FilmcrewError, TaskStateError, UnknownActionError
from .tasks import (
    ActionExecutor,
    EchoExecutor,
    ExecutionReport,
    Executor,
    Phase,
    Plan,
    Task,
    TaskOutcome,
    TaskQueue,
    TaskStatus,
)

try:
    __version__ = metadata.version("filmcrew")
except metadata.PackageNotFoundError:  # pragma: no cover - fallback for dev
    __version__ = "0.0.0"

__all__ = [
    "ActionExecutor",
    "AgentDefinition",
    "AgentRegistry",
    "ConfigError",
    "EchoExecutor",
    "ExecutionReport",
    "Executor",
    "FilmcrewError",
    "Orchestrator",
    "Phase",
    "Plan",
    "Task",
    "TaskOutcome",
    "TaskQueue",
    "TaskReceipt",
    "TaskStateError",
    "TaskStatus",
    "UnknownActionError",
    "__version__",
]
