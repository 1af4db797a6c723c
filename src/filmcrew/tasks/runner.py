"""Executors that carry out a task's action."""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple

from ..errors import UnknownActionError
from .base import Task

Handler = Callable[[Task], Any]


class Executor(Protocol):
    """Performs one task and returns its result, raising on failure."""

    def execute(self, task: Task) -> Any:  # pragma: no cover - interface
        ...


class ActionExecutor:
    """Dispatches tasks to handlers registered per agent and action.

    A handler registered for a specific ``(agent_id, action)`` pair wins over
    one registered for the action alone. Tasks with no matching handler raise
    :class:`UnknownActionError`, which the orchestrator records as an
    ordinary failure.
    """

    def __init__(self, handlers: Optional[Mapping[str, Handler]] = None) -> None:
        self._handlers: Dict[Tuple[Optional[str], str], Handler] = {}
        for action, handler in (handlers or {}).items():
            self.register(action, handler)

    def register(
        self,
        action: str,
        handler: Handler,
        *,
        agent_id: Optional[str] = None,
        overwrite: bool = False,
    ) -> None:
        key = (agent_id, action)
        if key in self._handlers and not overwrite:
            target = f"{agent_id}:{action}" if agent_id else action
            raise ValueError(f"Handler for {target} already registered")
        self._handlers[key] = handler

    def handler_for(self, task: Task) -> Handler:
        if task.action is None:
            raise UnknownActionError(f"Task {task.id} has no action")
        handler = self._handlers.get((task.agent_id, task.action)) or self._handlers.get((None, task.action))
        if handler is None:
            raise UnknownActionError(f"Agent '{task.agent_id}' has no handler for action '{task.action}'")
        return handler

    def __contains__(self, action: str) -> bool:
        return any(key[1] == action for key in self._handlers)

    def execute(self, task: Task) -> Any:
        return self.handler_for(task)(task)


class EchoExecutor:
    """Executor that reports what it would have done (useful for dry runs and tests)."""

    def __init__(self, prefix: str = "done") -> None:
        self.prefix = prefix
        self.executed: list[str] = []

    def execute(self, task: Task) -> str:
        self.executed.append(task.id)
        return f"{self.prefix}: {task.agent_id}.{task.action}({task.name})"
