"""Dependency-aware in-memory task queue."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple, Union

from .base import Task, TaskStatus

logger = logging.getLogger(__name__)

Listener = Callable[[str, Optional[Task]], None]
TaskLike = Union[Task, Mapping[str, Any]]

WILDCARD = "*"


class TaskQueue:
    """Registry of tasks that decides which ones may run next.

    Runnability is never cached on the task: it is recomputed from the task's
    dependencies against the live set of completed ids. The stored ``status``
    is refreshed by :meth:`add`, :meth:`mark_completed` and when a task is
    started.

    Every mutating method holds one re-entrant lock, including while
    listeners are notified, so concurrent completions cannot unblock the same
    dependent twice. Listeners observe; they must not call back into the
    queue's mutating methods from another thread.
    """

    def __init__(self) -> None:
        self._tasks: Dict[str, Task] = {}
        self._completed_ids: Set[str] = set()
        self._listeners: List[Tuple[str, Listener]] = []
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    @property
    def completed_ids(self) -> frozenset[str]:
        return frozenset(self._completed_ids)

    def add(self, task: TaskLike) -> Task:
        if not isinstance(task, Task):
            task = Task.from_mapping(dict(task))
        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"Task {task.id} already registered")
            self._tasks[task.id] = task
            if task.dependencies and not task.dependencies_met(self._completed_ids):
                task.status = TaskStatus.BLOCKED
            else:
                task.status = TaskStatus.PENDING
            logger.debug("Added task %s (%s, priority=%d)", task.id, task.status.value, task.priority)
            self._emit("task:added", task)
        return task

    def add_all(self, tasks: Iterable[TaskLike]) -> List[Task]:
        with self._lock:
            return [self.add(task) for task in tasks]

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def get_all(self) -> List[Task]:
        with self._lock:
            return list(self._tasks.values())

    def _runnable(self) -> List[Task]:
        # sorted() is stable, so equal priorities keep insertion order
        candidates = [task for task in self._tasks.values() if task.can_run(self._completed_ids)]
        return sorted(candidates, key=lambda task: -task.priority)

    def get_next_runnable(self) -> Optional[Task]:
        with self._lock:
            runnable = self._runnable()
        return runnable[0] if runnable else None

    def get_all_runnable(self) -> List[Task]:
        with self._lock:
            return self._runnable()

    def start(self, task_id: str) -> Optional[Task]:
        """Move a runnable task to ``running``."""
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            return self._start(task)

    def claim(self, task_id: str) -> Optional[Task]:
        """Start ``task_id`` only if it is still runnable, else return None.

        Selection and the transition happen under one lock acquisition, so a
        task cancelled or taken by another worker in the meantime is skipped
        instead of raising.
        """
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None or not task.can_run(self._completed_ids):
                return None
            return self._start(task)

    def start_next(self) -> Optional[Task]:
        """Atomically pick the highest-priority runnable task and start it."""
        with self._lock:
            for task in self._runnable():
                claimed = self.claim(task.id)
                if claimed is not None:
                    return claimed
        return None

    def _start(self, task: Task) -> Task:
        if task.status is TaskStatus.BLOCKED and task.dependencies_met(self._completed_ids):
            task.status = TaskStatus.PENDING
            logger.debug("Unblocked task %s", task.id)
            self._emit("task:unblocked", task)
        task.start()
        logger.debug("Started task %s", task.id)
        self._emit("task:started", task)
        return task

    def mark_completed(self, task_id: str, result: Any = None) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.complete(result)
            self._completed_ids.add(task_id)
            self._unblock_dependents()
            logger.debug("Completed task %s", task_id)
            self._emit("task:completed", task)
        return task

    def mark_failed(self, task_id: str, error: BaseException | str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.fail(error)
            logger.debug("Failed task %s: %s", task_id, task.error)
            self._emit("task:failed", task)
        return task

    def cancel(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                return None
            task.cancel()
            logger.debug("Cancelled task %s", task_id)
            self._emit("task:cancelled", task)
        return task

    def _unblock_dependents(self) -> None:
        for task in self._tasks.values():
            if task.status is TaskStatus.BLOCKED and task.dependencies_met(self._completed_ids):
                task.status = TaskStatus.PENDING
                logger.debug("Unblocked task %s", task.id)
                self._emit("task:unblocked", task)

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            tasks = list(self._tasks.values())
        stats = {"total": len(tasks)}
        for status in TaskStatus:
            stats[status.value] = sum(1 for task in tasks if task.status is status)
        return stats

    def clear(self) -> None:
        with self._lock:
            self._tasks.clear()
            self._completed_ids.clear()
            self._emit("queue:cleared", None)

    def on(self, event: str, callback: Listener) -> Callable[[], None]:
        """Register ``callback(event, task)`` for ``event`` or ``"*"``.

        Returns a callable that removes the listener again.
        """
        entry = (event, callback)
        with self._lock:
            self._listeners.append(entry)

        def unsubscribe() -> None:
            with self._lock:
                if entry in self._listeners:
                    self._listeners.remove(entry)

        return unsubscribe

    def _emit(self, event: str, task: Optional[Task]) -> None:
        for name, callback in list(self._listeners):
            if name != event and name != WILDCARD:
                continue
            try:
                callback(event, task)
            except Exception:
                logger.exception("Listener for %s raised", event)
