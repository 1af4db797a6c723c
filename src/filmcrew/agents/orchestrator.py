"""Decomposes requests into tasks and drives the queue to completion."""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..tasks.base import ExecutionReport, Plan, Task, TaskOutcome, TaskStatus
from ..tasks.queue import TaskQueue
from ..tasks.runner import Executor
from .intent import RequestType, analyze_intent
from .registry import AgentLookup

logger = logging.getLogger(__name__)

DEFAULT_PRIORITIES: Dict[str, int] = {"high": 2, "medium": 1, "low": 0}

# (task name, agent id, action, params); "{description}" and "{project_name}"
# in string params are filled in by create_plan.
PlanStep = Tuple[str, str, str, Dict[str, Any]]

FILM_PLAN_TEMPLATE: Sequence[Tuple[str, Sequence[PlanStep]]] = (
    (
        "Pre-production",
        (
            ("Analyze requirement", "director", "analyze_requirement", {"description": "{description}"}),
            ("Create project", "director", "create_project", {"name": "{project_name}"}),
        ),
    ),
    (
        "Character design",
        (
            ("Design protagonist", "character", "create_character", {"type": "protagonist"}),
            ("Design supporting character", "character", "create_character", {"type": "supporting"}),
            ("Design antagonist", "character", "create_character", {"type": "antagonist"}),
        ),
    ),
    (
        "Scene design",
        (
            ("Design main scene", "scene", "create_scene", {"type": "main"}),
            ("Design secondary scene", "scene", "create_scene", {"type": "secondary"}),
        ),
    ),
    (
        "Storyboard",
        (
            ("Create storyboard", "storyboard", "create_storyboard", {}),
            ("Design key shots", "storyboard", "create_shot", {"type": "key"}),
        ),
    ),
    (
        "Image generation",
        (
            ("Generate character images", "comfyui", "execute_comfyui_workflow", {"type": "character"}),
            ("Generate scene images", "comfyui", "execute_comfyui_workflow", {"type": "scene"}),
            ("Generate storyboard frames", "comfyui", "execute_comfyui_workflow", {"type": "storyboard"}),
        ),
    ),
)


@dataclass
class TaskReceipt:
    """Acknowledgement returned to an agent that delegated work."""

    id: str
    target_agent: str
    status: str
    description: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "target_agent": self.target_agent,
            "status": self.status,
            "description": self.description,
            "created_at": self.created_at.isoformat(),
        }


class Orchestrator:
    """Turns requests into tasks and runs them through an executor.

    The agent registry only supplies default priorities and team summaries;
    the executor is passed to :meth:`execute` and does all the real work.
    """

    def __init__(
        self,
        registry: AgentLookup,
        queue: Optional[TaskQueue] = None,
        *,
        default_agent: str = "director",
        planner_agent: str = "director",
        priorities: Optional[Mapping[str, int]] = None,
    ) -> None:
        self.registry = registry
        self.queue = queue if queue is not None else TaskQueue()
        self.default_agent = default_agent
        self.planner_agent = planner_agent
        self.priorities = dict(priorities or DEFAULT_PRIORITIES)

    # -- task construction -------------------------------------------------

    def default_priority(self, agent_id: str) -> int:
        agent = self.registry.get(agent_id)
        return agent.priority if agent is not None else 0

    def _create_task(
        self,
        name: str,
        agent_id: str,
        action: str,
        params: Optional[Dict[str, Any]] = None,
        **options: Any,
    ) -> Task:
        options.setdefault("priority", self.default_priority(agent_id))
        return Task(name=name, agent_id=agent_id, action=action, params=params or {}, **options)

    def create_plan(
        self,
        description: str,
        project_name: Optional[str] = None,
        *,
        chain_phases: bool = False,
    ) -> Plan:
        """Expand a film request into the canned five-phase plan.

        Nothing is enqueued. Phases are grouping only unless ``chain_phases``
        is set, in which case every task depends on every task of the phase
        before it.
        """
        values = {"description": description, "project_name": project_name or "New project"}
        plan = Plan(description=description)
        previous: List[Task] = []
        for phase_name, steps in FILM_PLAN_TEMPLATE:
            dependencies = tuple(task.id for task in previous) if chain_phases else ()
            tasks = [
                self._create_task(
                    name,
                    agent_id,
                    action,
                    {key: _fill(value, values) for key, value in params.items()},
                    dependencies=dependencies,
                )
                for name, agent_id, action, params in steps
            ]
            plan.add_phase(phase_name, tasks)
            previous = tasks
        return plan

    def enqueue_plan(self, plan: Plan) -> List[Task]:
        return self.queue.add_all(plan.tasks)

    def decompose_request(self, message: str, context: Optional[Dict[str, Any]] = None) -> List[Task]:
        """Classify ``message`` and return the task(s) that handle it, unqueued."""
        context = context or {}
        intent = analyze_intent(message)
        logger.debug("Classified request as %s", intent.type.value)

        if intent.type is RequestType.CREATE_CHARACTER:
            task = self._create_task(
                f"Create character: {intent.name or 'new character'}",
                "character",
                "create_character",
                {"name": intent.name, "description": message},
            )
        elif intent.type is RequestType.CREATE_SCENE:
            task = self._create_task(
                f"Create scene: {intent.name or 'new scene'}",
                "scene",
                "create_scene",
                {"name": intent.name, "description": message},
            )
        elif intent.type is RequestType.CREATE_STORYBOARD:
            task = self._create_task("Create storyboard", "storyboard", "create_storyboard", {"description": message})
        elif intent.type is RequestType.GENERATE_IMAGE:
            task = self._create_task("Generate image", "comfyui", "execute_comfyui_workflow", {"prompt": message})
        elif intent.type is RequestType.COMPLEX:
            # The planner decomposes further once it runs.
            task = self._create_task(
                "Plan tasks", self.planner_agent, "plan_tasks", {"user_message": message, "context": context}
            )
        else:
            task = self._create_task(
                "Handle request", self.planner_agent, "handle_request", {"user_message": message, "context": context}
            )
        return [task]

    def submit_task(
        self,
        description: str,
        target_agent: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        priority: str = "medium",
        user_message: Optional[str] = None,
        delegated_at: Optional[str] = None,
    ) -> TaskReceipt:
        """Enqueue work one agent hands to another and acknowledge it."""
        if priority not in self.priorities:
            raise ValueError(f"Unknown priority '{priority}', expected one of {', '.join(self.priorities)}")
        task = Task(
            name=description,
            agent_id=target_agent or self.default_agent,
            action="handle_delegated_task",
            params={"description": description, "context": context or {}, "user_message": user_message},
            priority=self.priorities[priority],
            metadata={"delegated_at": delegated_at or datetime.now().isoformat()},
        )
        self.queue.add(task)
        logger.info("Delegated task %s to %s (%s)", task.id, task.agent_id, priority)
        return TaskReceipt(
            id=task.id,
            target_agent=task.agent_id or self.default_agent,
            status=task.status.value,
            description=task.name,
            created_at=task.created_at,
        )

    # -- execution ---------------------------------------------------------

    def execute(self, executor: Executor) -> ExecutionReport:
        """Run runnable tasks one at a time until none are left.

        A failing task does not stop the loop; its dependents simply stay
        blocked.
        """
        results: List[TaskOutcome] = []
        while True:
            task = self.queue.start_next()
            if task is None:
                break
            results.append(self._settle(task, lambda: executor.execute(task)))
        stats = self.queue.get_stats()
        logger.info("Execution finished: %d run, %d blocked", len(results), stats[TaskStatus.BLOCKED.value])
        return ExecutionReport(results=results, stats=stats)

    def execute_parallel(self, executor: Executor, max_workers: int = 4) -> ExecutionReport:
        """Dispatch independent runnable tasks concurrently.

        Tasks unblocked by a completion are picked up on the next pass; the
        loop ends once nothing is running and nothing is runnable.
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        results: List[TaskOutcome] = []
        inflight: Dict[Future, Task] = {}
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="filmcrew-task") as pool:
            while True:
                for candidate in self.queue.get_all_runnable():
                    if len(inflight) >= max_workers:
                        break
                    task = self.queue.claim(candidate.id)
                    if task is None:
                        continue
                    inflight[pool.submit(executor.execute, task)] = task
                if not inflight:
                    break
                done, _ = wait(inflight, return_when=FIRST_COMPLETED)
                for future in done:
                    task = inflight.pop(future)
                    results.append(self._settle(task, future.result))
        stats = self.queue.get_stats()
        logger.info("Parallel execution finished: %d run, %d blocked", len(results), stats[TaskStatus.BLOCKED.value])
        return ExecutionReport(results=results, stats=stats)

    def _settle(self, task: Task, run: Callable[[], Any]) -> TaskOutcome:
        try:
            result = run()
        except Exception as exc:
            return self._record_failure(task, exc)
        if isinstance(result, BaseException):
            return self._record_failure(task, result)
        self.queue.mark_completed(task.id, result)
        return TaskOutcome(task=task, success=True, result=result)

    def _record_failure(self, task: Task, error: BaseException) -> TaskOutcome:
        logger.warning("Task %s (%s.%s) failed: %s", task.id, task.agent_id, task.action, error)
        self.queue.mark_failed(task.id, error)
        return TaskOutcome(task=task, success=False, error=task.error)

    # -- read-only views ---------------------------------------------------

    def get_team_description(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": agent.id,
                "name": agent.name,
                "role": agent.role,
                "capabilities": list(agent.capabilities),
                "description": agent.description,
            }
            for agent in self.registry.get_all()
        ]

    def get_team_prompt(self) -> str:
        lines = ["## Your team", "", "You can collaborate with these team members:", ""]
        for agent in self.registry.get_all():
            lines.append(f"### {agent.name} ({agent.id})")
            lines.append(f"- Role: {agent.role}")
            lines.append(f"- Capabilities: {', '.join(agent.capabilities)}")
            lines.append(f"- About: {agent.description}")
            lines.append("")
        lines.append("When a task needs a specialist, delegate it to the matching team member.")
        return "\n".join(lines)

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        task = self.queue.get(task_id)
        return task.to_dict() if task is not None else None

    def get_all_tasks(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        tasks = self.queue.get_all()
        if status is not None:
            tasks = [task for task in tasks if task.status.value == status]
        if limit is not None:
            tasks = tasks[:limit]
        return [task.to_dict() for task in tasks]

    def get_stats(self) -> Dict[str, int]:
        return self.queue.get_stats()

    def cancel_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        task = self.queue.cancel(task_id)
        return task.to_dict() if task is not None else None


def _fill(value: Any, values: Mapping[str, str]) -> Any:
    if isinstance(value, str):
        return value.format(**values)
    return value
