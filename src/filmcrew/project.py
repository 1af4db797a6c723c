"""Builds a ready-to-run orchestrator from a project configuration."""

from __future__ import annotations

from typing import List

from .agents.orchestrator import Orchestrator
from .agents.registry import AgentRegistry
from .config import ProjectConfig, instantiate_from_path
from .errors import ConfigError
from .tasks.base import Task
from .tasks.queue import TaskQueue
from .tasks.runner import Executor


def build_registry(config: ProjectConfig) -> AgentRegistry:
    registry = AgentRegistry(config.agents.paths, include_presets=config.agents.include_presets)
    return registry.load_all()


def build_orchestrator(config: ProjectConfig, registry: AgentRegistry | None = None) -> Orchestrator:
    spec = config.orchestrator
    return Orchestrator(
        registry if registry is not None else build_registry(config),
        TaskQueue(),
        default_agent=spec.default_agent,
        planner_agent=spec.planner_agent,
        priorities=spec.priorities,
    )


def build_executor(config: ProjectConfig) -> Executor:
    executor = instantiate_from_path(config.executor, **config.executor_params)
    if not callable(getattr(executor, "execute", None)):
        raise ConfigError(f"Executor '{config.executor}' has no execute(task) method")
    return executor


def enqueue_config_tasks(config: ProjectConfig, orchestrator: Orchestrator) -> List[Task]:
    """Add the tasks declared in the config, defaulting priority from the agent."""
    tasks = [
        Task(
            id=spec.id,
            name=spec.name or spec.id,
            description=spec.description,
            agent_id=spec.agent,
            action=spec.action,
            params=spec.params,
            priority=spec.priority if spec.priority is not None else orchestrator.default_priority(spec.agent),
            dependencies=tuple(spec.dependencies),
        )
        for spec in config.tasks
    ]
    return orchestrator.queue.add_all(tasks)
