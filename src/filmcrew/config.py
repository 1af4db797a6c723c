"""Configuration helpers for filmcrew projects."""

from __future__ import annotations

import importlib
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Set

import yaml

from .errors import ConfigError

DEFAULT_EXECUTOR = "filmcrew.tasks.runner:EchoExecutor"


@dataclass
class AgentsSpec:
    """Where agent definitions are loaded from."""

    paths: List[str] = field(default_factory=list)
    include_presets: bool = True

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], base_dir: Optional[pathlib.Path] = None) -> "AgentsSpec":
        if not data:
            return cls()
        paths = [str(path) for path in data.get("paths", [])]
        if base_dir is not None:
            paths = [str((base_dir / path).resolve()) if not pathlib.Path(path).is_absolute() else path for path in paths]
        return cls(paths=paths, include_presets=bool(data.get("include_presets", True)))


def _as_int(value: Any, where: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{where} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{where} must be an integer, got {value!r}") from exc


@dataclass
class OrchestratorSpec:
    """Orchestrator settings."""

    default_agent: str = "director"
    planner_agent: str = "director"
    priorities: Dict[str, int] = field(default_factory=lambda: {"high": 2, "medium": 1, "low": 0})
    max_workers: int = 4

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "OrchestratorSpec":
        if not data:
            return cls()
        defaults = cls()
        priorities = data.get("priorities") or defaults.priorities
        if not isinstance(priorities, Mapping):
            raise ConfigError("orchestrator.priorities must be a mapping of label to integer")
        max_workers = _as_int(data.get("max_workers", defaults.max_workers), "orchestrator.max_workers")
        if max_workers < 1:
            raise ConfigError("orchestrator.max_workers must be at least 1")
        return cls(
            default_agent=str(data.get("default_agent", defaults.default_agent)),
            planner_agent=str(data.get("planner_agent", defaults.planner_agent)),
            priorities={
                str(label): _as_int(value, f"orchestrator.priorities.{label}") for label, value in priorities.items()
            },
            max_workers=max_workers,
        )


@dataclass
class TaskSpec:
    """A task declared up front in the project file."""

    id: str
    agent: str
    action: str
    description: str = ""
    name: Optional[str] = None
    priority: Optional[int] = None
    dependencies: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TaskSpec":
        missing = [key for key in ("id", "agent", "action") if key not in data]
        if missing:
            raise ConfigError(f"Task is missing required keys: {', '.join(missing)}")
        dependencies = data.get("dependencies") or []
        if not isinstance(dependencies, list):
            raise ConfigError(f"Task '{data['id']}' dependencies must be a list")
        priority = data.get("priority")
        return cls(
            id=str(data["id"]),
            agent=str(data["agent"]),
            action=str(data["action"]),
            description=str(data.get("description", "")),
            name=data.get("name"),
            priority=_as_int(priority, f"task '{data['id']}' priority") if priority is not None else None,
            dependencies=[str(dep) for dep in dependencies],
            params=dict(data.get("params") or {}),
        )


@dataclass
class LoggingSpec:
    level: str = "INFO"

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "LoggingSpec":
        if not data:
            return cls()
        return cls(level=str(data.get("level", "INFO")).upper())


@dataclass
class ProjectConfig:
    """Representation of the YAML configuration."""

    name: str
    description: Optional[str] = None
    agents: AgentsSpec = field(default_factory=AgentsSpec)
    orchestrator: OrchestratorSpec = field(default_factory=OrchestratorSpec)
    executor: str = DEFAULT_EXECUTOR
    executor_params: Dict[str, Any] = field(default_factory=dict)
    tasks: List[TaskSpec] = field(default_factory=list)
    logging: LoggingSpec = field(default_factory=LoggingSpec)

    @classmethod
    def from_file(cls, path: str | pathlib.Path) -> "ProjectConfig":
        path = pathlib.Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"Cannot read config {path}: {exc}") from exc
        return cls.from_yaml(text, default_name=path.stem, base_dir=path.parent)

    @classmethod
    def from_yaml(
        cls, text: str, *, default_name: str = "filmcrew", base_dir: Optional[pathlib.Path] = None
    ) -> "ProjectConfig":
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML: {exc}") from exc
        if not isinstance(data, MutableMapping):
            raise ConfigError("Configuration root must be a mapping")
        return cls.from_mapping(data, default_name=default_name, base_dir=base_dir)

    @classmethod
    def from_mapping(
        cls, data: Mapping[str, Any], *, default_name: str = "filmcrew", base_dir: Optional[pathlib.Path] = None
    ) -> "ProjectConfig":
        tasks = [TaskSpec.from_mapping(item) for item in data.get("tasks") or []]
        _check_dependencies(tasks)
        executor = data.get("executor") or DEFAULT_EXECUTOR
        executor_params: Dict[str, Any] = {}
        if isinstance(executor, Mapping):
            if "type" not in executor:
                raise ConfigError("executor requires a type path")
            executor_params = dict(executor.get("params") or {})
            executor = executor["type"]
        return cls(
            name=str(data.get("name", default_name)),
            description=data.get("description"),
            agents=AgentsSpec.from_mapping(data.get("agents"), base_dir),
            orchestrator=OrchestratorSpec.from_mapping(data.get("orchestrator")),
            executor=str(executor),
            executor_params=executor_params,
            tasks=tasks,
            logging=LoggingSpec.from_mapping(data.get("logging")),
        )


def _check_dependencies(tasks: List[TaskSpec]) -> None:
    ids = [spec.id for spec in tasks]
    duplicates = sorted({task_id for task_id in ids if ids.count(task_id) > 1})
    if duplicates:
        raise ConfigError(f"Duplicate task ids: {', '.join(duplicates)}")
    known = set(ids)
    for spec in tasks:
        if spec.id in spec.dependencies:
            raise ConfigError(f"Task '{spec.id}' depends on itself")
        unknown = [dep for dep in spec.dependencies if dep not in known]
        if unknown:
            raise ConfigError(f"Task '{spec.id}' depends on unknown tasks: {', '.join(unknown)}")
    cycle = _find_cycle({spec.id: spec.dependencies for spec in tasks})
    if cycle:
        raise ConfigError(f"Dependency cycle: {' -> '.join(cycle)}")


def _find_cycle(graph: Dict[str, List[str]]) -> Optional[List[str]]:
    """Return one dependency cycle as a list of ids, or None."""
    done: Set[str] = set()
    path: List[str] = []

    def visit(node: str) -> Optional[List[str]]:
        if node in path:
            return path[path.index(node) :] + [node]
        if node in done:
            return None
        path.append(node)
        for dep in graph.get(node, []):
            cycle = visit(dep)
            if cycle:
                return cycle
        path.pop()
        done.add(node)
        return None

    for node in graph:
        cycle = visit(node)
        if cycle:
            return cycle
    return None



def import_string(path: str) -> Any:
    """Return attribute from module specified by path "module:qualname"."""

    if ":" not in path:
        raise ConfigError(f"Import path '{path}' must use module:qualname format")
    module_path, attr = path.split(":", 1)
    try:
        module = importlib.import_module(module_path)
    except ImportError as exc:
        raise ConfigError(f"Cannot import module '{module_path}': {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError as exc:
        raise ConfigError(f"Module '{module_path}' has no attribute '{attr}'") from exc


def instantiate_from_path(path: str, *args: Any, **kwargs: Any) -> Any:
    """Import and instantiate a class given its dotted path."""

    cls = import_string(path)
    return cls(*args, **kwargs)
