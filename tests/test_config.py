import pathlib

import pytest

from filmcrew.config import ProjectConfig, import_string, instantiate_from_path
from filmcrew.errors import ConfigError
from filmcrew.project import build_executor, build_orchestrator, enqueue_config_tasks
from filmcrew.tasks.base import TaskStatus
from filmcrew.tasks.runner import EchoExecutor

EXAMPLE = pathlib.Path(__file__).resolve().parents[1] / "examples" / "configs" / "short_film.yaml"


def test_from_yaml_defaults():
    config = ProjectConfig.from_yaml("name: demo\n")

    assert config.name == "demo"
    assert config.tasks == []
    assert config.agents.include_presets is True
    assert config.orchestrator.priorities == {"high": 2, "medium": 1, "low": 0}
    assert config.executor == "filmcrew.tasks.runner:EchoExecutor"
    assert config.logging.level == "INFO"


def test_from_yaml_parses_tasks_and_orchestrator():
    config = ProjectConfig.from_yaml(
        """
name: demo
orchestrator:
  planner_agent: storyboard
  priorities: {urgent: 10, normal: 0}
  max_workers: 2
executor:
  type: filmcrew.tasks.runner:EchoExecutor
  params: {prefix: dry-run}
tasks:
  - id: a
    agent: character
    action: create_character
  - id: b
    agent: scene
    action: create_scene
    priority: 7
    dependencies: [a]
"""
    )

    assert config.orchestrator.planner_agent == "storyboard"
    assert config.orchestrator.priorities == {"urgent": 10, "normal": 0}
    assert config.orchestrator.max_workers == 2
    assert config.executor_params == {"prefix": "dry-run"}
    assert config.tasks[1].dependencies == ["a"]
    assert config.tasks[1].priority == 7
    assert config.tasks[0].priority is None


@pytest.mark.parametrize(
    "text",
    [
        "- just\n- a list\n",
        "tasks:\n  - id: a\n    agent: x\n",
        "tasks:\n  - {id: a, agent: x, action: y, dependencies: [zzz]}\n",
        "tasks:\n  - {id: a, agent: x, action: y, dependencies: [a]}\n",
        "tasks:\n  - {id: a, agent: x, action: y}\n  - {id: a, agent: x, action: y}\n",
        "orchestrator: {max_workers: 0}\n",
        "orchestrator: {max_workers: lots}\n",
        "orchestrator: {priorities: {high: top}}\n",
        "tasks:\n  - {id: a, agent: x, action: y, priority: high}\n",
        "tasks:\n  - {id: a, agent: x, action: y, dependencies: [b]}\n  - {id: b, agent: x, action: y, dependencies: [a]}\n",
        "name: [unclosed\n",
    ],
)
def test_invalid_configs_raise_config_error(text):
    with pytest.raises(ConfigError):
        ProjectConfig.from_yaml(text)


def test_from_file_missing_raises(tmp_path):
    with pytest.raises(ConfigError):
        ProjectConfig.from_file(tmp_path / "nope.yaml")


def test_agent_paths_are_resolved_relative_to_config(tmp_path):
    path = tmp_path / "project.yaml"
    path.write_text("agents:\n  paths: [agents]\n", encoding="utf-8")

    config = ProjectConfig.from_file(path)

    assert config.name == "project"
    assert config.agents.paths == [str((tmp_path / "agents").resolve())]


def test_import_helpers():
    assert import_string("filmcrew.tasks.runner:EchoExecutor") is EchoExecutor
    assert instantiate_from_path("filmcrew.tasks.runner:EchoExecutor", prefix="x").prefix == "x"
    with pytest.raises(ConfigError):
        import_string("no_colon")
    with pytest.raises(ConfigError):
        import_string("filmcrew.tasks.runner:Missing")
    with pytest.raises(ConfigError):
        import_string("filmcrew_missing_module:Thing")


def test_build_executor_rejects_objects_without_execute():
    config = ProjectConfig.from_yaml("executor: filmcrew.tasks.queue:TaskQueue\n")

    with pytest.raises(ConfigError):
        build_executor(config)


def test_example_project_runs_end_to_end():
    config = ProjectConfig.from_file(EXAMPLE)
    orchestrator = build_orchestrator(config)
    tasks = enqueue_config_tasks(config, orchestrator)

    by_id = {task.id: task for task in tasks}
    assert by_id["brief"].status is TaskStatus.PENDING
    assert by_id["board"].status is TaskStatus.BLOCKED
    assert by_id["keeper"].priority == orchestrator.default_priority("character")
    assert by_id["frames"].priority == 0

    report = orchestrator.execute(build_executor(config))

    order = [outcome.task.id for outcome in report.results]
    assert order[0] == "brief"
    assert order[-2:] == ["board", "frames"]
    assert report.stats["completed"] == 6


def test_dependency_cycle_is_named_in_error():
    text = (
        "tasks:\n"
        "  - {id: a, agent: x, action: y, dependencies: [c]}\n"
        "  - {id: b, agent: x, action: y, dependencies: [a]}\n"
        "  - {id: c, agent: x, action: y, dependencies: [b]}\n"
    )

    with pytest.raises(ConfigError, match="cycle"):
        ProjectConfig.from_yaml(text)


def test_diamond_dependencies_are_not_a_cycle():
    config = ProjectConfig.from_yaml(
        "tasks:\n"
        "  - {id: a, agent: x, action: y}\n"
        "  - {id: b, agent: x, action: y, dependencies: [a]}\n"
        "  - {id: c, agent: x, action: y, dependencies: [a]}\n"
        "  - {id: d, agent: x, action: y, dependencies: [b, c]}\n"
    )

    assert [spec.id for spec in config.tasks] == ["a", "b", "c", "d"]
