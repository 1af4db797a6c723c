import pytest

from filmcrew.agents.orchestrator import Orchestrator
from filmcrew.agents.registry import AgentRegistry
from filmcrew.tasks.queue import TaskQueue


@pytest.fixture
def registry() -> AgentRegistry:
    return AgentRegistry().load_all()


@pytest.fixture
def queue() -> TaskQueue:
    return TaskQueue()


@pytest.fixture
def orchestrator(registry: AgentRegistry, queue: TaskQueue) -> Orchestrator:
    return Orchestrator(registry, queue)


class RecordingExecutor:
    """Executor that fails for chosen task ids and records the run order."""

    def __init__(self, fail_ids=(), returns_error_ids=()):
        self.fail_ids = set(fail_ids)
        self.returns_error_ids = set(returns_error_ids)
        self.order = []

    def execute(self, task):
        self.order.append(task.id)
        if task.id in self.fail_ids:
            raise RuntimeError(f"{task.id} exploded")
        if task.id in self.returns_error_ids:
            return ValueError(f"{task.id} returned an error")
        return f"result-{task.id}"


@pytest.fixture
def recording_executor():
    return RecordingExecutor
