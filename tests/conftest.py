"""全局 pytest 配置 -- 临时任务文件、内存 Store 与可控时钟 fixture"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import structlog
from tasktrack.core.models import Task
from tasktrack.core.store import JsonTaskStore, assign_display_indices
from tasktrack.core.task_manager import TaskManager

# 远离夏令时切换的固定基准时间
BASE_TIME = datetime(2026, 7, 15, 12, 0, tzinfo=UTC)


class FakeClock:
    """每次调用前进 step，保证 created_at 严格递增"""

    def __init__(self, start: datetime = BASE_TIME, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = current + self.step
        return current


class InMemoryTaskStore:
    """TaskStorage 的内存实现，保存深拷贝以模拟独立快照"""

    def __init__(self) -> None:
        self._tasks: list[Task] = []
        self.save_count = 0

    @property
    def storage_path(self) -> Path:
        return Path(":memory:")

    def load(self) -> list[Task]:
        tasks = [t.model_copy(deep=True) for t in self._tasks]
        assign_display_indices(tasks)
        return tasks

    def save(self, tasks: Sequence[Task]) -> None:
        self._tasks = [t.model_copy(deep=True) for t in tasks]
        self.save_count += 1


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """隔离环境变量与 HOME，避免读写真实用户目录"""
    monkeypatch.delenv("TASKTRACK_STORAGE_PATH", raising=False)
    monkeypatch.delenv("TASKTRACK_LOG_FORMAT", raising=False)
    monkeypatch.delenv("TASKTRACK_LOG_LEVEL", raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    """临时任务文件路径"""
    return tmp_path / "data" / "tasks.json"


@pytest.fixture
def json_store(storage_path: Path) -> JsonTaskStore:
    return JsonTaskStore(storage_path)


@pytest.fixture
def memory_store() -> InMemoryTaskStore:
    return InMemoryTaskStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def manager(json_store: JsonTaskStore, clock: FakeClock) -> TaskManager:
    """基于临时 JSON 文件的 TaskManager"""
    return TaskManager(json_store, clock=clock)


@pytest.fixture
def memory_manager(memory_store: InMemoryTaskStore, clock: FakeClock) -> TaskManager:
    return TaskManager(memory_store, clock=clock)


@pytest.fixture(autouse=True)
def _reset_logging():
    """撤销测试中 setup_logging 安装的 handler 与 structlog 配置"""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
