"""JSON 文件 TaskStore 实现

任务集合整体存为一个 JSON 数组（2 空格缩进，UTF-8）。
写入流程：同目录临时文件 -> flush + fsync -> os.replace 覆盖目标。
中断只可能留下临时文件，目标文件要么是旧内容，要么是完整的新内容。
同一实例内的 load / save 由一把粗粒度锁串行化；跨进程不做协调，
以整个文件为粒度 last-writer-wins。
"""

import json
import os
import stat
import tempfile
import threading
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from ..config import resolve_storage_path
from ..exceptions import DataCorruptionError
from ..models.task import Task
from .display_index import assign_display_indices

log = structlog.get_logger()

TEMP_SUFFIX = ".tmp"


class JsonTaskStore:
    """TaskStorage 的 JSON 文件实现"""

    def __init__(self, storage_path: str | Path | None = None) -> None:
        """
        Args:
            storage_path: 显式路径；为空时按环境变量、默认位置依次解析
        """
        self._path = resolve_storage_path(storage_path)
        self._lock = threading.Lock()

    @property
    def storage_path(self) -> Path:
        return self._path

    def load(self) -> list[Task]:
        """加载全部任务

        文件不存在（首次运行）返回空列表；内容无法解析时抛出
        DataCorruptionError，不做任何修复。

        Raises:
            DataCorruptionError: 非 UTF-8 内容、JSON 语法错误、顶层不是数组或记录校验失败
            OSError: 读取失败（权限等）
        """
        with self._lock:
            try:
                raw = self._path.read_bytes()
            except FileNotFoundError:
                log.debug("task_file_missing", path=str(self._path))
                return []

        tasks = self._parse(raw)
        assign_display_indices(tasks)
        log.debug("tasks_loaded", path=str(self._path), count=len(tasks))
        return tasks

    def save(self, tasks: Sequence[Task]) -> None:
        """原子写入全部任务

        Raises:
            OSError: 目录创建、写入或 rename 失败；目标文件保持原样
        """
        payload = self.serialize(tasks)

        with self._lock:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=TEMP_SUFFIX,
            )
            tmp_path = Path(tmp_name)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                self._copy_mode(tmp_path)
                os.replace(tmp_path, self._path)
            finally:
                # 成功 rename 后临时文件已不存在
                tmp_path.unlink(missing_ok=True)

        log.debug("tasks_saved", path=str(self._path), count=len(tasks))

    @staticmethod
    def serialize(tasks: Sequence[Task]) -> str:
        """序列化为 JSON 文本（不含 display_index 与 overdue）"""
        records = [task.model_dump(mode="json", exclude_none=True) for task in tasks]
        return json.dumps(records, ensure_ascii=False, indent=2) + "\n"

    def _parse(self, raw: bytes) -> list[Task]:
        try:
            data: Any = json.loads(raw.decode("utf-8-sig"))
            if data is None:
                return []
            if not isinstance(data, list):
                raise ValueError(f"顶层应为 JSON 数组，实际为 {type(data).__name__}")
            tasks = [Task.model_validate(record) for record in data]
            _check_unique_ids(tasks)
        except (ValueError, ValidationError) as e:
            log.error("task_file_corrupt", path=str(self._path), error=str(e))
            raise DataCorruptionError(self._path, e) from e
        return tasks

    def _copy_mode(self, tmp_path: Path) -> None:
        # 已有文件沿用其权限位；新文件按 umask 取默认权限（mkstemp 默认 0600）
        try:
            mode = stat.S_IMODE(self._path.stat().st_mode)
        except FileNotFoundError:
            mode = 0o666 & ~_current_umask()
        os.chmod(tmp_path, mode)


def _current_umask() -> int:
    # 只能通过设置再恢复的方式读取
    mask = os.umask(0)
    os.umask(mask)
    return mask


def _check_unique_ids(tasks: Sequence[Task]) -> None:
    seen: set[str] = set()
    for task in tasks:
        if task.id in seen:
            raise ValueError(f"重复的任务 ID: {task.id}")
        seen.add(task.id)
