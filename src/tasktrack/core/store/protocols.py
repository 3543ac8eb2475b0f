"""Store Protocol 接口定义

定义 TaskStorage 的抽象接口，
使用 Python Protocol 实现结构化子类型（duck typing）。
"""

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from ..models.task import Task


class TaskStorage(Protocol):
    """Task 存储接口

    只支持整体读写：每次 load 返回完整集合（已分配 display_index），
    每次 save 整体替换持久化内容。
    """

    @property
    def storage_path(self) -> Path:
        """当前使用的数据文件路径"""
        ...

    def load(self) -> list[Task]:
        """加载全部任务"""
        ...

    def save(self, tasks: Sequence[Task]) -> None:
        """持久化全部任务，替换已有数据"""
        ...
