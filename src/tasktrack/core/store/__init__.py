"""TaskTrack Core Store -- JSON 文件持久化实现

提供工厂函数按路径解析规则创建 Store 实例。
"""

from pathlib import Path

from .display_index import assign_display_indices
from .json_store import JsonTaskStore
from .protocols import TaskStorage


def create_store(storage_path: str | Path | None = None) -> JsonTaskStore:
    """创建 JsonTaskStore

    Args:
        storage_path: 显式路径；为空时按 TASKTRACK_STORAGE_PATH、默认位置解析

    Returns:
        JsonTaskStore 实例
    """
    return JsonTaskStore(storage_path)


__all__ = [
    "TaskStorage",
    "JsonTaskStore",
    "assign_display_indices",
    "create_store",
]
