"""display_index 分配

display_index 是加载快照内的临时编号：按 created_at 升序排列后的
1-based 位置，created_at 相同时保持输入顺序（sorted 是稳定排序）。
"""

from collections.abc import Sequence

from ..models.task import Task


def assign_display_indices(tasks: Sequence[Task]) -> None:
    """原地为任务分配连续的 1..N 编号，不改变列表顺序"""
    ordered = sorted(tasks, key=lambda t: t.created_at)
    for index, task in enumerate(ordered, start=1):
        task.display_index = index
