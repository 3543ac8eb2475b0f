"""TaskTrack Core Domain Models -- 公共类型导出

所有公共模型类型从此入口导入。
"""

from .enums import (
    CLOSED_STATES,
    OPEN_STATES,
    PRIORITY_ORDER,
    STATUS_ORDER,
    TRANSITIONS,
    SortKey,
    TaskPriority,
    TaskStatus,
    Transition,
    validate_transition,
)
from .task import Task, TaskStats, new_task_id, utcnow

__all__ = [
    # 枚举
    "TaskStatus",
    "TaskPriority",
    "SortKey",
    "Transition",
    # 状态机
    "TRANSITIONS",
    "OPEN_STATES",
    "CLOSED_STATES",
    "STATUS_ORDER",
    "PRIORITY_ORDER",
    "validate_transition",
    # Task
    "Task",
    "TaskStats",
    "new_task_id",
    "utcnow",
]
