"""枚举定义 -- 任务状态、优先级、排序键

包含 TaskStatus 状态机、TaskPriority 优先级，
以及 TRANSITIONS 流转表、显式排序表 STATUS_ORDER / PRIORITY_ORDER。
排序一律使用显式排序表，不依赖枚举声明顺序。
"""

from enum import StrEnum


def _normalize(raw: str) -> str:
    """去掉大小写与分隔符差异：inProgress / IN-PROGRESS / in_progress 视为同值"""
    return raw.strip().lower().replace("-", "").replace("_", "").replace(" ", "")


class _LenientStrEnum(StrEnum):
    """读取时宽松匹配的字符串枚举"""

    @classmethod
    def _missing_(cls, value: object):
        if not isinstance(value, str):
            return None
        key = _normalize(value)
        for member in cls:
            if _normalize(member.value) == key:
                return member
        return None


class TaskStatus(_LenientStrEnum):
    """任务状态机

    Overdue 不是状态，而是运行时推导出的显示状态，见 Task.is_overdue。
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELED = "canceled"

    @property
    def label(self) -> str:
        """面向用户的状态名"""
        return _STATUS_LABELS[self]


class TaskPriority(_LenientStrEnum):
    """任务优先级，顺序 NONE < LOW < MEDIUM < HIGH < CRITICAL"""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return PRIORITY_ORDER[self]


class SortKey(_LenientStrEnum):
    """列表排序键"""

    CREATED = "created"
    DUE = "due"
    PRIORITY = "priority"
    TITLE = "title"
    STATUS = "status"


class Transition(StrEnum):
    """状态流转操作"""

    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"
    REOPEN = "reopen"


_STATUS_LABELS: dict[TaskStatus, str] = {
    TaskStatus.PENDING: "Pending",
    TaskStatus.IN_PROGRESS: "InProgress",
    TaskStatus.DONE: "Done",
    TaskStatus.CANCELED: "Canceled",
}

# 状态排序：Pending < InProgress < Done < Canceled
STATUS_ORDER: dict[TaskStatus, int] = {
    TaskStatus.PENDING: 0,
    TaskStatus.IN_PROGRESS: 1,
    TaskStatus.DONE: 2,
    TaskStatus.CANCELED: 3,
}

PRIORITY_ORDER: dict[TaskPriority, int] = {
    TaskPriority.NONE: 0,
    TaskPriority.LOW: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.HIGH: 3,
    TaskPriority.CRITICAL: 4,
}

# 流转表：操作 -> (目标状态, 允许的源状态)
# Done / Canceled 只能经 REOPEN 回到 Pending
TRANSITIONS: dict[Transition, tuple[TaskStatus, tuple[TaskStatus, ...]]] = {
    Transition.START: (TaskStatus.IN_PROGRESS, (TaskStatus.PENDING,)),
    Transition.COMPLETE: (
        TaskStatus.DONE,
        (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
    ),
    Transition.CANCEL: (
        TaskStatus.CANCELED,
        (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
    ),
    Transition.REOPEN: (
        TaskStatus.PENDING,
        (TaskStatus.DONE, TaskStatus.CANCELED),
    ),
}

# 未完成状态：只有这两种状态可能 overdue
OPEN_STATES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.PENDING, TaskStatus.IN_PROGRESS}
)

# 可被 purge 清理的状态
CLOSED_STATES: frozenset[TaskStatus] = frozenset(
    {TaskStatus.DONE, TaskStatus.CANCELED}
)


def validate_transition(from_status: TaskStatus, to_status: TaskStatus) -> bool:
    """验证状态流转是否合法

    Args:
        from_status: 当前状态
        to_status: 目标状态

    Returns:
        True 如果存在一条 from_status -> to_status 的流转边，否则 False
    """
    return any(
        target == to_status and from_status in sources
        for target, sources in TRANSITIONS.values()
    )
