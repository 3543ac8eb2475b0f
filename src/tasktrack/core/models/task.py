"""Task Domain Model -- 单条待办记录及其派生状态

所有时间字段统一为 UTC aware datetime，序列化为带 Z 后缀的 ISO-8601。
display_index 与 overdue 均不落盘：前者每次加载时重新分配，
后者每次访问时根据当前时间重新计算，从不缓存。
"""

from collections.abc import Iterable
from datetime import UTC, datetime

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_serializer,
    field_validator,
)
from pydantic.alias_generators import to_camel
from ulid import ULID

from .enums import CLOSED_STATES, OPEN_STATES, TaskPriority, TaskStatus

_TIMESTAMP_FIELDS = (
    "created_at",
    "updated_at",
    "due_date",
    "started_at",
    "completed_at",
)


def utcnow() -> datetime:
    """当前 UTC 时间"""
    return datetime.now(UTC)


def new_task_id() -> str:
    """生成新的任务 ID（ULID 格式，时间有序）"""
    return str(ULID())


class Task(BaseModel):
    """Task 数据模型

    id 是持久化身份，创建后不可变、不复用；
    display_index 是加载快照内的临时编号，仅用于用户引用，永不序列化。
    读取时同时接受 snake_case 与 camelCase 字段名。
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )

    id: str = Field(default_factory=new_task_id, description="唯一标识，ULID 格式")
    display_index: int = Field(
        default=0,
        exclude=True,
        description="加载时按 created_at 分配的 1-based 编号，不持久化",
    )

    title: str = Field(description="任务标题")
    description: str | None = Field(default=None, description="可选描述")
    tags: list[str] = Field(default_factory=list, description="标签（小写、去空白）")

    status: TaskStatus = Field(default=TaskStatus.PENDING, description="当前状态")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="优先级")

    created_at: datetime = Field(default_factory=utcnow, description="创建时间")
    updated_at: datetime = Field(default_factory=utcnow, description="最近修改时间")
    due_date: datetime | None = Field(default=None, description="截止时间")
    started_at: datetime | None = Field(default=None, description="进入 InProgress 的时间")
    completed_at: datetime | None = Field(default=None, description="进入 Done 的时间")

    @field_validator(*_TIMESTAMP_FIELDS)
    @classmethod
    def _ensure_utc(cls, value: datetime | None) -> datetime | None:
        # naive 时间视为 UTC
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    @field_serializer(*_TIMESTAMP_FIELDS, when_used="json-unless-none")
    def _serialize_timestamp(self, value: datetime) -> str:
        return value.isoformat().replace("+00:00", "Z")

    def is_overdue(self, now: datetime | None = None) -> bool:
        """是否已逾期

        条件：设置了 due_date，且其本地日历日严格早于 now 的本地日历日，
        且状态为 Pending 或 InProgress。按日历日而非时间戳比较，
        当天到期的任务在当天结束前不算逾期。

        Args:
            now: 判定时刻，默认当前时间；naive 值按本地时间解释
        """
        if self.due_date is None or self.status not in OPEN_STATES:
            return False
        current = (now or utcnow()).astimezone()
        return self.due_date.astimezone().date() < current.date()

    def effective_status_label(self, now: datetime | None = None) -> str:
        """显示用状态：逾期时为 "Overdue"，否则为状态名"""
        return "Overdue" if self.is_overdue(now) else self.status.label

    @property
    def is_closed(self) -> bool:
        return self.status in CLOSED_STATES


class TaskStats(BaseModel):
    """任务统计快照

    pending / in_progress 不含逾期任务，逾期任务单独计入 overdue。
    """

    total: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    in_progress: int = Field(default=0, ge=0)
    done: int = Field(default=0, ge=0)
    canceled: int = Field(default=0, ge=0)
    overdue: int = Field(default=0, ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def completion_rate(self) -> float:
        """完成率 = done / (total - canceled)，分母为 0 时为 0"""
        denominator = self.total - self.canceled
        if denominator == 0:
            return 0.0
        return self.done / denominator

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], now: datetime | None = None) -> "TaskStats":
        """从任务集合聚合统计"""
        now = now or utcnow()
        stats = {"total": 0, "pending": 0, "in_progress": 0, "done": 0, "canceled": 0, "overdue": 0}
        for task in tasks:
            stats["total"] += 1
            if task.is_overdue(now):
                stats["overdue"] += 1
            elif task.status == TaskStatus.PENDING:
                stats["pending"] += 1
            elif task.status == TaskStatus.IN_PROGRESS:
                stats["in_progress"] += 1
            elif task.status == TaskStatus.DONE:
                stats["done"] += 1
            else:
                stats["canceled"] += 1
        return cls(**stats)
