"""Domain Models 单元测试

测试内容：
1. 枚举序列化/反序列化与宽松解析
2. 状态机流转表
3. Task 字段校验、序列化排除项
4. overdue 按本地日历日推导
5. TaskStats 完成率
"""

import json
from datetime import UTC, datetime, timedelta, timezone

import pytest
from tasktrack.core.models import (
    PRIORITY_ORDER,
    STATUS_ORDER,
    SortKey,
    Task,
    TaskPriority,
    TaskStats,
    TaskStatus,
    validate_transition,
)


def local(*args: int) -> datetime:
    """本地时间（按系统时区规则解析该日期）"""
    return datetime(*args).astimezone()


class TestEnums:
    """枚举序列化/反序列化测试"""

    def test_task_status_values(self):
        """TaskStatus 枚举值为小写可读名称"""
        assert TaskStatus.PENDING == "pending"
        assert TaskStatus.IN_PROGRESS == "in_progress"
        assert TaskStatus.DONE == "done"
        assert TaskStatus.CANCELED == "canceled"

    def test_priority_values(self):
        assert [p.value for p in TaskPriority] == ["none", "low", "medium", "high", "critical"]

    @pytest.mark.parametrize("raw", ["inProgress", "InProgress", "IN-PROGRESS", "in_progress"])
    def test_status_lenient_parse(self, raw: str):
        """大小写、分隔符不同的写法都能解析"""
        assert TaskStatus(raw) == TaskStatus.IN_PROGRESS

    def test_priority_lenient_parse(self):
        assert TaskPriority("Critical") == TaskPriority.CRITICAL

    def test_unknown_value_rejected(self):
        with pytest.raises(ValueError):
            TaskStatus("archived")
        with pytest.raises(ValueError):
            SortKey("random")

    def test_priority_order_is_explicit(self):
        """优先级排序使用显式排序表"""
        ordered = sorted(TaskPriority, key=lambda p: PRIORITY_ORDER[p])
        assert ordered == [
            TaskPriority.NONE,
            TaskPriority.LOW,
            TaskPriority.MEDIUM,
            TaskPriority.HIGH,
            TaskPriority.CRITICAL,
        ]
        assert TaskPriority.HIGH.rank > TaskPriority.MEDIUM.rank

    def test_status_order(self):
        ordered = sorted(TaskStatus, key=lambda s: STATUS_ORDER[s])
        assert ordered == [
            TaskStatus.PENDING,
            TaskStatus.IN_PROGRESS,
            TaskStatus.DONE,
            TaskStatus.CANCELED,
        ]

    def test_status_labels(self):
        assert TaskStatus.IN_PROGRESS.label == "InProgress"
        assert TaskStatus.CANCELED.label == "Canceled"


class TestStateMachine:
    """状态机流转表"""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.PENDING, TaskStatus.IN_PROGRESS),
            (TaskStatus.PENDING, TaskStatus.DONE),
            (TaskStatus.IN_PROGRESS, TaskStatus.DONE),
            (TaskStatus.PENDING, TaskStatus.CANCELED),
            (TaskStatus.IN_PROGRESS, TaskStatus.CANCELED),
            (TaskStatus.DONE, TaskStatus.PENDING),
            (TaskStatus.CANCELED, TaskStatus.PENDING),
        ],
    )
    def test_valid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        assert validate_transition(from_status, to_status) is True

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (TaskStatus.DONE, TaskStatus.IN_PROGRESS),
            (TaskStatus.CANCELED, TaskStatus.IN_PROGRESS),
            (TaskStatus.CANCELED, TaskStatus.DONE),
            (TaskStatus.DONE, TaskStatus.CANCELED),
            (TaskStatus.IN_PROGRESS, TaskStatus.PENDING),
            (TaskStatus.IN_PROGRESS, TaskStatus.IN_PROGRESS),
            (TaskStatus.PENDING, TaskStatus.PENDING),
        ],
    )
    def test_invalid_transition(self, from_status: TaskStatus, to_status: TaskStatus):
        assert validate_transition(from_status, to_status) is False


class TestTaskModel:
    """Task 字段与序列化"""

    def test_defaults(self):
        task = Task(title="写周报")
        assert task.status == TaskStatus.PENDING
        assert task.priority == TaskPriority.MEDIUM
        assert task.tags == []
        assert task.description is None
        assert task.id
        assert task.created_at.tzinfo is not None

    def test_ids_are_unique(self):
        assert Task(title="a").id != Task(title="b").id

    @pytest.mark.parametrize(
        "status,closed",
        [
            (TaskStatus.PENDING, False),
            (TaskStatus.IN_PROGRESS, False),
            (TaskStatus.DONE, True),
            (TaskStatus.CANCELED, True),
        ],
    )
    def test_is_closed(self, status: TaskStatus, closed: bool):
        assert Task(title="t", status=status).is_closed is closed

    def test_naive_timestamp_treated_as_utc(self):
        task = Task(title="t", due_date=datetime(2026, 1, 2, 3, 4, 5))
        assert task.due_date == datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

    def test_aware_timestamp_normalized_to_utc(self):
        plus8 = timezone(timedelta(hours=8))
        task = Task(title="t", due_date=datetime(2026, 1, 2, 8, 0, tzinfo=plus8))
        assert task.due_date is not None
        assert task.due_date.utcoffset() == timedelta(0)
        assert task.due_date.hour == 0

    def test_assignment_is_validated(self):
        task = Task(title="t")
        task.started_at = datetime(2026, 1, 1, 10, 0)
        assert task.started_at.tzinfo is not None

    def test_dump_excludes_display_index(self):
        task = Task(title="t", display_index=3)
        data = task.model_dump(mode="json")
        assert "display_index" not in data
        assert "displayIndex" not in data
        assert not any("overdue" in key.lower() for key in data)

    def test_timestamps_serialized_with_z_suffix(self):
        task = Task(title="t", created_at=datetime(2026, 5, 1, 9, 30, tzinfo=UTC))
        data = json.loads(task.model_dump_json())
        assert data["created_at"] == "2026-05-01T09:30:00Z"

    def test_accepts_camel_case_keys(self):
        task = Task.model_validate(
            {
                "id": "abc",
                "title": "t",
                "status": "inProgress",
                "createdAt": "2026-05-01T09:30:00Z",
                "dueDate": None,
            }
        )
        assert task.status == TaskStatus.IN_PROGRESS
        assert task.created_at == datetime(2026, 5, 1, 9, 30, tzinfo=UTC)
        assert task.due_date is None


class TestOverdue:
    """overdue 推导：本地日历日粒度，仅 Pending / InProgress"""

    def test_no_due_date_never_overdue(self):
        assert Task(title="t").is_overdue(local(2030, 1, 1)) is False

    def test_past_due_pending_is_overdue(self):
        task = Task(title="t", due_date=local(2026, 7, 10, 9, 0))
        assert task.is_overdue(local(2026, 7, 15, 9, 0)) is True

    @pytest.mark.parametrize("status", [TaskStatus.DONE, TaskStatus.CANCELED])
    def test_closed_tasks_never_overdue(self, status: TaskStatus):
        task = Task(title="t", status=status, due_date=local(2020, 1, 1, 9, 0))
        assert task.is_overdue(local(2026, 7, 15, 9, 0)) is False

    @pytest.mark.parametrize("status", [TaskStatus.PENDING, TaskStatus.IN_PROGRESS])
    def test_calendar_day_boundary(self, status: TaskStatus):
        """当天到期：当天内任何时刻不逾期，次日零点起逾期"""
        task = Task(title="t", status=status, due_date=local(2026, 7, 15, 0, 0))

        assert task.is_overdue(local(2026, 7, 15, 0, 0)) is False
        assert task.is_overdue(local(2026, 7, 15, 12, 0)) is False
        assert task.is_overdue(local(2026, 7, 15, 23, 59, 59, 999999)) is False
        assert task.is_overdue(local(2026, 7, 16, 0, 0)) is True

    def test_due_earlier_today_not_overdue(self):
        """截止时间已过但仍在当天，不算逾期"""
        task = Task(title="t", due_date=local(2026, 7, 15, 8, 0))
        assert task.is_overdue(local(2026, 7, 15, 20, 0)) is False

    def test_overdue_recomputed_on_each_call(self):
        task = Task(title="t", due_date=local(2026, 7, 15, 8, 0))
        assert task.is_overdue(local(2026, 7, 16, 8, 0)) is True
        task.status = TaskStatus.DONE
        assert task.is_overdue(local(2026, 7, 16, 8, 0)) is False

    def test_effective_status_label(self):
        task = Task(title="t", status=TaskStatus.IN_PROGRESS, due_date=local(2026, 7, 1, 8, 0))
        assert task.effective_status_label(local(2026, 7, 15, 8, 0)) == "Overdue"
        assert task.effective_status_label(local(2026, 6, 30, 8, 0)) == "InProgress"


class TestTaskStats:
    """完成率 = done / (total - canceled)"""

    def test_completion_rate(self):
        stats = TaskStats(total=4, pending=1, done=2, canceled=1)
        assert stats.completion_rate == pytest.approx(2 / 3, abs=0.001)

    def test_completion_rate_zero_tasks(self):
        assert TaskStats().completion_rate == 0

    def test_completion_rate_all_canceled(self):
        assert TaskStats(total=3, canceled=3).completion_rate == 0

    def test_completion_rate_in_dump(self):
        data = TaskStats(total=2, done=1).model_dump()
        assert data["completion_rate"] == pytest.approx(0.5)

    def test_from_tasks_separates_overdue(self):
        now = local(2026, 7, 15, 12, 0)
        past = local(2026, 7, 1, 9, 0)
        tasks = [
            Task(title="a"),
            Task(title="b", due_date=past),
            Task(title="c", status=TaskStatus.IN_PROGRESS),
            Task(title="d", status=TaskStatus.IN_PROGRESS, due_date=past),
            Task(title="e", status=TaskStatus.DONE, due_date=past),
            Task(title="f", status=TaskStatus.CANCELED),
        ]

        stats = TaskStats.from_tasks(tasks, now=now)

        assert stats.total == 6
        assert stats.pending == 1
        assert stats.in_progress == 1
        assert stats.overdue == 2
        assert stats.done == 1
        assert stats.canceled == 1
        assert stats.completion_rate == pytest.approx(1 / 5)
