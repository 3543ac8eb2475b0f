"""纯文本格式化

只做最小化的文本输出；时间以本地时区显示。
"""

from datetime import datetime

from tasktrack.core.models import Task, TaskStats


def _local(value: datetime | None, fmt: str = "%Y-%m-%d %H:%M") -> str:
    if value is None:
        return "-"
    return value.astimezone().strftime(fmt)


def format_task_line(task: Task, now: datetime | None = None) -> str:
    """单行摘要：#编号 [状态] [优先级] 标题 (due ...) #tag"""
    parts = [
        f"#{task.display_index:<3}",
        f"[{task.effective_status_label(now)}]",
        f"[{task.priority.value}]",
        task.title,
    ]
    if task.due_date is not None:
        parts.append(f"(due {_local(task.due_date, '%Y-%m-%d')})")
    if task.tags:
        parts.append(" ".join(f"#{t}" for t in task.tags))
    return " ".join(parts)


def format_task_detail(task: Task, now: datetime | None = None) -> str:
    lines = [
        f"#{task.display_index} {task.title}",
        f"  ID:        {task.id}",
        f"  状态:      {task.effective_status_label(now)}",
        f"  优先级:    {task.priority.value}",
        f"  标签:      {', '.join(task.tags) if task.tags else '-'}",
        f"  截止:      {_local(task.due_date)}",
        f"  创建:      {_local(task.created_at)}",
        f"  开始:      {_local(task.started_at)}",
        f"  完成:      {_local(task.completed_at)}",
        f"  更新:      {_local(task.updated_at)}",
    ]
    if task.description:
        lines.append("")
        lines.extend(f"  {line}" for line in task.description.splitlines())
    return "\n".join(lines)


def format_stats(stats: TaskStats) -> str:
    return "\n".join(
        [
            f"总数:     {stats.total}",
            f"待办:     {stats.pending}",
            f"进行中:   {stats.in_progress}",
            f"已完成:   {stats.done}",
            f"已取消:   {stats.canceled}",
            f"已逾期:   {stats.overdue}",
            f"完成率:   {stats.completion_rate:.1%}",
        ]
    )
