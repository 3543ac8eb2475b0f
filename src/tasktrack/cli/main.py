"""CLI 入口模块 -- tasktrack <command>

纯文本输出，不做颜色、表格或交互式提示。
业务异常统一打印到 stderr 并以退出码 1 结束。
"""

import argparse
import sys
from collections.abc import Sequence
from datetime import datetime

import structlog

from tasktrack.core.exceptions import TaskTrackError, TaskValidationError
from tasktrack.core.logging_config import setup_logging
from tasktrack.core.models import SortKey, Task, TaskPriority, TaskStats, TaskStatus
from tasktrack.core.store import create_store
from tasktrack.core.task_manager import TaskManager

from .formatting import format_stats, format_task_detail, format_task_line

log = structlog.get_logger()

DUE_DATE_FORMATS = ("%Y-%m-%d", "%Y-%m-%dT%H:%M", "%Y-%m-%d %H:%M")

# --status 取值 -> 状态过滤；"all" / "overdue" 单独处理
STATUS_ALIASES: dict[str, TaskStatus] = {
    "pending": TaskStatus.PENDING,
    "inprogress": TaskStatus.IN_PROGRESS,
    "in-progress": TaskStatus.IN_PROGRESS,
    "in_progress": TaskStatus.IN_PROGRESS,
    "started": TaskStatus.IN_PROGRESS,
    "done": TaskStatus.DONE,
    "complete": TaskStatus.DONE,
    "completed": TaskStatus.DONE,
    "canceled": TaskStatus.CANCELED,
    "cancelled": TaskStatus.CANCELED,
}


def parse_due_date(raw: str) -> datetime:
    """解析本地时间的截止日期，返回 aware datetime

    Raises:
        TaskValidationError: 格式不符合 yyyy-MM-dd / yyyy-MM-ddTHH:mm
    """
    value = raw.strip()
    for fmt in DUE_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).astimezone()
        except ValueError:
            continue
    raise TaskValidationError(
        f"无法解析日期 '{raw}'，期望格式: yyyy-MM-dd 或 yyyy-MM-ddTHH:mm"
    )


def parse_priority(raw: str) -> TaskPriority:
    try:
        return TaskPriority(raw)
    except ValueError:
        choices = ", ".join(p.value for p in TaskPriority)
        raise TaskValidationError(f"未知的优先级 '{raw}'，可选: {choices}") from None


def parse_tags(raw: str | None) -> list[str] | None:
    if raw is None:
        return None
    return [t for t in raw.split(",") if t.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tasktrack", description="本地任务管理")
    parser.add_argument(
        "-S",
        "--storage",
        metavar="PATH",
        help="任务文件路径（默认读取 TASKTRACK_STORAGE_PATH，再退回 ~/.tasktrack/tasks.json）",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    add = sub.add_parser("add", help="新建任务")
    add.add_argument("title")
    add.add_argument("-d", "--description")
    add.add_argument("-p", "--priority", default=TaskPriority.MEDIUM.value)
    add.add_argument("--due", help="yyyy-MM-dd 或 yyyy-MM-ddTHH:mm（本地时间）")
    add.add_argument("-t", "--tags", help="逗号分隔，例如 work,home")

    ls = sub.add_parser("list", aliases=["ls"], help="列出任务")
    ls.add_argument("-s", "--status", default="all")
    ls.add_argument("-t", "--tag")
    ls.add_argument(
        "--sort",
        default=SortKey.CREATED.value,
        choices=[k.value for k in SortKey],
    )

    show = sub.add_parser("show", help="显示任务详情")
    show.add_argument("index", type=int)

    desc = sub.add_parser("desc", help="查看或设置任务描述")
    desc.add_argument("index", type=int)
    desc.add_argument("text", nargs="?")
    desc.add_argument("--clear", action="store_true")

    for name, help_text in (
        ("start", "标记为进行中"),
        ("done", "标记为完成"),
        ("cancel", "取消任务"),
        ("reopen", "重新打开已完成或已取消的任务"),
    ):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("index", type=int)

    edit = sub.add_parser("edit", help="编辑任务字段")
    edit.add_argument("index", type=int)
    edit.add_argument("--title")
    edit.add_argument("-d", "--description")
    edit.add_argument("-p", "--priority")
    edit.add_argument("--due")
    edit.add_argument("--clear-due", action="store_true")
    edit.add_argument("-t", "--tags")

    rm = sub.add_parser("remove", aliases=["rm"], help="永久删除任务")
    rm.add_argument("index", type=int)

    sub.add_parser("purge", help="删除所有已完成和已取消的任务")
    sub.add_parser("stats", help="任务统计")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 主入口"""
    args = build_parser().parse_args(argv)
    setup_logging()

    manager = TaskManager(create_store(args.storage))
    log.debug("cli_command", command=args.command, storage=str(manager.storage.storage_path))

    try:
        return _dispatch(manager, args)
    except (TaskTrackError, OSError) as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1


def _dispatch(manager: TaskManager, args: argparse.Namespace) -> int:
    command = args.command

    if command == "add":
        task = manager.add(
            args.title,
            description=args.description,
            priority=parse_priority(args.priority),
            due_date=parse_due_date(args.due) if args.due else None,
            tags=parse_tags(args.tags),
        )
        print(f"已创建任务 #{task.display_index}")
        print(format_task_detail(task))
        return 0

    if command in ("list", "ls"):
        tasks = _list_tasks(manager, args)
        for task in tasks:
            print(format_task_line(task))
        if not tasks:
            print("没有任务")
        _print_summary(manager.get_stats(), len(tasks))
        return 0

    if command == "show":
        print(format_task_detail(manager.get_by_index(args.index)))
        return 0

    if command == "desc":
        return _desc(manager, args)

    if command in ("start", "done", "cancel", "reopen"):
        operation = {
            "start": manager.start,
            "done": manager.complete,
            "cancel": manager.cancel,
            "reopen": manager.reopen,
        }[command]
        task = operation(args.index)
        print(f"任务 #{task.display_index} -> {task.status.label}")
        return 0

    if command == "edit":
        task = manager.edit(
            args.index,
            title=args.title,
            description=args.description,
            priority=parse_priority(args.priority) if args.priority else None,
            due_date=parse_due_date(args.due) if args.due else None,
            clear_due_date=args.clear_due,
            tags=parse_tags(args.tags),
        )
        print(f"已更新任务 #{task.display_index}")
        print(format_task_detail(task))
        return 0

    if command in ("remove", "rm"):
        task = manager.remove(args.index)
        print(f"已删除任务 #{task.display_index}: {task.title}")
        return 0

    if command == "purge":
        removed = manager.purge()
        print(f"已清理 {removed} 个任务")
        return 0

    if command == "stats":
        print(format_stats(manager.get_stats()))
        return 0

    raise TaskValidationError(f"未知命令: {command}")


def _list_tasks(manager: TaskManager, args: argparse.Namespace) -> list[Task]:
    status_arg = args.status.strip().lower()
    if status_arg == "overdue":
        now = datetime.now().astimezone()
        return [
            t
            for t in manager.get_filtered(tag=args.tag, sort_by=args.sort)
            if t.is_overdue(now)
        ]
    if status_arg == "all":
        return manager.get_filtered(tag=args.tag, sort_by=args.sort)
    if status_arg not in STATUS_ALIASES:
        raise TaskValidationError(
            f"未知的状态过滤 '{args.status}'，可选: all, pending, inprogress, done, canceled, overdue"
        )
    return manager.get_filtered(
        status=STATUS_ALIASES[status_arg],
        tag=args.tag,
        sort_by=args.sort,
    )


def _desc(manager: TaskManager, args: argparse.Namespace) -> int:
    if args.text is not None and args.clear:
        raise TaskValidationError("TEXT 与 --clear 不能同时使用")

    if args.text is None and not args.clear:
        task = manager.get_by_index(args.index)
        print(task.description or f"任务 #{task.display_index} 没有描述")
        return 0

    task = manager.edit(
        args.index,
        description=args.text,
        clear_description=args.clear,
    )
    if args.clear:
        print(f"已清除任务 #{task.display_index} 的描述")
    else:
        print(f"已更新任务 #{task.display_index} 的描述")
    return 0


def _print_summary(stats: TaskStats, shown: int) -> None:
    print(
        f"显示 {shown} / 共 {stats.total} · 完成 {stats.done} · 逾期 {stats.overdue}"
    )


if __name__ == "__main__":
    sys.exit(main())
