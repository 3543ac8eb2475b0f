"""TaskManager -- 任务业务规则

所有操作遵循同一流程：
1. 从 Store 加载完整集合
2. 定位并校验目标（校验失败直接抛异常，不写入）
3. 内存中修改
4. 整体写回
5. 返回任务的操作重新加载并按 id 定位，拿到提交后正确的 display_index

操作之间不共享任何可变集合，每次操作持有自己的快照。
"""

from collections.abc import Callable, Iterable, Sequence
from datetime import datetime
from enum import StrEnum
from typing import TypeVar

import structlog

from .exceptions import (
    AlreadyInStateError,
    AmbiguousMatchError,
    InvalidTransitionError,
    TaskNotFoundError,
    TaskValidationError,
)
from .models import (
    PRIORITY_ORDER,
    STATUS_ORDER,
    TRANSITIONS,
    SortKey,
    Task,
    TaskPriority,
    TaskStats,
    TaskStatus,
    Transition,
    utcnow,
)
from .store import TaskStorage

log = structlog.get_logger()

StrEnumT = TypeVar("StrEnumT", bound=StrEnum)


def normalize_tags(tags: Iterable[str] | None) -> list[str]:
    """去空白、转小写，丢弃空标签；不去重"""
    if tags is None:
        return []
    return [t.strip().lower() for t in tags if t and t.strip()]


def _clean_title(title: str) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise TaskValidationError("任务标题不能为空")
    return cleaned


def _clean_text(text: str | None) -> str | None:
    # 空白描述保留为 ""，清除描述走 clear_description
    if text is None:
        return None
    return text.strip()


class TaskManager:
    """任务业务服务

    Args:
        storage: 任意满足 TaskStorage 协议的存储
        clock: 返回当前 UTC 时间的函数，测试中可替换
    """

    def __init__(
        self,
        storage: TaskStorage,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._storage = storage
        self._clock = clock

    @property
    def storage(self) -> TaskStorage:
        return self._storage

    # ---- 查询 ----

    def get_all(self) -> list[Task]:
        """全部任务，按 created_at 升序"""
        return sorted(self._storage.load(), key=lambda t: t.created_at)

    def get_filtered(
        self,
        status: TaskStatus | str | None = None,
        include_overdue: bool = False,
        tag: str | None = None,
        sort_by: SortKey | str = SortKey.CREATED,
    ) -> list[Task]:
        """过滤 + 排序

        Args:
            status: 仅保留该状态；为空表示不按状态过滤
            include_overdue: 与 status 同时使用时，并入所有当前逾期的任务
            tag: 标签精确匹配（忽略大小写）
            sort_by: created（默认）/ due / priority / title / status
        """
        key = _parse_sort_key(sort_by)
        wanted = _parse_status(status) if status is not None else None
        now = self._clock()
        tasks = self._storage.load()

        if wanted is not None:
            tasks = [
                t
                for t in tasks
                if t.status == wanted or (include_overdue and t.is_overdue(now))
            ]

        if tag is not None and tag.strip():
            needle = tag.strip().lower()
            tasks = [t for t in tasks if needle in (x.lower() for x in t.tags)]

        return _sort_tasks(tasks, key)

    def get_overdue(self) -> list[Task]:
        """当前逾期的任务，按 created_at 升序"""
        now = self._clock()
        return [t for t in self.get_all() if t.is_overdue(now)]

    def get_by_index(self, display_index: int) -> Task:
        """按 display_index 查找

        Raises:
            TaskNotFoundError: 编号不存在
        """
        return _find_by_index(self._storage.load(), display_index)

    def get_by_id(self, id_prefix: str) -> Task:
        """按 ID 前缀查找（忽略大小写）

        Raises:
            TaskNotFoundError: 没有匹配
            AmbiguousMatchError: 匹配到多个任务
        """
        prefix = (id_prefix or "").strip().lower()
        if not prefix:
            raise TaskValidationError("ID 前缀不能为空")

        matches = [t for t in self._storage.load() if t.id.lower().startswith(prefix)]
        if not matches:
            raise TaskNotFoundError(id_prefix)
        if len(matches) > 1:
            raise AmbiguousMatchError(id_prefix, [t.id for t in matches])
        return matches[0]

    def get_stats(self) -> TaskStats:
        """统计快照"""
        return TaskStats.from_tasks(self._storage.load(), now=self._clock())

    # ---- 创建 ----

    def add(
        self,
        title: str,
        description: str | None = None,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        due_date: datetime | None = None,
        tags: Iterable[str] | None = None,
    ) -> Task:
        """创建任务并持久化

        Returns:
            重新加载后的任务（display_index 已分配）
        """
        now = self._clock()
        task = Task(
            title=_clean_title(title),
            description=_clean_text(description),
            priority=_parse_priority(priority),
            due_date=due_date,
            tags=normalize_tags(tags),
            status=TaskStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        tasks = self._storage.load()
        tasks.append(task)
        self._storage.save(tasks)

        created = self._reload(task.id)
        log.info(
            "task_created",
            task_id=created.id,
            display_index=created.display_index,
            priority=created.priority.value,
        )
        return created

    # ---- 修改 ----

    def edit(
        self,
        display_index: int,
        title: str | None = None,
        description: str | None = None,
        priority: TaskPriority | str | None = None,
        due_date: datetime | None = None,
        clear_due_date: bool = False,
        tags: Iterable[str] | None = None,
        clear_description: bool = False,
    ) -> Task:
        """部分更新：只修改显式提供的字段

        clear_due_date / clear_description 优先于同时提供的新值；
        tags 提供时整体替换，不合并。
        """
        # 先完成全部校验，再修改
        new_title = _clean_title(title) if title is not None else None
        new_priority = _parse_priority(priority) if priority is not None else None

        tasks = self._storage.load()
        task = _find_by_index(tasks, display_index)

        changed: list[str] = []
        if new_title is not None:
            task.title = new_title
            changed.append("title")
        if clear_description:
            task.description = None
            changed.append("description")
        elif description is not None:
            task.description = _clean_text(description)
            changed.append("description")
        if new_priority is not None:
            task.priority = new_priority
            changed.append("priority")
        if clear_due_date:
            task.due_date = None
            changed.append("due_date")
        elif due_date is not None:
            task.due_date = due_date
            changed.append("due_date")
        if tags is not None:
            task.tags = normalize_tags(tags)
            changed.append("tags")

        task.updated_at = self._clock()
        self._storage.save(tasks)

        log.info("task_edited", task_id=task.id, fields=changed)
        return self._reload(task.id)

    # ---- 状态流转 ----

    def start(self, display_index: int) -> Task:
        """Pending -> InProgress"""
        return self._transition(display_index, Transition.START)

    def complete(self, display_index: int) -> Task:
        """Pending / InProgress -> Done"""
        return self._transition(display_index, Transition.COMPLETE)

    def cancel(self, display_index: int) -> Task:
        """Pending / InProgress -> Canceled"""
        return self._transition(display_index, Transition.CANCEL)

    def reopen(self, display_index: int) -> Task:
        """Done / Canceled -> Pending，清空 started_at 与 completed_at"""
        return self._transition(display_index, Transition.REOPEN)

    # ---- 删除 ----

    def remove(self, display_index: int) -> Task:
        """永久删除一个任务

        Returns:
            被删除的任务（display_index 为删除前的编号）
        """
        tasks = self._storage.load()
        task = _find_by_index(tasks, display_index)
        remaining = [t for t in tasks if t.id != task.id]
        self._storage.save(remaining)

        log.info("task_removed", task_id=task.id, display_index=display_index)
        return task

    def purge(self) -> int:
        """一次性删除所有 Done 与 Canceled 任务

        Returns:
            删除的数量
        """
        tasks = self._storage.load()
        remaining = [t for t in tasks if not t.is_closed]
        removed = len(tasks) - len(remaining)
        if removed:
            self._storage.save(remaining)

        log.info("tasks_purged", removed=removed, remaining=len(remaining))
        return removed

    # ---- 内部辅助 ----

    def _transition(self, display_index: int, transition: Transition) -> Task:
        target, allowed = TRANSITIONS[transition]

        tasks = self._storage.load()
        task = _find_by_index(tasks, display_index)
        _guard(task, target, allowed)

        previous = task.status
        now = self._clock()
        task.status = target
        if transition == Transition.START:
            task.started_at = now
        elif transition == Transition.COMPLETE:
            task.completed_at = now
        elif transition == Transition.REOPEN:
            task.started_at = None
            task.completed_at = None
        task.updated_at = now

        self._storage.save(tasks)

        log.info(
            "task_transitioned",
            task_id=task.id,
            from_status=previous.value,
            to_status=target.value,
        )
        return self._reload(task.id)

    def _reload(self, task_id: str) -> Task:
        for task in self._storage.load():
            if task.id == task_id:
                return task
        raise TaskNotFoundError(task_id)

def _parse_choice(enum_cls: type[StrEnumT], value: StrEnumT | str, what: str) -> StrEnumT:
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise TaskValidationError(f"未知的{what} '{value}'，可选: {choices}") from None


def _parse_sort_key(sort_by: SortKey | str) -> SortKey:
    return _parse_choice(SortKey, sort_by, "排序字段")


def _parse_status(status: TaskStatus | str) -> TaskStatus:
    return _parse_choice(TaskStatus, status, "状态")


def _parse_priority(priority: TaskPriority | str) -> TaskPriority:
    return _parse_choice(TaskPriority, priority, "优先级")


def _find_by_index(tasks: Sequence[Task], display_index: int) -> Task:
    for task in tasks:
        if task.display_index == display_index:
            return task
    raise TaskNotFoundError(display_index)


def _guard(
    task: Task,
    target: TaskStatus,
    allowed: Sequence[TaskStatus],
) -> None:
    """状态机守卫：先拒绝同态，再拒绝非法源状态"""
    if task.status == target:
        raise AlreadyInStateError(task.display_index, target.label)
    if task.status not in allowed:
        raise InvalidTransitionError(
            task.status.label,
            target.label,
            [s.label for s in allowed],
        )


def _sort_tasks(tasks: list[Task], key: SortKey) -> list[Task]:
    """稳定排序"""
    if key == SortKey.DUE:
        # 无截止时间的排在最后
        return sorted(
            tasks,
            key=lambda t: (t.due_date is None, t.due_date or t.created_at),
        )
    if key == SortKey.PRIORITY:
        return sorted(tasks, key=lambda t: -PRIORITY_ORDER[t.priority])
    if key == SortKey.TITLE:
        return sorted(tasks, key=lambda t: t.title.casefold())
    if key == SortKey.STATUS:
        return sorted(tasks, key=lambda t: STATUS_ORDER[t.status])
    return sorted(tasks, key=lambda t: t.created_at)
