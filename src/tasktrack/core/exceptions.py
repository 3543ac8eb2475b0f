"""TaskTrack 异常体系

业务规则异常（not-found / invalid-transition / already-in-state /
ambiguous-match）在任何写入之前同步抛出，集合保持不变。
数据损坏异常不做本地恢复，保留原始解析错误直接交给调用方。
I/O 异常（OSError）不包装，原样传播。
"""

from collections.abc import Sequence
from pathlib import Path


class TaskTrackError(Exception):
    """TaskTrack 基础异常"""

    def __init__(self, message: str, recoverable: bool = True) -> None:
        """
        Args:
            message: 错误描述
            recoverable: 调用方是否可通过修正输入恢复
        """
        super().__init__(message)
        self.recoverable = recoverable


class TaskValidationError(TaskTrackError, ValueError):
    """输入不合法（例如标题去空白后为空）"""


class TaskNotFoundError(TaskTrackError, LookupError):
    """按编号或 ID 前缀找不到任务"""

    def __init__(self, ref: int | str, message: str | None = None) -> None:
        """
        Args:
            ref: 查找时使用的编号或 ID 前缀
            message: 自定义错误描述
        """
        if message is None:
            if isinstance(ref, int):
                message = f"找不到编号为 #{ref} 的任务，运行 'tasktrack list' 查看可用编号"
            else:
                message = f"找不到 ID 匹配 '{ref}' 的任务"
        super().__init__(message)
        self.ref = ref


class InvalidTransitionError(TaskTrackError):
    """当前状态不在该操作允许的源状态集合内"""

    def __init__(self, current: str, target: str, allowed: Sequence[str]) -> None:
        """
        Args:
            current: 当前状态
            target: 目标状态
            allowed: 该操作允许的源状态
        """
        allowed_text = ", ".join(allowed)
        super().__init__(
            f"无法将任务从 '{current}' 变更为 '{target}'，允许的源状态: {allowed_text}"
        )
        self.current = current
        self.target = target
        self.allowed = tuple(allowed)


class AlreadyInStateError(TaskTrackError):
    """目标状态与当前状态相同"""

    def __init__(self, display_index: int, status: str) -> None:
        super().__init__(f"任务 #{display_index} 已经是 '{status}' 状态")
        self.display_index = display_index
        self.status = status


class AmbiguousMatchError(TaskTrackError):
    """ID 前缀匹配到多个任务，需要更长的前缀"""

    def __init__(self, prefix: str, matches: Sequence[str]) -> None:
        """
        Args:
            prefix: 用户输入的前缀
            matches: 所有匹配到的任务 ID
        """
        super().__init__(
            f"有 {len(matches)} 个任务匹配前缀 '{prefix}'，请提供更多字符"
        )
        self.prefix = prefix
        self.matches = tuple(matches)


class DataCorruptionError(TaskTrackError):
    """任务文件无法解析

    不可本地恢复：静默丢弃或修复用户数据都不可接受。
    原始异常通过 __cause__ 与 original_error 保留。
    """

    def __init__(self, path: str | Path, original_error: Exception) -> None:
        """
        Args:
            path: 出错的文件路径
            original_error: 原始解析异常
        """
        super().__init__(
            f"无法解析任务文件 '{path}': {original_error}",
            recoverable=False,
        )
        self.path = Path(path)
        self.original_error = original_error
