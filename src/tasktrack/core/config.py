"""配置模块 -- 可通过环境变量覆盖

包含任务文件路径解析与日志相关的环境变量。
所有值在调用时读取，而非导入时，便于测试中 monkeypatch。
"""

import os
from pathlib import Path

# 任务文件路径覆盖
STORAGE_PATH_ENV = "TASKTRACK_STORAGE_PATH"

# 日志输出格式（dev / json）与级别
LOG_FORMAT_ENV = "TASKTRACK_LOG_FORMAT"
LOG_LEVEL_ENV = "TASKTRACK_LOG_LEVEL"

DEFAULT_DIR_NAME = ".tasktrack"
DEFAULT_FILE_NAME = "tasks.json"


def get_default_storage_path() -> Path:
    """默认任务文件：~/.tasktrack/tasks.json"""
    return Path.home() / DEFAULT_DIR_NAME / DEFAULT_FILE_NAME


def resolve_storage_path(explicit_path: str | Path | None = None) -> Path:
    """解析任务文件路径，先匹配者优先

    1. 显式传入的路径（CLI --storage）
    2. TASKTRACK_STORAGE_PATH 环境变量
    3. ~/.tasktrack/tasks.json

    Returns:
        绝对路径
    """
    if explicit_path is not None and str(explicit_path).strip():
        return _absolute(explicit_path)

    env_path = os.environ.get(STORAGE_PATH_ENV, "")
    if env_path.strip():
        return _absolute(env_path)

    return get_default_storage_path()


def get_log_format() -> str:
    """日志渲染模式，默认 dev"""
    return os.environ.get(LOG_FORMAT_ENV, "dev").strip().lower() or "dev"


def get_log_level(default: str = "WARNING") -> str:
    """日志级别，默认 WARNING，保持命令输出干净"""
    return os.environ.get(LOG_LEVEL_ENV, default).strip().upper() or default


def _absolute(path: str | Path) -> Path:
    return Path(str(path).strip()).expanduser().resolve()
