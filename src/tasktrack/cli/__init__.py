"""TaskTrack CLI -- 命令层

python -m tasktrack.cli <command>
"""

from .main import build_parser, main

__all__ = ["build_parser", "main"]
