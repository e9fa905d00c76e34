"""
logbridge 异常类型
"""

from pathlib import Path


class LogBridgeError(Exception):
    """logbridge 基础异常"""


class LogDirectoryError(LogBridgeError):
    """日志目录无法解析或创建"""

    def __init__(self, path: Path | None, message: str) -> None:
        self.path = path
        self.message = message
        super().__init__(f"{message}: {path}" if path else message)
