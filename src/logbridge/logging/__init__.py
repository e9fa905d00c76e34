"""
logbridge 日志系统

功能:
- 日志文件输出（每次运行一个 .ans 文件，小时粒度）
- 启动时清理旧日志文件，只保留最近 N 个
- 控制台彩色输出（仅调试模式）
- 启动历史缓存（初始化完成后统一输出）
"""

from .cleaner import LogCleaner, enforce_retention
from .config import initialize, initialize_sync, reset_error_hooks
from .handlers import AnsiFileHandler, DeveloperConsoleHandler
from .history import StartupHistory, get_startup_history
from .levels import TRACE, Level, resolve_level
from .logger import BridgeLogger
from .printer import PrettyPrinter

__all__ = [
    "initialize",
    "initialize_sync",
    "reset_error_hooks",
    "LogCleaner",
    "enforce_retention",
    "AnsiFileHandler",
    "DeveloperConsoleHandler",
    "StartupHistory",
    "get_startup_history",
    "TRACE",
    "Level",
    "resolve_level",
    "BridgeLogger",
    "PrettyPrinter",
]
