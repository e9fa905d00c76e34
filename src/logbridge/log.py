"""
日志入口

所有代码都通过这里的函数记录日志:

    from logbridge import log

    log.info("user signed in")
    log.error("request failed", error=exc, upload=True)

级别顺序: trace < debug < info < warning < error < fatal。
初始化之前（或初始化失败、没有启用任何输出时）所有调用都是静默的空操作。
"""

import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from .config import Settings, get_settings
from .logging.logger import BridgeLogger, StackTrace


@dataclass
class LogContext:
    """
    日志上下文

    由 initialize 构建并发布，进程内同一时间只有一个生效。
    """

    settings: Settings
    logger: Optional[BridgeLogger] = None
    directory: Optional[Path] = None
    file_path: Optional[Path] = None


_lock = threading.Lock()
_context: Optional[LogContext] = None


def get_context() -> LogContext:
    """获取当前日志上下文（未初始化时返回空上下文）"""
    global _context
    with _lock:
        if _context is None:
            _context = LogContext(settings=get_settings())
        return _context


def set_context(context: LogContext) -> LogContext:
    """发布新的日志上下文，并关闭旧日志器的处理器"""
    global _context
    with _lock:
        previous, _context = _context, context
    if previous is not None and previous.logger is not None and previous.logger is not context.logger:
        previous.logger.close()
    return context


def reset() -> None:
    """清空日志上下文"""
    set_context(LogContext(settings=get_settings()))


def _logger() -> Optional[BridgeLogger]:
    context = _context
    return context.logger if context is not None else None


def trace(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
) -> None:
    """
    TRACE: 最低级别，只在 log_level 为 trace/all 时输出
    """
    logger = _logger()
    if logger is not None:
        logger.trace(message, error=error, stack_trace=stack_trace, time=time or datetime.now())


def debug(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
) -> None:
    """DEBUG: 用于确认流程是否正常的非敏感信息"""
    logger = _logger()
    if logger is not None:
        logger.debug(message, error=error, stack_trace=stack_trace, time=time or datetime.now())


def info(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
) -> None:
    """INFO: 重要但不敏感的信息"""
    logger = _logger()
    if logger is not None:
        logger.info(message, error=error, stack_trace=stack_trace, time=time or datetime.now())


def warning(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
) -> None:
    """WARNING: 有问题但影响不大"""
    logger = _logger()
    if logger is not None:
        logger.warning(message, error=error, stack_trace=stack_trace, time=time or datetime.now())


def error(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
    upload: bool = False,
) -> None:
    """
    ERROR: 没有造成严重后果的错误

    upload 为 True 时通过上报回调以非致命错误上报。
    """
    logger = _logger()
    if logger is not None:
        logger.error(
            message,
            error=error,
            stack_trace=stack_trace,
            time=time or datetime.now(),
            upload=upload,
        )


def fatal(
    message: Any,
    *,
    error: Any = None,
    stack_trace: Optional[StackTrace] = None,
    time: Optional[datetime] = None,
    send_fatal: bool = True,
) -> None:
    """
    FATAL: 造成严重后果的错误

    总是上报；send_fatal 为 False 时以非致命错误上报。
    """
    logger = _logger()
    if logger is not None:
        logger.fatal(
            message,
            error=error,
            stack_trace=stack_trace,
            time=time or datetime.now(),
            send_fatal=send_fatal,
        )
