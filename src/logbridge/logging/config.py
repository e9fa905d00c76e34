"""
日志初始化

初始化顺序:
1. 重置启动历史缓存
2. 启用文件日志时: 解析/创建日志目录、清理旧文件、创建本次运行的日志文件
3. 解析本包的位置，用于从调用栈中排除本包自身的帧
4. 构建日志器（文件输出 / 控制台输出，至少启用一个时）
5. 向 threading / sys / asyncio 的错误回调注册日志处理器
6. 把启动历史作为一条日志输出

任何一步失败都不会抛给调用方，只会记录在启动历史里或交给上报回调。
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import os
import sys
import threading
from pathlib import Path
from types import TracebackType
from typing import Optional, TextIO

from .. import log
from ..config import Settings, get_settings
from ..errors import LogDirectoryError
from ..hooks import loop_errors, thread_errors, uncaught_errors
from .directories import create_log_file, prepare_log_directory
from .handlers import AnsiFileHandler, DeveloperConsoleHandler
from .history import StartupHistory, get_startup_history
from .levels import resolve_level
from .logger import BridgeLogger, UploadCallback
from .printer import PrettyPrinter

logger = logging.getLogger(__name__)

_hooks_lock = threading.Lock()
_hooks_registered = False


def _this_package(history: StartupHistory) -> Optional[tuple[str, str]]:
    """解析本包的导入名和目录"""
    try:
        frame = inspect.currentframe()
        module_name = frame.f_globals["__name__"]
        package = module_name.split(".")[0]
        path = os.path.dirname(os.path.abspath(sys.modules[package].__file__))

        history.write(f"-> Package name parsed:\n`{package}` ({path})")
        return package, path
    except Exception:
        history.error("-> Package name parsing failed.")
    return None


def build_logger(
    name: str,
    level: int,
    handlers: list[logging.Handler],
) -> logging.Logger:
    """配置底层 logging.Logger（清除旧的处理器）"""
    std_logger = logging.getLogger(name)
    for handler in list(std_logger.handlers):
        std_logger.removeHandler(handler)
        handler.close()

    std_logger.setLevel(int(level))
    std_logger.propagate = False
    for handler in handlers:
        std_logger.addHandler(handler)
    return std_logger


def _log_thread_error(error: BaseException, tb: Optional[TracebackType]) -> bool:
    log.error(
        "[ThreadError] Unhandled exception in thread",
        error=error,
        stack_trace=tb,
        upload=True,
    )
    return not log.get_context().settings.debug


def _log_uncaught_error(error: BaseException, tb: Optional[TracebackType]) -> bool:
    log.error(
        "[UncaughtError] Unhandled Exception",
        error=error,
        stack_trace=tb,
        upload=True,
    )
    return not log.get_context().settings.debug


def _log_loop_error(error: BaseException, tb: Optional[TracebackType]) -> bool:
    log.error(
        "[AsyncioError] Unhandled exception in event loop",
        error=error,
        stack_trace=tb,
        upload=True,
    )
    return not log.get_context().settings.debug


def _register_error_hooks(settings: Settings, history: StartupHistory) -> None:
    """注册错误处理器（每个进程 / 每个事件循环只注册一次）"""
    global _hooks_registered

    with _hooks_lock:
        if not _hooks_registered:
            thread_errors.present_default = settings.error_default_present
            thread_errors.add_handler(_log_thread_error)
            history.write("-> threading.excepthook logger added")

            uncaught_errors.add_handler(_log_uncaught_error)
            history.write("-> sys.excepthook logger added")
            _hooks_registered = True

    if settings.log_asyncio_errors:
        try:
            registry = loop_errors()
        except RuntimeError:
            return
        if _log_loop_error not in registry.handlers:
            registry.add_handler(_log_loop_error)
            history.write("-> asyncio exception handler logger added")


def reset_error_hooks() -> None:
    """移除已注册的错误处理器并恢复 sys / threading 的原有回调"""
    global _hooks_registered

    with _hooks_lock:
        thread_errors.reset()
        uncaught_errors.reset()
        _hooks_registered = False


def _flush_history(history: StartupHistory) -> None:
    if history.is_empty():
        return
    message = history.render()
    if history.has_errors:
        log.fatal(message, send_fatal=False)
    else:
        log.trace(message)


async def initialize(
    settings: Optional[Settings] = None,
    on_upload: Optional[UploadCallback] = None,
    *,
    console_stream: Optional[TextIO] = None,
) -> log.LogContext:
    """
    初始化日志系统，之后直接使用 logbridge.log 中的函数

    Args:
        settings: 配置（默认使用全局配置）
        on_upload: 上报回调 (payload, stack, *, reason, fatal)
        console_stream: 控制台输出流（默认 sys.stdout）

    Returns:
        新的日志上下文；没有启用任何输出或初始化失败时其中 logger 为 None
    """
    settings = settings or get_settings()
    history = get_startup_history()
    history.reset("[Logger] Initializing history")

    context = log.LogContext(settings=settings)

    try:
        if settings.log_file:
            try:
                context.directory = await prepare_log_directory(settings, history)
                context.file_path = await create_log_file(context.directory, settings.log_file_name)
            except (OSError, LogDirectoryError) as e:
                context.file_path = None
                history.error("-> Something went wrong while creating log file directory:", e)

        package = _this_package(history)

        handlers: list[logging.Handler] = []
        printer = PrettyPrinter(
            method_count=settings.method_count,
            error_method_count=None,
            line_length=settings.line_length,
            exclude_paths=[package[1]] if package else [],
        )

        if context.file_path is not None:
            try:
                handlers.append(AnsiFileHandler(context.file_path, printer))
            except OSError as e:
                context.file_path = None
                history.error("-> Something went wrong while opening log file:", e)

        if settings.console_enabled:
            handlers.append(DeveloperConsoleHandler(printer, console_stream))

        if not handlers:
            log.set_context(context)
            return context

        level, known = resolve_level(settings.log_level)
        if not known:
            history.write(f"-> Unknown log level `{settings.log_level}`, using `{level.name.lower()}`")

        context.logger = BridgeLogger(
            build_logger(settings.logger_name, level, handlers),
            printer,
            on_upload,
        )
        log.set_context(context)

        log.info("[Logger] Initialized")

        if context.file_path is not None:
            history.write(f"-> Output file name:\n`{context.file_path.name}`")

        _register_error_hooks(settings, history)
        _flush_history(history)
    except Exception as e:
        logger.debug(f"Logger initialization failed: {e}")
        if context.logger is not None:
            context.logger.close()
        log.set_context(log.LogContext(settings=settings))
        if on_upload is not None:
            on_upload(
                "[Logger] An exception occurred while initializing",
                e.__traceback__,
                reason=e,
                fatal=True,
            )
        return log.get_context()

    return context


def initialize_sync(
    settings: Optional[Settings] = None,
    on_upload: Optional[UploadCallback] = None,
    *,
    console_stream: Optional[TextIO] = None,
) -> log.LogContext:
    """在没有事件循环的程序中初始化日志系统"""
    return asyncio.run(initialize(settings, on_upload, console_stream=console_stream))


def log_directory(context: Optional[log.LogContext] = None) -> Optional[Path]:
    """当前日志目录"""
    return (context or log.get_context()).directory
