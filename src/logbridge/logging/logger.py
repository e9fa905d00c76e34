"""
BridgeLogger

包装标准库 logging.Logger，提供 trace/debug/info/warning/error/fatal 六个级别，
并把 error(upload=True) 和 fatal 转发给外部的上报回调（如崩溃收集服务）。
"""

import json
import logging
import os
import sys
import traceback
from datetime import datetime
from types import TracebackType
from typing import Any, Callable, Optional, Protocol, Union

from .levels import Level
from .printer import PrettyPrinter

StackTrace = Union[TracebackType, traceback.StackSummary]

# logbridge 包目录，用于定位真正的调用方
_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class UploadCallback(Protocol):
    """上报回调 (payload, stack, *, reason, fatal)"""

    def __call__(
        self,
        exception: Any,
        stack: Optional[StackTrace],
        *,
        reason: Any = None,
        fatal: bool = False,
    ) -> None: ...


def _render_message(message: Any) -> str:
    if callable(message):
        message = message()
    if isinstance(message, (dict, list)):
        return json.dumps(message, ensure_ascii=False, indent=2, default=str)
    return str(message)


def _current_stack() -> traceback.StackSummary:
    """当前调用栈（不含本函数）"""
    return traceback.extract_stack(sys._getframe(1))


def _find_caller() -> tuple[str, int, str]:
    """第一个不属于 logbridge 的调用帧"""
    frame = sys._getframe(1)
    while frame is not None:
        filename = os.path.abspath(frame.f_code.co_filename)
        if not filename.startswith(_PACKAGE_DIR):
            return frame.f_code.co_filename, frame.f_lineno, frame.f_code.co_name
        frame = frame.f_back
    return "(unknown file)", 0, "(unknown function)"


class BridgeLogger:
    """
    日志器

    Usage:
        bridge = BridgeLogger(logging.getLogger("app"), PrettyPrinter())
        bridge.info("started")
        bridge.error("failed", error=exc, upload=True)
    """

    def __init__(
        self,
        logger: logging.Logger,
        printer: Optional[PrettyPrinter] = None,
        on_upload: Optional[UploadCallback] = None,
    ) -> None:
        self._logger = logger
        self._handlers = list(logger.handlers)
        self.printer = printer or PrettyPrinter()
        self.on_upload = on_upload

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    @property
    def level(self) -> int:
        return self._logger.level

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def trace(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
    ) -> None:
        self._log(Level.TRACE, message, error, stack_trace, time)

    def debug(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
    ) -> None:
        self._log(Level.DEBUG, message, error, stack_trace, time)

    def info(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
    ) -> None:
        self._log(Level.INFO, message, error, stack_trace, time)

    def warning(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
    ) -> None:
        self._log(Level.WARNING, message, error, stack_trace, time)

    def error(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
        upload: bool = False,
    ) -> None:
        """
        ERROR 级别

        upload 为 True 时以非致命错误上报。
        """
        stack = self._resolve_stack(error, stack_trace)
        if upload and self.on_upload is not None:
            self.on_upload(message, stack, reason=error, fatal=False)
        self._log(Level.ERROR, message, error, stack, time)

    def fatal(
        self,
        message: Any,
        *,
        error: Any = None,
        stack_trace: Optional[StackTrace] = None,
        time: Optional[datetime] = None,
        send_fatal: bool = True,
    ) -> None:
        """
        FATAL 级别

        总是上报；send_fatal 为 False 时上报为非致命错误。
        """
        stack = self._resolve_stack(error, stack_trace)
        if self.on_upload is not None:
            self.on_upload(message, stack, reason=error, fatal=send_fatal)
        self._log(Level.FATAL, message, error, stack, time)

    def close(self) -> None:
        """关闭并移除创建时挂载的处理器"""
        handlers, self._handlers = self._handlers, []
        for handler in handlers:
            self._logger.removeHandler(handler)
            handler.close()

    @staticmethod
    def _resolve_stack(error: Any, stack_trace: Optional[StackTrace]) -> StackTrace:
        if stack_trace is not None:
            return stack_trace
        tb = getattr(error, "__traceback__", None)
        if tb is not None:
            return tb
        # 跳过 _resolve_stack 和 error/fatal 两层
        return traceback.extract_stack(sys._getframe(2))

    def _log(
        self,
        level: int,
        message: Any,
        error: Any,
        stack_trace: Optional[StackTrace],
        time: Optional[datetime],
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return

        exc_info = None
        error_text = None
        frames: list[traceback.FrameSummary] = []
        from_error = False

        if isinstance(error, BaseException):
            tb = stack_trace if isinstance(stack_trace, TracebackType) else error.__traceback__
            exc_info = (type(error), error, tb)
            if isinstance(stack_trace, traceback.StackSummary):
                frames, from_error = list(reversed(stack_trace)), True
        else:
            if error is not None:
                error_text = str(error)
            if isinstance(stack_trace, TracebackType):
                frames, from_error = list(reversed(traceback.extract_tb(stack_trace))), True
            elif isinstance(stack_trace, traceback.StackSummary):
                frames, from_error = list(reversed(stack_trace)), True
            elif self.printer.method_count != 0:
                frames = list(reversed(_current_stack()))

        pathname, lineno, func = _find_caller()
        record = self._logger.makeRecord(
            self._logger.name,
            level,
            pathname,
            lineno,
            _render_message(message),
            (),
            exc_info,
            func,
            {
                "error_text": error_text,
                "call_frames": frames,
                "frames_from_error": from_error,
            },
        )
        # 最高级别显示为 FATAL 而不是 logging 的 CRITICAL
        record.levelname = Level(level).name
        if time is not None:
            record.created = time.timestamp()
            record.msecs = time.microsecond // 1000
        self._logger.handle(record)
