"""
自定义日志处理器

功能:
- AnsiFileHandler: 写入 .ans 文件，始终保留 ANSI 颜色
- DeveloperConsoleHandler: 控制台输出，整条日志一次性写出，避免多线程下互相穿插
"""

import io
import logging
import os
import sys
import threading
from typing import TextIO

from rich.console import ConsoleRenderable
from rich.highlighter import NullHighlighter
from rich.logging import RichHandler
from rich.text import Text

from .printer import PrettyPrinter


class PrettyRichHandler(RichHandler):
    """
    使用 PrettyPrinter 配置的 RichHandler

    整条消息按级别颜色着色。
    """

    def __init__(self, console, printer: PrettyPrinter, level: int = logging.NOTSET):
        super().__init__(
            level,
            console=console,
            highlighter=NullHighlighter(),
            **printer.handler_kwargs(),
        )
        self.printer = printer
        self.setFormatter(printer.formatter())

    def render_message(self, record: logging.LogRecord, message: str) -> ConsoleRenderable:
        renderable = super().render_message(record, message)
        if self.printer.colors and isinstance(renderable, Text):
            renderable.stylize(f"logging.level.{record.levelname.lower()}")
        return renderable


class AnsiFileHandler(PrettyRichHandler):
    """
    ANSI 文件处理器

    日志文件为 .ans 格式，可以用支持 ANSI 颜色的查看器阅读。
    """

    def __init__(
        self,
        filename: str | os.PathLike,
        printer: PrettyPrinter,
        level: int = logging.NOTSET,
        encoding: str = "utf-8",
    ):
        self.baseFilename = os.path.abspath(os.fspath(filename))
        self.stream: TextIO | None = open(self.baseFilename, "a", encoding=encoding)
        console = printer.create_console(self.stream, force_terminal=True)
        super().__init__(console, printer, level)

    def emit(self, record: logging.LogRecord) -> None:
        if self.stream is None:
            return
        super().emit(record)
        self.flush()

    def flush(self) -> None:
        self.acquire()
        try:
            if self.stream is not None and not self.stream.closed:
                self.stream.flush()
        finally:
            self.release()

    def close(self) -> None:
        self.acquire()
        try:
            if self.stream is not None:
                try:
                    self.stream.flush()
                finally:
                    self.stream.close()
                    self.stream = None
        finally:
            self.release()
            super().close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.baseFilename} ({logging.getLevelName(self.level)})>"


class DeveloperConsoleHandler(PrettyRichHandler):
    """
    控制台日志处理器

    每条日志先在缓冲区中完整渲染，再一次性写入流。

    Windows 特殊处理:
    - 强制使用 UTF-8 编码输出，避免 emoji 触发 UnicodeEncodeError
    - 尝试开启虚拟终端处理以支持 ANSI 颜色
    """

    _write_lock = threading.Lock()

    def __init__(
        self,
        printer: PrettyPrinter,
        stream: TextIO | None = None,
        level: int = logging.NOTSET,
    ):
        output_stream = stream or sys.stdout
        if sys.platform == "win32" and hasattr(output_stream, "buffer"):
            output_stream = io.TextIOWrapper(
                output_stream.buffer, encoding="utf-8", errors="replace", line_buffering=True
            )
        self.stream = output_stream
        self._supports_color = self._check_color_support()
        console = printer.create_console(self.stream, force_terminal=self._supports_color)
        super().__init__(console, printer, level)

    def _check_color_support(self) -> bool:
        """检测终端是否支持颜色"""
        if sys.platform == "win32":
            try:
                import ctypes

                kernel32 = ctypes.windll.kernel32
                # ENABLE_PROCESSED_OUTPUT | ENABLE_WRAP_AT_EOL_OUTPUT | ENABLE_VIRTUAL_TERMINAL_PROCESSING
                kernel32.SetConsoleMode(kernel32.GetStdHandle(-11), 7)
                return True
            except Exception:
                return False

        return hasattr(self.stream, "isatty") and self.stream.isatty()

    def emit(self, record: logging.LogRecord) -> None:
        with self.console.capture() as capture:
            super().emit(record)
        output = capture.get()
        if not output:
            return

        with self._write_lock:
            try:
                self.stream.write(output)
            except UnicodeEncodeError:
                # 最后兜底：按流自身的编码用 replace 策略重试
                encoding = getattr(self.stream, "encoding", None) or "utf-8"
                self.stream.write(output.encode(encoding, errors="replace").decode(encoding))
            self.flush()

    def flush(self) -> None:
        if hasattr(self.stream, "flush"):
            self.stream.flush()
