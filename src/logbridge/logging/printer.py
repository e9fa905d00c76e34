"""
美化输出配置

基于 rich 渲染 ANSI 彩色日志:
- 每个级别固定颜色（256 色调色板）
- 级别 emoji 前缀
- 时间显示为「当前时间 + 启动以来耗时」
- 按配置附带调用栈帧（排除本包自身的帧）
"""

import logging
import os
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from typing import IO, Optional

from rich.console import Console
from rich.text import Text
from rich.theme import Theme

from .levels import Level

# 256 色调色板:
#   0: 黑   8: 灰
#   1: 红   9: 亮红
#   2: 绿  10: 亮绿
#   3: 黄  11: 亮黄
#   4: 蓝  12: 亮蓝
#   5: 紫  13: 亮紫
#   6: 青  14: 亮青
#   7: 白  15: 亮白
DEFAULT_LEVEL_COLORS: dict[int, str] = {
    Level.TRACE: "color(8)",
    Level.DEBUG: "color(6)",
    Level.INFO: "color(10)",
    Level.WARNING: "color(5)",
    Level.ERROR: "color(9)",
    Level.FATAL: "color(1)",
}

DEFAULT_LEVEL_EMOJIS: dict[int, str] = {
    Level.TRACE: "",
    Level.DEBUG: "🐛",
    Level.INFO: "💡",
    Level.WARNING: "⚠️",
    Level.ERROR: "⛔",
    Level.FATAL: "👾",
}

_DIVIDER = "┄" * 24


@dataclass
class PrettyPrinter:
    """
    日志渲染配置

    method_count / error_method_count 为 None 时不限制帧数，为 0 时不输出调用栈。
    """

    method_count: int | None = 2
    error_method_count: int | None = 8
    stack_trace_begin_index: int = 0
    line_length: int = 120
    colors: bool = True
    print_emojis: bool = True
    print_time: bool = True
    exclude_paths: list[str] = field(default_factory=list)
    level_colors: dict[int, str] = field(default_factory=lambda: dict(DEFAULT_LEVEL_COLORS))
    level_emojis: dict[int, str] = field(default_factory=lambda: dict(DEFAULT_LEVEL_EMOJIS))
    started_at: datetime = field(default_factory=datetime.now)

    def theme(self) -> Theme:
        """级别颜色主题（RichHandler 使用 logging.level.<name> 样式）"""
        styles = {}
        for level, color in self.level_colors.items():
            styles[f"logging.level.{Level(level).name.lower()}"] = color
        styles["log.time"] = "dim"
        return Theme(styles)

    def create_console(self, file: IO[str], *, force_terminal: bool) -> Console:
        """创建写入指定流的 rich Console"""
        color_system = None
        if self.colors:
            color_system = "256" if force_terminal else "auto"
        return Console(
            file=file,
            theme=self.theme(),
            width=self.line_length,
            force_terminal=force_terminal,
            no_color=not self.colors,
            color_system=color_system,
            highlight=False,
            emoji=False,
        )

    def format_time(self, when: datetime) -> Text:
        """当前时间 + 启动以来耗时"""
        since_start = when - self.started_at
        return Text(f"{when:%H:%M:%S}.{when.microsecond // 1000:03d} (+{since_start})")

    def handler_kwargs(self) -> dict:
        """传给 RichHandler 的参数"""
        return {
            "show_time": self.print_time,
            "omit_repeated_times": False,
            "show_level": True,
            "show_path": False,
            "markup": False,
            "rich_tracebacks": True,
            "tracebacks_width": self.line_length,
            "tracebacks_suppress": list(self.exclude_paths),
            "log_time_format": self.format_time,
        }

    def formatter(self) -> "PrettyFormatter":
        return PrettyFormatter(self)

    def emoji_for(self, levelno: int) -> str:
        if not self.print_emojis:
            return ""
        return self.level_emojis.get(levelno, "")

    def is_excluded(self, filename: str) -> bool:
        """帧是否属于被排除的路径"""
        filename = os.path.abspath(filename)
        return any(filename.startswith(path) for path in self.exclude_paths)

    def format_frames(
        self,
        frames: list[traceback.FrameSummary],
        *,
        from_error: bool = False,
    ) -> list[str]:
        """
        格式化调用栈帧（最近的调用在前）

        Args:
            frames: 帧列表
            from_error: 是否为错误自带的调用栈（使用 error_method_count）
        """
        count = self.error_method_count if from_error else self.method_count
        if count == 0:
            return []

        lines: list[str] = []
        for frame in frames[self.stack_trace_begin_index:]:
            if self.is_excluded(frame.filename):
                continue
            lines.append(f"#{len(lines):<4}{frame.name} ({frame.filename}:{frame.lineno})")
            if count is not None and len(lines) >= count:
                break
        return lines


class PrettyFormatter(logging.Formatter):
    """
    日志格式化器

    消息前加级别 emoji，其后依次附加错误描述和调用栈帧。
    rich 在渲染异常时只调用 formatMessage，所以全部逻辑都放在这里。
    """

    def __init__(self, printer: PrettyPrinter):
        super().__init__("%(message)s")
        self.printer = printer

    def formatMessage(self, record: logging.LogRecord) -> str:
        message = super().formatMessage(record)

        emoji = self.printer.emoji_for(record.levelno)
        lines = [f"{emoji} {message}" if emoji else message]

        error_text: Optional[str] = getattr(record, "error_text", None)
        if error_text:
            lines.append(_DIVIDER)
            lines.append(error_text)

        frames = self.printer.format_frames(
            getattr(record, "call_frames", None) or [],
            from_error=getattr(record, "frames_from_error", False),
        )
        if frames:
            lines.append(_DIVIDER)
            lines.extend(frames)

        return "\n".join(lines)
