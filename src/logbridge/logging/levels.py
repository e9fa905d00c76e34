"""
日志级别

在标准 logging 的级别之上补充 TRACE / ALL / OFF，
级别顺序: trace < debug < info < warning < error < fatal
"""

import logging
from enum import IntEnum


class Level(IntEnum):
    """日志级别（数值与 logging 模块对齐）"""

    ALL = 1
    TRACE = 5
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    FATAL = logging.CRITICAL
    OFF = 100


TRACE = Level.TRACE.value

logging.addLevelName(TRACE, "TRACE")

_ALIASES = {
    "warn": Level.WARNING,
    "critical": Level.FATAL,
}


def resolve_level(name: str | None) -> tuple[Level, bool]:
    """
    按名称解析日志级别

    Returns:
        (级别, 名称是否可识别)；无法识别时返回 (INFO, False)
    """
    key = (name or "").strip().lower()
    for level in Level:
        if level.name.lower() == key:
            return level, True
    if key in _ALIASES:
        return _ALIASES[key], True
    return Level.INFO, False
