"""
CLI 入口使用的 UTF-8 输出设置

日志消息带有级别 emoji，Windows 控制台默认编码无法输出时会抛出
UnicodeEncodeError，因此命令行入口最先导入本模块:
    import logbridge._ensure_utf8  # noqa: F401
"""

import sys


def ensure_utf8_stdio() -> None:
    """把 stdout/stderr 切换为 UTF-8，无法编码的字符用替代符号输出"""
    for stream in (sys.stdout, sys.stderr):
        reconfigure = getattr(stream, "reconfigure", None)
        if reconfigure is None:
            continue
        try:
            reconfigure(encoding="utf-8", errors="replace")
        except (OSError, ValueError):
            pass


if sys.platform == "win32":
    ensure_utf8_stdio()
