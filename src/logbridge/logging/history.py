"""
启动历史缓存

日志器初始化完成之前，所有状态信息（目录创建、旧文件清理、处理器注册、
遇到的错误）都先写入这里，初始化结束后作为一条日志统一输出:
- 有错误时以 fatal 级别输出（不作为真正的崩溃上报）
- 否则以 trace 级别输出

全局单例访问，线程安全。
"""

import threading
from typing import Optional


class StartupHistory:
    """
    启动历史缓存

    每次初始化开始时 reset，结束时 flush，之后不再保留。
    """

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._has_errors = False
        self._lock = threading.Lock()

    @property
    def has_errors(self) -> bool:
        """是否记录过错误"""
        return self._has_errors

    @property
    def lines(self) -> list[str]:
        with self._lock:
            return list(self._lines)

    def reset(self, header: Optional[str] = None) -> None:
        """清空缓存和错误标记"""
        with self._lock:
            self._lines.clear()
            self._has_errors = False
            if header:
                self._lines.append(header)

    def write(self, line: str) -> None:
        """追加一行状态信息"""
        with self._lock:
            self._lines.append(line)

    def error(self, line: str, error: Optional[BaseException] = None) -> None:
        """
        追加一行错误信息并设置错误标记

        Args:
            line: 描述
            error: 相关异常（可选，附加在描述之后）
        """
        if error is not None:
            line = f"{line}\n{error}"
        with self._lock:
            self._lines.append(line)
            self._has_errors = True

    def is_empty(self) -> bool:
        with self._lock:
            return not self._lines

    def render(self) -> str:
        """合并为一条消息"""
        with self._lock:
            return "\n".join(self._lines).strip()

    def __str__(self) -> str:
        return self.render()


# 全局单例
_startup_history: Optional[StartupHistory] = None


def get_startup_history() -> StartupHistory:
    """获取启动历史缓存单例"""
    global _startup_history
    if _startup_history is None:
        _startup_history = StartupHistory()
    return _startup_history
