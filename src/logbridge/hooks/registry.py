"""
错误处理器注册中心

宿主的错误回调只有一个槽位，ErrorHookRegistry 让多个互不相关的调用方
都能注册处理器:
- 第一次 add_handler 时向槽位安装唯一的适配函数
- 适配函数按注册顺序调用所有处理器，不会短路
- 返回值为所有处理器结果的逻辑或：任意处理器返回 True 即视为已处理，
  不再执行宿主的默认处理

注意: 同一个函数注册多次会被调用多次（不去重）。
"""

import asyncio
import logging
import threading
import weakref
from types import TracebackType
from typing import Optional

from .slots import (
    AsyncioExceptionSlot,
    ErrorHandler,
    HookSlot,
    SysExceptHookSlot,
    ThreadingExceptHookSlot,
)

logger = logging.getLogger(__name__)


class ErrorHookRegistry:
    """
    错误处理器注册中心

    线程安全: 注册和安装都在锁内进行，分发时先在锁内复制处理器列表，
    再在锁外依次调用（处理器里可以继续注册或记录日志）。
    """

    def __init__(self, slot: HookSlot, *, present_default: bool = False) -> None:
        """
        Args:
            slot: 宿主回调槽位
            present_default: 每次都先执行宿主默认处理（安装时生效）
        """
        self.slot = slot
        self.present_default = present_default
        self._handlers: list[ErrorHandler] = []
        self._installed = False
        self._lock = threading.Lock()

    @property
    def handlers(self) -> tuple[ErrorHandler, ...]:
        with self._lock:
            return tuple(self._handlers)

    @property
    def installed(self) -> bool:
        return self._installed

    def add_handler(self, handler: ErrorHandler) -> None:
        """
        注册处理器

        第一次调用时向槽位安装适配函数，之后只追加处理器。
        每个函数只应注册一次，否则每次错误都会被重复调用。
        """
        with self._lock:
            self._handlers.append(handler)
            if not self._installed:
                self.slot.install(self.dispatch, present_first=self.present_default)
                self._installed = True
                logger.debug(f"Installed error hook adapter into {self.slot.name}")

    def dispatch(self, error: BaseException, tb: Optional[TracebackType]) -> bool:
        """
        把错误分发给所有处理器

        Returns:
            是否有任意处理器声明已处理
        """
        with self._lock:
            handlers = list(self._handlers)

        handled = False
        for handler in handlers:
            if handler(error, tb):
                handled = True
        return handled

    def reset(self) -> None:
        """清空处理器并恢复槽位"""
        with self._lock:
            self._handlers.clear()
            if self._installed:
                self.slot.restore()
                self._installed = False

    def __len__(self) -> int:
        with self._lock:
            return len(self._handlers)

    def __repr__(self) -> str:
        return f"<ErrorHookRegistry {self.slot.name} handlers={len(self)} installed={self._installed}>"


# 进程级注册中心
uncaught_errors = ErrorHookRegistry(SysExceptHookSlot())
thread_errors = ErrorHookRegistry(ThreadingExceptHookSlot(), present_default=True)

_loop_registries: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, ErrorHookRegistry]" = (
    weakref.WeakKeyDictionary()
)
_loop_lock = threading.Lock()


def loop_errors(loop: Optional[asyncio.AbstractEventLoop] = None) -> ErrorHookRegistry:
    """获取事件循环对应的注册中心（默认当前正在运行的循环）"""
    loop = loop or asyncio.get_running_loop()
    with _loop_lock:
        registry = _loop_registries.get(loop)
        if registry is None:
            registry = ErrorHookRegistry(AsyncioExceptionSlot(loop))
            _loop_registries[loop] = registry
        return registry
