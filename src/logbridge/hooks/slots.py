"""
宿主错误回调槽位

Python 进程里有几个「只能放一个函数」的全局错误回调:
- sys.excepthook: 主线程未捕获的异常
- threading.excepthook: 工作线程未捕获的异常
- loop.set_exception_handler: asyncio 事件循环中无人处理的异常

HookSlot 把它们统一成 (error, traceback) -> bool 的形式，
安装时记下原有的回调，作为默认处理。
"""

import asyncio
import sys
import threading
import weakref
from abc import ABC, abstractmethod
from types import TracebackType
from typing import Any, Callable, Optional

# (error, traceback) -> 是否已处理
ErrorHandler = Callable[[BaseException, Optional[TracebackType]], bool]


def _substitute_error(exc_type: type) -> BaseException:
    """宿主只给出异常类型时构造一个异常实例"""
    try:
        return exc_type()
    except Exception:
        return RuntimeError(f"{exc_type!r} raised without an exception value")


class HookSlot(ABC):
    """单槽宿主回调"""

    name = "hook"

    def __init__(self) -> None:
        self._previous: Optional[Callable[..., Any]] = None
        self._installed: Optional[Callable[..., Any]] = None

    @abstractmethod
    def _get(self) -> Optional[Callable[..., Any]]:
        """读取槽位当前的回调"""

    @abstractmethod
    def _set(self, hook: Optional[Callable[..., Any]]) -> None:
        """写入槽位"""

    @abstractmethod
    def _unpack(self, *args: Any) -> tuple[BaseException, Optional[TracebackType]]:
        """把宿主传入的参数转换为 (error, traceback)"""

    def install(self, adapter: ErrorHandler, *, present_first: bool = False) -> None:
        """
        把 adapter 装入槽位

        Args:
            adapter: 返回 True 表示错误已处理，不再执行默认处理
            present_first: 每次都先执行默认处理，再调用 adapter
        """
        self._previous = self._get()

        def hook(*args: Any) -> None:
            error, tb = self._unpack(*args)
            if present_first:
                self.present_default(*args)
                adapter(error, tb)
            elif not adapter(error, tb):
                self.present_default(*args)

        self._installed = hook
        self._set(hook)

    def present_default(self, *args: Any) -> None:
        """执行安装前的默认处理"""
        if self._previous is not None:
            self._previous(*args)

    @property
    def is_installed(self) -> bool:
        return self._installed is not None and self._get() is self._installed

    def restore(self) -> None:
        """恢复安装前的回调"""
        if self._installed is None:
            return
        if self._get() is self._installed:
            self._set(self._previous)
        self._installed = None
        self._previous = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.name}>"


class SysExceptHookSlot(HookSlot):
    """sys.excepthook"""

    name = "sys.excepthook"

    def _get(self):
        return sys.excepthook

    def _set(self, hook) -> None:
        sys.excepthook = hook or sys.__excepthook__

    def _unpack(self, exc_type, exc_value, exc_tb):
        if exc_value is None:
            exc_value = _substitute_error(exc_type)
        return exc_value, exc_tb


class ThreadingExceptHookSlot(HookSlot):
    """threading.excepthook"""

    name = "threading.excepthook"

    def _get(self):
        return threading.excepthook

    def _set(self, hook) -> None:
        threading.excepthook = hook or threading.__excepthook__

    def _unpack(self, args):
        error = args.exc_value
        if error is None:
            error = _substitute_error(args.exc_type)
        return error, args.exc_traceback


class AsyncioExceptionSlot(HookSlot):
    """
    asyncio 事件循环的异常处理器

    只保存事件循环的弱引用，循环关闭并被回收后槽位随之失效。
    """

    name = "loop.exception_handler"

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self._loop_ref = weakref.ref(loop)

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop_ref()

    def _get(self):
        loop = self.loop
        if loop is None:
            return None
        return loop.get_exception_handler()

    def _set(self, hook) -> None:
        loop = self.loop
        if loop is not None:
            loop.set_exception_handler(hook)

    def _unpack(self, loop, context):
        error = context.get("exception")
        if error is None:
            error = RuntimeError(context.get("message", "Unhandled exception in event loop"))
        return error, error.__traceback__

    def present_default(self, loop, context) -> None:
        if self._previous is not None:
            self._previous(loop, context)
        else:
            loop.default_exception_handler(context)
