"""
宿主错误回调的多处理器支持

- ErrorHookRegistry: 在单槽回调上注册多个处理器
- HookSlot: sys.excepthook / threading.excepthook / asyncio 异常处理器
"""

from .registry import ErrorHookRegistry, loop_errors, thread_errors, uncaught_errors
from .slots import (
    AsyncioExceptionSlot,
    ErrorHandler,
    HookSlot,
    SysExceptHookSlot,
    ThreadingExceptHookSlot,
)

__all__ = [
    "ErrorHookRegistry",
    "ErrorHandler",
    "HookSlot",
    "SysExceptHookSlot",
    "ThreadingExceptHookSlot",
    "AsyncioExceptionSlot",
    "uncaught_errors",
    "thread_errors",
    "loop_errors",
]
