"""
logbridge - 把进程级错误回调接入日志系统

- 多个处理器共享 sys.excepthook / threading.excepthook / asyncio 异常处理器
- ANSI 彩色日志文件，启动时自动清理旧文件
- 启动历史缓存，初始化结束后统一输出

Usage:
    import asyncio
    from logbridge import initialize, log

    asyncio.run(initialize())
    log.info("ready")
"""

from importlib.metadata import PackageNotFoundError, version


def _resolve_version() -> str:
    """已安装包的版本号，开发模式下回退为 0.0.0-dev"""
    try:
        return version("logbridge")
    except PackageNotFoundError:
        return "0.0.0-dev"


__version__ = _resolve_version()

from . import log  # noqa: E402
from .config import Settings, get_settings  # noqa: E402
from .log import LogContext, get_context  # noqa: E402
from .logging import initialize, initialize_sync  # noqa: E402

__all__ = [
    "__version__",
    "log",
    "Settings",
    "get_settings",
    "LogContext",
    "get_context",
    "initialize",
    "initialize_sync",
]
