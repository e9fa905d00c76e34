"""
日志目录解析

- 隐藏目录: platformdirs 的用户数据目录（用户一般看不到）
- 可见目录: 用户文档目录下的应用子目录
"""

import logging
from datetime import datetime
from pathlib import Path

import aiofiles.os
import platformdirs

from ..config import LOG_FILE_EXTENSION, Settings
from ..errors import LogDirectoryError
from .cleaner import LogCleaner
from .history import StartupHistory

logger = logging.getLogger(__name__)


def resolve_base_directory(app_name: str, *, secure: bool) -> Path:
    """获取可写的基础目录"""
    if secure:
        return platformdirs.user_data_path(app_name, appauthor=False)
    return platformdirs.user_documents_path() / app_name


def log_file_name(base_name: str, now: datetime | None = None) -> str:
    """本次运行的日志文件名（小时粒度），如 log_20231124T15.ans"""
    now = now or datetime.now()
    return f"{base_name}_{now:%Y%m%dT%H}{LOG_FILE_EXTENSION}"


async def prepare_log_directory(settings: Settings, history: StartupHistory) -> Path:
    """
    解析并创建日志目录，然后清理旧日志文件

    Raises:
        LogDirectoryError: 目录无法解析或创建
    """
    directory = settings.log_dir_path
    if directory is None:
        try:
            base = resolve_base_directory(settings.app_name, secure=settings.log_file_hidden)
        except Exception as e:
            raise LogDirectoryError(None, f"Base directory could not be resolved ({e})") from e
        directory = base / "logs"

    history.write(
        f"-> Log file will be {'hidden' if settings.log_file_hidden else 'visible'}. "
        f"Directory:\n`{directory}`"
    )

    if not await aiofiles.os.path.isdir(directory):
        try:
            await aiofiles.os.makedirs(directory, exist_ok=True)
        except OSError as e:
            raise LogDirectoryError(directory, "Log directory could not be created") from e
        history.write("-> Created directory")
        logger.debug(f"Created log directory: {directory}")
    else:
        await LogCleaner(
            directory,
            settings.log_file_name,
            settings.log_file_count,
            history,
        ).cleanup()

    return directory


async def create_log_file(directory: Path, base_name: str) -> Path:
    """创建本次运行的日志文件（已存在则复用）"""
    path = directory / log_file_name(base_name)
    if not await aiofiles.os.path.exists(path):
        async with aiofiles.open(path, mode="a", encoding="utf-8"):
            pass
    return path
