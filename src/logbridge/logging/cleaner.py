"""
日志清理器

功能:
- 启动时按数量保留最近的日志文件，删除更旧的
- 文件名内嵌 yyyyMMddTHH 时间戳，按文件名倒序即为按时间倒序
- 单个文件删除失败不影响其余文件（尽力而为）
- 获取日志目录统计信息
"""

import logging
from pathlib import Path
from typing import Optional

import aiofiles.os

from .history import StartupHistory

logger = logging.getLogger(__name__)


class LogCleaner:
    """
    日志清理器

    清理策略:
    1. 列出目录中文件名以 base_name 开头的文件
    2. 数量不超过 keep_count 时不做任何操作
    3. 否则按路径倒序排序，保留前 keep_count 个（最新），删除其余
    """

    def __init__(
        self,
        log_dir: Path,
        base_name: str,
        keep_count: int = 5,
        history: Optional[StartupHistory] = None,
    ):
        """
        Args:
            log_dir: 日志目录
            base_name: 日志文件基础名
            keep_count: 保留的文件数量
            history: 启动历史缓存（记录删除结果和错误）
        """
        self.log_dir = Path(log_dir)
        self.base_name = base_name
        self.keep_count = max(keep_count, 0)
        self.history = history if history is not None else StartupHistory()

    async def cleanup(self) -> list[Path]:
        """
        执行清理

        Returns:
            已删除的文件列表
        """
        try:
            files = await self._get_log_files()
        except OSError as e:
            self.history.error("-> Something went wrong while deleting old log files", e)
            logger.warning(f"Failed to list log directory {self.log_dir}: {e}")
            return []

        if len(files) <= self.keep_count:
            return []

        self.history.write(
            f"-> Deleting {len(files) - self.keep_count} older files "
            f"because there is {len(files)} log files"
        )

        files.sort(key=str, reverse=True)

        deleted: list[Path] = []
        for file in files[self.keep_count:]:
            try:
                if await aiofiles.os.path.exists(file):
                    await aiofiles.os.remove(file)
                    deleted.append(file)
                    self.history.write(f"Deleted {file}")
                    logger.debug(f"Deleted old log file: {file.name}")
            except OSError as e:
                self.history.error(f"-> Failed to delete {file}", e)
                logger.error(f"Failed to delete {file.name}: {e}")

        return deleted

    async def _get_log_files(self) -> list[Path]:
        """获取所有匹配基础名的日志文件"""
        files = []

        for name in await aiofiles.os.listdir(self.log_dir):
            if not name.startswith(self.base_name):
                continue
            path = self.log_dir / name
            if await aiofiles.os.path.isfile(path):
                files.append(path)

        return files

    def get_stats(self) -> dict:
        """
        获取日志统计信息

        Returns:
            统计信息字典
        """
        empty = {
            "file_count": 0,
            "total_size_mb": 0.0,
            "oldest_file": None,
            "newest_file": None,
        }
        if not self.log_dir.exists():
            return empty

        files = sorted(
            f for f in self.log_dir.glob(f"{self.base_name}*") if f.is_file()
        )
        if not files:
            return empty

        total_size = sum(f.stat().st_size for f in files)

        return {
            "file_count": len(files),
            "total_size_mb": total_size / (1024 * 1024),
            "oldest_file": files[0].name,
            "newest_file": files[-1].name,
        }


async def enforce_retention(
    directory: Path,
    base_name: str,
    keep_count: int,
    history: Optional[StartupHistory] = None,
) -> list[Path]:
    """保留最新的 keep_count 个日志文件，返回被删除的文件"""
    return await LogCleaner(directory, base_name, keep_count, history).cleanup()
