"""
logbridge CLI 入口

使用 Typer 和 Rich 查看日志配置、手动清理旧日志、输出示例日志
"""

import logbridge._ensure_utf8  # noqa: F401  # isort: skip

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__, log
from .config import Settings, get_settings
from .logging import LogCleaner, initialize
from .logging.directories import resolve_base_directory
from .logging.levels import resolve_level

# Typer 应用
app = typer.Typer(
    name="logbridge",
    help="logbridge - 错误回调与日志文件管理",
    add_completion=False,
)

# Rich 控制台
console = Console()


def _log_dir(settings: Settings) -> Path:
    """配置对应的日志目录"""
    if settings.log_dir_path is not None:
        return settings.log_dir_path
    return resolve_base_directory(settings.app_name, secure=settings.log_file_hidden) / "logs"


@app.command()
def info():
    """显示当前日志配置和日志目录统计"""
    settings = get_settings()
    log_dir = _log_dir(settings)
    level, known = resolve_level(settings.log_level)

    table = Table(title=f"logbridge {__version__}")
    table.add_column("配置", style="cyan")
    table.add_column("值")

    table.add_row("debug", str(settings.debug))
    table.add_row("console", str(settings.console_enabled))
    table.add_row("file", str(settings.log_file))
    table.add_row("level", level.name.lower() if known else f"{level.name.lower()} (unknown: {settings.log_level})")
    table.add_row("directory", str(log_dir))
    table.add_row("base name", settings.log_file_name)
    table.add_row("keep", str(settings.log_file_count))

    stats = LogCleaner(log_dir, settings.log_file_name, settings.log_file_count).get_stats()
    table.add_row("files", str(stats["file_count"]))
    table.add_row("size", f"{stats['total_size_mb']:.2f} MB")
    table.add_row("oldest", stats["oldest_file"] or "-")
    table.add_row("newest", stats["newest_file"] or "-")

    console.print(table)


@app.command()
def clean(
    keep: Optional[int] = typer.Option(None, "--keep", "-k", min=0, help="保留的文件数量（默认使用配置）"),
):
    """立即清理旧日志文件"""
    settings = get_settings()
    log_dir = _log_dir(settings)
    keep_count = settings.log_file_count if keep is None else keep

    if not log_dir.is_dir():
        console.print(f"[yellow]⚠[/yellow] 日志目录不存在: {log_dir}")
        raise typer.Exit(1)

    cleaner = LogCleaner(log_dir, settings.log_file_name, keep_count)
    deleted = asyncio.run(cleaner.cleanup())

    for line in cleaner.history.lines:
        console.print(f"  {line}")

    if cleaner.history.has_errors:
        console.print("[red]✗[/red] 部分文件清理失败")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] 已删除 {len(deleted)} 个文件，保留 {keep_count} 个")


@app.command()
def demo(
    level: str = typer.Option("trace", "--level", "-l", help="日志级别"),
    file: bool = typer.Option(False, "--file/--no-file", help="同时写入日志文件"),
):
    """初始化日志系统并输出每个级别的示例日志"""
    settings = get_settings().model_copy(
        update={"debug": True, "log": True, "log_file": file, "log_level": level}
    )

    def on_upload(exception, stack, *, reason=None, fatal=False):
        log.trace(f"Uploads exception: {exception} (fatal={fatal})")

    async def _demo():
        context = await initialize(settings, on_upload)

        log.trace("TRACE")
        log.debug("DEBUG")
        log.info("INFORMATION")
        log.warning("WARNING")
        try:
            raise ValueError("demo error")
        except ValueError as e:
            log.error("ERROR", error=e, upload=True)
        log.fatal("FATAL", send_fatal=False)

        if context.file_path is not None:
            console.print(f"[green]✓[/green] 日志文件: {context.file_path}")

    asyncio.run(_demo())
