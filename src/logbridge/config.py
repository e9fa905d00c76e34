"""
logbridge 配置模块

所有配置都可以通过环境变量（或 .env）设置，
同时兼容 camelCase 形式的键名（log / logFile / logFileName ...）。
"""

from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings

# 日志文件扩展名（ANSI 彩色文本）
LOG_FILE_EXTENSION = ".ans"


class Settings(BaseSettings):
    """日志配置"""

    # === 输出开关 ===
    log: bool = Field(
        default=True,
        description="是否输出到控制台（仅在 debug 模式下生效）",
    )
    log_file: bool = Field(
        default=False,
        validation_alias=AliasChoices("log_file", "logFile"),
        description="是否输出到日志文件",
    )
    log_file_hidden: bool = Field(
        default=True,
        validation_alias=AliasChoices("log_file_hidden", "logFileHidden"),
        description="日志文件是否放在用户不可见的应用数据目录",
    )
    log_file_name: str = Field(
        default="log",
        validation_alias=AliasChoices("log_file_name", "logFileName"),
        description="日志文件基础名，实际文件名如 log_20231124T15.ans",
    )
    log_file_count: int = Field(
        default=5,
        ge=0,
        validation_alias=AliasChoices("log_file_count", "logFileCount"),
        description="保留的旧日志文件数量（目录中最多 log_file_count + 1 个）",
    )
    log_level: str = Field(
        default="trace",
        validation_alias=AliasChoices("log_level", "logLevel"),
        description="日志级别，trace/all 记录全部，无法识别时回退为 info",
    )

    # === 运行模式 ===
    debug: bool = Field(
        default=False,
        description="调试模式：开启控制台输出并打印调用栈",
    )
    error_default_present: bool = Field(
        default=True,
        validation_alias=AliasChoices("error_default_present", "errorDefaultPresent"),
        description="线程异常是否先交给原有的 threading.excepthook 展示",
    )
    log_asyncio_errors: bool = Field(
        default=True,
        validation_alias=AliasChoices("log_asyncio_errors", "logAsyncioErrors"),
        description="是否接管当前事件循环的异常处理器",
    )

    # === 路径 / 名称 ===
    log_dir: Path | None = Field(
        default=None,
        validation_alias=AliasChoices("log_dir", "logDir"),
        description="日志目录（默认使用 platformdirs 目录下的 logs/）",
    )
    app_name: str = Field(default="logbridge", description="应用名（用于解析数据目录）")
    logger_name: str = Field(default="logbridge.app", description="底层 logging.Logger 名称")
    line_length: int = Field(default=120, ge=40, description="单行最大宽度")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        # 忽略空字符串环境变量（例如 .env 里写了 LOG_LEVEL=）
        "env_ignore_empty": True,
    }

    @property
    def console_enabled(self) -> bool:
        """控制台输出是否启用"""
        return self.debug and self.log

    @property
    def method_count(self) -> int:
        """普通日志附带的调用栈帧数"""
        return 5 if self.debug else 0

    @property
    def log_dir_path(self) -> Path | None:
        """显式配置的日志目录"""
        if self.log_dir is None:
            return None
        return Path(self.log_dir).expanduser()


# 全局配置实例
settings = Settings()


def get_settings() -> Settings:
    """获取全局配置"""
    return settings
