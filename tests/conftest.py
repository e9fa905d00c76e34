"""
公共测试夹具
"""

import pytest

from logbridge import log
from logbridge.config import Settings
from logbridge.logging import reset_error_hooks


class UploadRecorder:
    """记录上报回调的调用"""

    def __init__(self):
        self.calls = []

    def __call__(self, exception, stack, *, reason=None, fatal=False):
        self.calls.append(
            {
                "exception": exception,
                "stack": stack,
                "reason": reason,
                "fatal": fatal,
            }
        )

    def messages(self) -> list[str]:
        return [str(call["exception"]) for call in self.calls]


@pytest.fixture(autouse=True)
def clean_log_state():
    """每个测试结束后清空日志上下文并恢复错误回调"""
    yield
    log.reset()
    reset_error_hooks()


@pytest.fixture
def uploads():
    return UploadRecorder()


@pytest.fixture
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture
def make_settings(log_dir):
    """构造不读取 .env 的配置，默认关闭所有输出"""

    def _make(**overrides) -> Settings:
        values = {
            "log": False,
            "log_file": False,
            "debug": False,
            "log_level": "trace",
            "log_dir": log_dir,
            "log_asyncio_errors": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make
