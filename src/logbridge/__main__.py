"""
logbridge 包入口点 - 支持 `python -m logbridge` 调用
"""

import logbridge._ensure_utf8  # noqa: F401

from logbridge.main import app

if __name__ == "__main__":
    app()
