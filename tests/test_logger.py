"""
BridgeLogger 与日志入口测试

运行方式: pytest tests/test_logger.py -v
"""

import io
from datetime import datetime

import pytest

from logbridge import log
from logbridge.logging import BridgeLogger, Level, PrettyPrinter, resolve_level
from logbridge.logging.config import build_logger
from logbridge.logging.handlers import DeveloperConsoleHandler
from logbridge.logging.logger import _PACKAGE_DIR


@pytest.fixture
def stream():
    return io.StringIO()


@pytest.fixture
def make_bridge(stream, uploads):
    """构造写入 StringIO 的 BridgeLogger（无颜色）"""

    def _make(level=Level.TRACE, **printer_options):
        options = {"method_count": 0, "colors": False, "print_emojis": False}
        options.update(printer_options)
        printer = PrettyPrinter(**options)
        handler = DeveloperConsoleHandler(printer, stream)
        std_logger = build_logger("logbridge.tests", level, [handler])
        return BridgeLogger(std_logger, printer, uploads)

    yield _make
    build_logger("logbridge.tests", Level.OFF, [])


class TestLevels:
    """日志级别解析"""

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("trace", Level.TRACE),
            ("ALL", Level.ALL),
            ("Debug", Level.DEBUG),
            ("info", Level.INFO),
            ("warning", Level.WARNING),
            ("warn", Level.WARNING),
            ("error", Level.ERROR),
            ("fatal", Level.FATAL),
            ("off", Level.OFF),
        ],
    )
    def test_known_names(self, name, expected):
        assert resolve_level(name) == (expected, True)

    @pytest.mark.parametrize("name", ["verbose", "", None])
    def test_unknown_falls_back_to_info(self, name):
        assert resolve_level(name) == (Level.INFO, False)

    def test_ordering(self):
        assert Level.TRACE < Level.DEBUG < Level.INFO < Level.WARNING < Level.ERROR < Level.FATAL


class TestBridgeLogger:
    """BridgeLogger 输出与上报"""

    def test_threshold_filters_lower_levels(self, make_bridge, stream):
        bridge = make_bridge(Level.WARNING)

        bridge.trace("trace message")
        bridge.info("info message")
        bridge.warning("warning message")
        bridge.error("error message")

        output = stream.getvalue()
        assert "trace message" not in output
        assert "info message" not in output
        assert "warning message" in output
        assert "error message" in output

    def test_trace_level_records_everything(self, make_bridge, stream):
        bridge = make_bridge(Level.TRACE)

        bridge.trace("lowest")
        bridge.fatal("highest", send_fatal=False)

        output = stream.getvalue()
        assert "TRACE" in output
        assert "lowest" in output
        assert "FATAL" in output
        assert "CRITICAL" not in output

    def test_fatal_level_style(self):
        """fatal 级别的颜色主题按 FATAL 名称注册"""
        theme = PrettyPrinter().theme()

        assert "logging.level.fatal" in theme.styles
        assert "logging.level.critical" not in theme.styles

    def test_error_uploads_only_when_requested(self, make_bridge, uploads):
        bridge = make_bridge()

        bridge.error("not uploaded")
        bridge.error("uploaded", error="bad state", upload=True)

        assert len(uploads.calls) == 1
        call = uploads.calls[0]
        assert call["exception"] == "uploaded"
        assert call["reason"] == "bad state"
        assert call["fatal"] is False
        assert call["stack"] is not None

    def test_fatal_always_uploads(self, make_bridge, uploads):
        bridge = make_bridge()

        bridge.fatal("crash")
        bridge.fatal("soft crash", send_fatal=False)

        assert [c["fatal"] for c in uploads.calls] == [True, False]

    def test_upload_ignores_level_threshold(self, make_bridge, stream, uploads):
        """级别被过滤时仍然上报"""
        bridge = make_bridge(Level.OFF)

        bridge.error("hidden", upload=True)

        assert stream.getvalue() == ""
        assert len(uploads.calls) == 1

    def test_uploaded_stack_comes_from_error(self, make_bridge, uploads):
        bridge = make_bridge()
        try:
            raise ValueError("broken")
        except ValueError as e:
            error = e

        bridge.error("failed", error=error, upload=True)

        assert uploads.calls[0]["stack"] is error.__traceback__
        assert uploads.calls[0]["reason"] is error

    def test_exception_is_rendered(self, make_bridge, stream):
        bridge = make_bridge()
        try:
            raise ValueError("broken value")
        except ValueError as e:
            bridge.error("operation failed", error=e)

        output = stream.getvalue()
        assert "operation failed" in output
        assert "ValueError" in output
        assert "broken value" in output

    def test_error_description_is_rendered(self, make_bridge, stream):
        bridge = make_bridge()

        bridge.warning("slow response", error="took 12s")

        assert "took 12s" in stream.getvalue()

    def test_structured_message(self, make_bridge, stream):
        bridge = make_bridge()

        bridge.info({"event": "login", "user": "alice"})
        bridge.debug(lambda: "lazy message")

        output = stream.getvalue()
        assert '"event": "login"' in output
        assert "lazy message" in output

    def test_time_override(self, make_bridge, stream):
        bridge = make_bridge()

        bridge.info("at fixed time", time=datetime(2024, 6, 1, 10, 30, 15, 250000))

        assert "10:30:15.250" in stream.getvalue()

    def test_call_frames_exclude_package(self, make_bridge, stream):
        """调用栈帧不包含本包自身的帧"""
        bridge = make_bridge(method_count=3, exclude_paths=[_PACKAGE_DIR])

        bridge.info("with frames")

        output = stream.getvalue()
        first_frame = [line for line in output.splitlines() if "#0" in line]
        assert first_frame
        assert "test_call_frames_exclude_package" in first_frame[0]

    def test_close_detaches_handlers(self, make_bridge, stream):
        bridge = make_bridge()
        bridge.close()

        assert bridge.logger.handlers == []


class TestLogFacade:
    """logbridge.log 入口函数"""

    def test_calls_are_noops_without_logger(self, uploads):
        log.reset()

        log.trace("a")
        log.debug("b")
        log.info("c")
        log.warning("d")
        log.error("e", upload=True)
        log.fatal("f")

        assert log.get_context().logger is None
        assert uploads.calls == []

    def test_forwards_to_published_logger(self, make_bridge, stream, uploads):
        bridge = make_bridge()
        log.set_context(log.LogContext(settings=log.get_context().settings, logger=bridge))

        log.info("through facade")
        log.error("uploaded through facade", upload=True)

        assert "through facade" in stream.getvalue()
        assert uploads.messages() == ["uploaded through facade"]

    def test_replacing_context_closes_previous_logger(self, make_bridge):
        bridge = make_bridge()
        settings = log.get_context().settings
        log.set_context(log.LogContext(settings=settings, logger=bridge))

        log.reset()

        assert bridge.logger.handlers == []


class TestPackage:
    """包的公开接口"""

    def test_version_is_resolved(self):
        import logbridge

        assert isinstance(logbridge.__version__, str)
        assert logbridge.__version__

    def test_logging_exports_resolve(self):
        import logbridge.logging as bridge_logging

        for name in bridge_logging.__all__:
            assert hasattr(bridge_logging, name), name
        assert "get_logger" not in bridge_logging.__all__
