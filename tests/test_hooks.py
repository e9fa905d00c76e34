"""
错误处理器注册中心测试

运行方式: pytest tests/test_hooks.py -v
"""

import asyncio
import gc
import sys
import threading
import weakref
from types import SimpleNamespace

import pytest

from logbridge.hooks import (
    AsyncioExceptionSlot,
    ErrorHookRegistry,
    HookSlot,
    SysExceptHookSlot,
    ThreadingExceptHookSlot,
    loop_errors,
)


class FakeSlot(HookSlot):
    """内存中的单槽回调，记录默认处理的调用"""

    name = "fake"

    def __init__(self, events=None):
        super().__init__()
        self.hook = None
        self.install_count = 0
        self.events = events if events is not None else []

    def _get(self):
        return self.hook

    def _set(self, hook):
        self.hook = hook

    def _unpack(self, error):
        return error, error.__traceback__

    def install(self, adapter, *, present_first=False):
        self.install_count += 1
        super().install(adapter, present_first=present_first)

    def present_default(self, *args):
        self.events.append("default")


def _recording_handler(events, name, result=False):
    def handler(error, tb):
        events.append(name)
        return result

    return handler


@pytest.fixture
def events():
    return []


@pytest.fixture
def slot(events):
    return FakeSlot(events)


@pytest.fixture
def registry(slot):
    return ErrorHookRegistry(slot)


class TestErrorHookRegistry:
    """ErrorHookRegistry 分发逻辑"""

    def test_handlers_called_in_registration_order(self, registry, slot, events):
        """每个处理器按注册顺序各调用一次"""
        for name in ("first", "second", "third"):
            registry.add_handler(_recording_handler(events, name, result=True))

        slot.hook(ValueError("boom"))

        assert events == ["first", "second", "third"]

    def test_adapter_installed_once(self, registry, slot, events):
        """无论注册多少处理器，适配函数只安装一次"""
        assert not registry.installed

        for name in ("a", "b", "c", "d"):
            registry.add_handler(_recording_handler(events, name))

        assert registry.installed
        assert slot.install_count == 1
        assert len(registry) == 4

    def test_any_handled_returns_true_without_short_circuit(self, registry, events):
        """任意处理器返回 True 则结果为 True，且所有处理器都会被调用"""
        registry.add_handler(_recording_handler(events, "a", result=False))
        registry.add_handler(_recording_handler(events, "b", result=True))
        registry.add_handler(_recording_handler(events, "c", result=False))

        assert registry.dispatch(ValueError("boom"), None) is True
        assert events == ["a", "b", "c"]

    def test_all_unhandled_returns_false(self, registry, events):
        registry.add_handler(_recording_handler(events, "a"))
        registry.add_handler(_recording_handler(events, "b"))

        assert registry.dispatch(ValueError("boom"), None) is False

    def test_default_runs_only_when_unhandled(self, registry, slot, events):
        """没有处理器声明已处理时才执行默认处理"""
        registry.add_handler(_recording_handler(events, "a"))
        slot.hook(ValueError("first"))
        assert events == ["a", "default"]

        events.clear()
        registry.add_handler(_recording_handler(events, "b", result=True))
        slot.hook(ValueError("second"))
        assert events == ["a", "b"]

    def test_present_default_runs_first_exactly_once(self, slot, events):
        """present_default 模式下默认处理先于处理器执行，且只执行一次"""
        registry = ErrorHookRegistry(slot, present_default=True)
        registry.add_handler(_recording_handler(events, "a", result=False))
        registry.add_handler(_recording_handler(events, "b", result=True))

        slot.hook(ValueError("boom"))

        assert events == ["default", "a", "b"]

    def test_duplicate_handlers_are_called_twice(self, registry, slot, events):
        """同一函数注册两次会被调用两次"""
        handler = _recording_handler(events, "dup", result=True)
        registry.add_handler(handler)
        registry.add_handler(handler)

        slot.hook(ValueError("boom"))

        assert events == ["dup", "dup"]

    def test_late_registration_is_dispatched(self, registry, slot, events):
        """安装之后注册的处理器同样会收到错误"""
        registry.add_handler(_recording_handler(events, "early", result=True))
        slot.hook(ValueError("one"))

        registry.add_handler(_recording_handler(events, "late", result=True))
        slot.hook(ValueError("two"))

        assert events == ["early", "early", "late"]

    def test_handler_receives_error_and_traceback(self, registry, slot):
        received = []
        registry.add_handler(lambda error, tb: received.append((error, tb)) or True)

        try:
            raise KeyError("missing")
        except KeyError as e:
            error = e

        slot.hook(error)

        assert received[0][0] is error
        assert received[0][1] is error.__traceback__

    def test_handler_exception_propagates(self, registry, slot, events):
        """处理器抛出的异常直接交给宿主"""

        def broken(error, tb):
            raise RuntimeError("handler failed")

        registry.add_handler(broken)
        registry.add_handler(_recording_handler(events, "after"))

        with pytest.raises(RuntimeError, match="handler failed"):
            slot.hook(ValueError("boom"))
        assert events == []

    def test_concurrent_registration(self, registry, slot):
        """多线程并发注册时不丢失处理器，且只安装一次"""
        calls = []
        lock = threading.Lock()

        def make(i):
            def handler(error, tb):
                with lock:
                    calls.append(i)
                return True

            return handler

        threads = [threading.Thread(target=registry.add_handler, args=(make(i),)) for i in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        slot.hook(ValueError("boom"))

        assert slot.install_count == 1
        assert sorted(calls) == list(range(20))

    def test_reset_restores_slot(self, registry, slot, events):
        registry.add_handler(_recording_handler(events, "a"))
        assert slot.hook is not None

        registry.reset()

        assert slot.hook is None
        assert not registry.installed
        assert registry.handlers == ()


class TestSysExceptHookSlot:
    """sys.excepthook 槽位"""

    def test_falls_back_to_previous_hook(self, monkeypatch):
        previous_calls = []
        monkeypatch.setattr(sys, "excepthook", lambda *args: previous_calls.append(args))

        registry = ErrorHookRegistry(SysExceptHookSlot())
        registry.add_handler(lambda error, tb: False)
        try:
            error = ValueError("unhandled")
            sys.excepthook(ValueError, error, None)
            assert len(previous_calls) == 1
            assert previous_calls[0][1] is error
        finally:
            registry.reset()

    def test_handled_error_skips_previous_hook(self, monkeypatch):
        previous_calls = []
        previous = lambda *args: previous_calls.append(args)  # noqa: E731
        monkeypatch.setattr(sys, "excepthook", previous)

        received = []
        registry = ErrorHookRegistry(SysExceptHookSlot())
        registry.add_handler(lambda error, tb: received.append(error) or True)
        try:
            sys.excepthook(ValueError, ValueError("handled"), None)
            assert previous_calls == []
            assert len(received) == 1
        finally:
            registry.reset()

        assert sys.excepthook is previous

    def test_type_only_error_with_required_arguments(self, monkeypatch):
        """只有异常类型且构造需要参数时，处理器仍然收到替代异常"""
        monkeypatch.setattr(sys, "excepthook", lambda *args: None)

        received = []
        registry = ErrorHookRegistry(SysExceptHookSlot())
        registry.add_handler(lambda error, tb: received.append(error) or True)
        try:
            sys.excepthook(NeedsArgs, None, None)
        finally:
            registry.reset()

        assert len(received) == 1
        assert isinstance(received[0], RuntimeError)
        assert "NeedsArgs" in str(received[0])


class NeedsArgs(Exception):
    def __init__(self, code):
        super().__init__(code)
        self.code = code


class TestThreadingExceptHookSlot:
    """threading.excepthook 槽位"""

    def test_type_only_error_with_required_arguments(self):
        slot = ThreadingExceptHookSlot()
        received = []
        registry = ErrorHookRegistry(slot)
        registry.add_handler(lambda error, tb: received.append(error) or True)
        try:
            threading.excepthook(
                SimpleNamespace(exc_type=NeedsArgs, exc_value=None, exc_traceback=None, thread=None)
            )
        finally:
            registry.reset()

        assert isinstance(received[0], RuntimeError)
        assert "NeedsArgs" in str(received[0])

    def test_thread_exception_reaches_handler(self):
        received = []
        registry = ErrorHookRegistry(ThreadingExceptHookSlot())
        registry.add_handler(lambda error, tb: received.append(error) or True)

        def worker():
            raise ValueError("from thread")

        try:
            thread = threading.Thread(target=worker)
            thread.start()
            thread.join()
        finally:
            registry.reset()

        assert len(received) == 1
        assert isinstance(received[0], ValueError)
        assert str(received[0]) == "from thread"


class TestAsyncioExceptionSlot:
    """asyncio 异常处理器槽位"""

    @pytest.mark.asyncio
    async def test_loop_exception_reaches_handler(self):
        loop = asyncio.get_running_loop()
        received = []
        registry = ErrorHookRegistry(AsyncioExceptionSlot(loop))
        registry.add_handler(lambda error, tb: received.append(error) or True)

        try:
            error = ValueError("in loop")
            loop.call_exception_handler({"message": "task failed", "exception": error})
            loop.call_exception_handler({"message": "no exception attached"})
        finally:
            registry.reset()

        assert received[0] is error
        assert isinstance(received[1], RuntimeError)
        assert str(received[1]) == "no exception attached"
        assert loop.get_exception_handler() is None

    @pytest.mark.asyncio
    async def test_loop_registry_is_cached_per_loop(self):
        assert loop_errors() is loop_errors(asyncio.get_running_loop())

    def test_closed_loop_is_released(self):
        """事件循环关闭后，注册中心不会阻止它被回收"""
        loop = asyncio.new_event_loop()
        loop_errors(loop).add_handler(lambda error, tb: True)
        loop_ref = weakref.ref(loop)

        loop.close()
        del loop
        gc.collect()

        assert loop_ref() is None
