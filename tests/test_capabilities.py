"""Tests for lifecycle capability binding."""

from typing import Any, Iterable, Sequence

from servicehost.host.capabilities import (
    ArgumentReceiver,
    Disposer,
    Starter,
    Stopper,
    bind_dispose,
    bind_lifecycle_method,
    bind_with_args,
    describe,
    probe,
)


class Full:
    def __init__(self):
        self.calls = []

    def start(self):
        self.calls.append("start")

    def stop(self):
        self.calls.append("stop")

    def with_args(self, args: Sequence[str]):
        self.calls.append(("with_args", args))

    def close(self):
        self.calls.append("close")


class Empty:
    pass


class TestLifecycleMethods:
    def test_binds_public_method(self):
        obj = Full()
        bind_lifecycle_method(Full, "start")(obj)
        assert obj.calls == ["start"]

    def test_optional_parameters_allowed(self):
        class Optional:
            def start(self, delay=0, *args, **kwargs):
                self.started = True

        obj = Optional()
        bind_lifecycle_method(Optional, "start")(obj)
        assert obj.started

    def test_missing_method_reports(self, log_messages):
        fn = bind_lifecycle_method(Empty, "stop")
        assert "Service method NOT found: stop" in log_messages

        fn(Empty())
        assert "Method not found Empty.stop" in log_messages

    def test_non_callable_attribute_reports(self, log_messages):
        class Flag:
            start = True

        bind_lifecycle_method(Flag, "start")(Flag())
        assert "Method not found Flag.start" in log_messages

    def test_parameters_report(self, log_messages):
        class Needs:
            def stop(self, timeout):
                raise AssertionError("must not be called")

        bind_lifecycle_method(Needs, "stop")(Needs())
        assert "Cannot invoke Needs.stop because it has parameters" in log_messages

    def test_staticmethod(self):
        calls = []

        class Static:
            @staticmethod
            def start():
                calls.append("start")

        bind_lifecycle_method(Static, "start")(Static())
        assert calls == ["start"]


class TestWithArgs:
    def test_sequence_of_str(self):
        obj = Full()
        bind_with_args(Full)(obj, ("a", "b"))
        assert obj.calls == [("with_args", ["a", "b"])]

    def test_unannotated_and_other_sequences(self):
        class Plain:
            def with_args(self, args):
                pass

        class Listed:
            def with_args(self, args: list[str]):
                pass

        class Iter:
            def with_args(self, args: Iterable[str]):
                pass

        class Anything:
            def with_args(self, args: Any):
                pass

        for cls in (Plain, Listed, Iter, Anything):
            assert bind_with_args(cls) is not None, cls.__name__

    def test_rejected_signatures(self):
        class Ints:
            def with_args(self, args: list[int]):
                pass

        class Two:
            def with_args(self, args, extra):
                pass

        class NoParams:
            def with_args(self):
                pass

        class Text:
            def with_args(self, args: str):
                pass

        for cls in (Ints, Two, NoParams, Text, Empty):
            assert bind_with_args(cls) is None, cls.__name__


class TestDispose:
    def test_close(self):
        obj = Full()
        bind_dispose(Full)(obj)
        assert obj.calls == ["close"]

    def test_context_exit(self):
        class Managed:
            def __exit__(self, *exc_info):
                self.exit_args = exc_info

        obj = Managed()
        bind_dispose(Managed)(obj)
        assert obj.exit_args == (None, None, None)

    def test_absent(self):
        assert bind_dispose(Empty) is None


class TestProbe:
    def test_overrides_take_precedence(self):
        calls = []
        caps = probe(Full, start=lambda obj: calls.append("custom"))
        obj = Full()

        caps.start(obj)
        caps.stop(obj)
        assert calls == ["custom"]
        assert obj.calls == ["stop"]

    def test_describe(self):
        assert list(describe(Full())) == [
            Starter.__name__, Stopper.__name__, ArgumentReceiver.__name__, Disposer.__name__,
        ]
        assert list(describe(Empty())) == []
