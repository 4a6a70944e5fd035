"""Tests for the cooperative Runtime."""

from __future__ import annotations

import pytest

from faultline.errors.model import ErrorKind, ErrorObject, assertion_error, user_error
from faultline.runtime import Runtime, get_runtime, reset_runtime


class TestScheduling:
    def test_deferred_runs_after_caller_returns(self, runtime):
        order: list[str] = []

        def main() -> None:
            runtime.defer(order.append, "deferred")
            order.append("main done")

        runtime.run(main)
        assert order == ["main done", "deferred"]

    def test_fifo_order(self, runtime):
        order: list[int] = []
        for i in range(5):
            runtime.defer(order.append, i)
        runtime.run()
        assert order == [0, 1, 2, 3, 4]

    def test_run_drains_nested_work(self, runtime):
        order: list[str] = []

        def first() -> None:
            order.append("first")
            runtime.defer(lambda: order.append("second"))

        runtime.run(first)
        assert order == ["first", "second"]
        assert runtime.pending == 0

    def test_cancel(self, runtime):
        order: list[str] = []
        call = runtime.defer(order.append, "never")
        assert call.cancel() is True
        assert call.cancel() is False
        runtime.run()
        assert order == []
        assert call.cancelled

    def test_run_without_work_returns(self, runtime):
        runtime.run()
        assert runtime.pending == 0

    def test_call_later(self, runtime):
        order: list[str] = []
        runtime.call_later(0.01, order.append, "later")
        runtime.defer(order.append, "soon")
        runtime.run()
        assert order == ["soon", "later"]


class TestEscapedErrors:
    def test_raise_in_turn_reaches_boundary(self, runtime, recorded):
        err = user_error("escaped")

        def main() -> None:
            raise err

        runtime.run(main)
        assert recorded == [err]

    def test_loop_continues_after_handled_error(self, runtime, recorded):
        order: list[str] = []

        def fails() -> None:
            raise ValueError("bad")

        runtime.defer(fails)
        runtime.defer(order.append, "still running")
        runtime.run()
        assert order == ["still running"]
        assert recorded[0].kind is ErrorKind.STANDARD_RUNTIME_ERROR

    def test_unhandled_terminates(self, runtime, capsys):
        order: list[str] = []

        def fails() -> None:
            raise user_error("fatal by default")

        runtime.defer(fails)
        runtime.defer(order.append, "must not run")
        with pytest.raises(SystemExit):
            runtime.run()
        assert order == []
        assert "fatal by default" in capsys.readouterr().err

    def test_assertion_terminates_even_with_handler(self, runtime, recorded, capsys):
        def fails() -> None:
            raise assertion_error("invariant")

        with pytest.raises(SystemExit):
            runtime.run(fails)
        assert recorded == []


class TestSpawn:
    def test_coroutine_failure_is_unhandled(self, runtime, recorded):
        async def job() -> None:
            raise user_error("async failure")

        runtime.spawn(job())
        runtime.run()
        assert [e.message for e in recorded] == ["async failure"]

    def test_coroutine_success(self, runtime, recorded):
        results: list[int] = []

        async def job() -> None:
            results.append(42)

        runtime.spawn(job())
        runtime.run()
        assert results == [42]
        assert recorded == []


class TestDefaultRuntime:
    def test_singleton(self):
        assert get_runtime() is get_runtime()

    def test_reset(self):
        first = get_runtime()
        reset_runtime()
        assert get_runtime() is not first
        assert first.loop.is_closed()

    def test_uses_process_boundary(self):
        from faultline.boundary import set_uncaught_handler

        def fails() -> None:
            raise user_error("x")

        seen: list[ErrorObject] = []
        set_uncaught_handler(seen.append)
        rt = Runtime()
        rt.defer(fails)
        rt.run()
        rt.close()
        assert len(seen) == 1
