"""test_context.py - Unit tests for trace ID propagation.

Covers:
    - generate_trace_id() returns 16 lowercase hex characters
    - get_trace_id() is None outside any scope
    - trace_scope() binds, nests and restores (also on exceptions)
    - with_trace_id() for plain callables and coroutine functions
    - The ID survives await points and is inherited by child Tasks
    - Concurrent Tasks and threads never see each other's ID
"""

import asyncio
import re
import threading

import pytest

from lognorth.context import generate_trace_id, get_trace_id, trace_scope, with_trace_id


# ---------------------------------------------------------------------------
# generate_trace_id() / get_trace_id()
# ---------------------------------------------------------------------------


class TestTraceIdGeneration:
    def test_generate_trace_id_is_sixteen_hex_chars(self):
        assert re.fullmatch(r"[0-9a-f]{16}", generate_trace_id())

    def test_generate_trace_id_is_random(self):
        ids = {generate_trace_id() for _ in range(100)}
        assert len(ids) == 100

    def test_get_trace_id_outside_scope_is_none(self):
        assert get_trace_id() is None


# ---------------------------------------------------------------------------
# Synchronous scopes
# ---------------------------------------------------------------------------


class TestSyncScope:
    def test_trace_scope_binds_and_restores(self):
        with trace_scope("aaaa"):
            assert get_trace_id() == "aaaa"
        assert get_trace_id() is None

    def test_trace_scope_nesting_restores_outer_id(self):
        with trace_scope("outer"):
            with trace_scope("inner"):
                assert get_trace_id() == "inner"
            assert get_trace_id() == "outer"

    def test_trace_scope_restores_on_exception(self):
        with pytest.raises(RuntimeError):
            with trace_scope("boom"):
                raise RuntimeError("fail")
        assert get_trace_id() is None

    def test_with_trace_id_returns_callable_result(self):
        """Plain callables run immediately inside the scope."""
        assert with_trace_id("abc", lambda x: (x, get_trace_id()), 1) == (1, "abc")
        assert get_trace_id() is None

    def test_trace_id_is_isolated_per_thread(self):
        """A scope opened in one thread is invisible in another."""
        seen = {}

        def worker(name):
            with trace_scope(f"{name}-trace"):
                seen[name] = get_trace_id()

        threads = [threading.Thread(target=worker, args=(n,)) for n in ("t1", "t2")]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert seen == {"t1": "t1-trace", "t2": "t2-trace"}
        assert get_trace_id() is None


# ---------------------------------------------------------------------------
# Asynchronous scopes
# ---------------------------------------------------------------------------


class TestAsyncScope:
    @pytest.mark.asyncio
    async def test_with_trace_id_survives_await_points(self):
        async def handler():
            before = get_trace_id()
            await asyncio.sleep(0)
            after = get_trace_id()
            return before, after

        assert await with_trace_id("req-1", handler) == ("req-1", "req-1")
        assert get_trace_id() is None

    @pytest.mark.asyncio
    async def test_child_tasks_inherit_trace_id(self):
        async def child():
            await asyncio.sleep(0)
            return get_trace_id()

        async def handler():
            return await asyncio.create_task(child())

        assert await with_trace_id("parent", handler) == "parent"

    @pytest.mark.asyncio
    async def test_concurrent_scopes_do_not_leak(self):
        """Interleaved requests each keep their own ID across suspensions."""

        async def handler(expected):
            seen = []
            for _ in range(3):
                seen.append(get_trace_id() == expected)
                await asyncio.sleep(0)
            return all(seen)

        results = await asyncio.gather(
            with_trace_id("one", handler, "one"),
            with_trace_id("two", handler, "two"),
            handler(None),
        )
        assert results == [True, True, True]

    @pytest.mark.asyncio
    async def test_async_scope_does_not_leak_after_completion(self):
        async def handler():
            return get_trace_id()

        await with_trace_id("gone", handler)
        assert get_trace_id() is None
