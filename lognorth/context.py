"""context.py - Trace identifier propagation across a logical request.

Every event shipped by a Logger carries the trace ID that is active at the
moment ``log()`` or ``error()`` is called. The active ID lives in a single
``contextvars.ContextVar``, which gives exactly the scoping rule we want:

    - Visible to all code running synchronously inside the scope.
    - Visible across ``await`` points of the coroutine that opened the scope.
    - Inherited by asyncio Tasks created inside the scope (they copy the
      current context at creation time).
    - Never visible outside the scope, nor in unrelated Tasks or threads that
      happen to run concurrently.

Outside any scope ``get_trace_id()`` returns None and events omit the
``trace_id`` field entirely.
"""

import contextlib
import contextvars
import inspect
import uuid
from typing import Any, Awaitable, Callable, Iterator, Optional

_trace_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "lognorth_trace_id", default=None
)


def generate_trace_id() -> str:
    """Return a new random trace ID: 16 lowercase hex characters (8 bytes).

    Uniqueness is probabilistic only.

    Example:
        >>> tid = generate_trace_id()
        >>> len(tid)
        16
    """
    return uuid.uuid4().hex[:16]


def get_trace_id() -> Optional[str]:
    """Return the trace ID of the innermost active scope, or None."""
    return _trace_id.get()


@contextlib.contextmanager
def trace_scope(trace_id: str) -> Iterator[str]:
    """Bind ``trace_id`` for the duration of a ``with`` block.

    The previous value (if any) is restored on exit, including when the block
    raises. Safe to use inside coroutines: the binding follows the coroutine
    across ``await`` points because each asyncio Task owns its own context.

    Example:
        >>> with trace_scope("a1b2c3d4e5f60718"):
        ...     get_trace_id()
        'a1b2c3d4e5f60718'
        >>> get_trace_id() is None
        True
    """
    token = _trace_id.set(trace_id)
    try:
        yield trace_id
    finally:
        _trace_id.reset(token)


def with_trace_id(trace_id: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call ``fn(*args, **kwargs)`` with ``trace_id`` as the active trace ID.

    For a plain callable the call happens immediately and its result is
    returned. For a coroutine function a coroutine is returned instead; the
    scope is entered when that coroutine starts running and left when it
    finishes, so awaiting it (or wrapping it in a Task) keeps the ID visible
    across every suspension point inside ``fn``.

    Args:
        trace_id: The identifier to expose through ``get_trace_id()``.
        fn: The function or coroutine function to run inside the scope.
        *args: Positional arguments forwarded to ``fn``.
        **kwargs: Keyword arguments forwarded to ``fn``.

    Returns:
        ``fn``'s return value, or an awaitable producing it.
    """
    if inspect.iscoroutinefunction(fn):
        return _run_in_scope(trace_id, fn, *args, **kwargs)
    with trace_scope(trace_id):
        result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        # e.g. a partial or callable object wrapping a coroutine function
        return _await_in_scope(trace_id, result)
    return result


async def _run_in_scope(trace_id: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    with trace_scope(trace_id):
        return await fn(*args, **kwargs)


async def _await_in_scope(trace_id: str, awaitable: Awaitable[Any]) -> Any:
    with trace_scope(trace_id):
        return await awaitable
