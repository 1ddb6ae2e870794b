"""instrument.py - Optional @traced decorator for timing and reporting calls.

``@traced`` wraps a function or coroutine function so that each call:

    - runs inside the active trace scope, or a fresh one when none is active,
      so nested ``log()`` calls share one trace ID;
    - logs ``"<qualname> → ok"`` with ``duration_ms`` on normal return;
    - reports ``"<qualname> → error"`` through ``error()`` on exception and
      then re-raises. The decorator never swallows exceptions.

Usage::

    from lognorth import traced

    @traced
    def import_orders(path: str) -> int:
        ...

    @traced(name="checkout", logger=shipper)
    async def checkout(cart_id: int) -> Receipt:
        ...
"""

import inspect
import time
from functools import wraps
from typing import Any, Callable, Optional

from .context import generate_trace_id, get_trace_id, trace_scope
from .logger import Logger, get_logger


def traced(
    func: Optional[Callable] = None,
    *,
    name: Optional[str] = None,
    logger: Optional[Logger] = None,
) -> Callable:
    """Decorator that times a call and ships its outcome to LogNorth.

    Can be used bare (``@traced``) or with options (``@traced(name=...)``).

    Args:
        func: The callable to wrap. Filled in automatically when used bare.
        name: Label used in event messages. Defaults to ``func.__qualname__``.
        logger: Target Logger. Defaults to the process-wide default, looked
            up at call time.

    Returns:
        The wrapped callable, preserving name and docstring via
        ``functools.wraps``.

    Raises:
        Any exception raised by the wrapped callable is re-raised unchanged
        after being reported.
    """
    if func is None:
        return lambda f: traced(f, name=name, logger=logger)

    label = name or func.__qualname__

    def _target() -> Logger:
        return logger if logger is not None else get_logger()

    def _report_ok(start: float) -> None:
        _target().log(f"{label} → ok", duration_ms=_elapsed_ms(start))

    def _report_error(start: float, exc: Exception) -> None:
        _target().error(f"{label} → error", exc, duration_ms=_elapsed_ms(start))

    if inspect.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with trace_scope(get_trace_id() or generate_trace_id()):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as exc:
                    _report_error(start, exc)
                    raise
                _report_ok(start)
                return result

        return async_wrapper

    @wraps(func)
    def wrapper(*args, **kwargs):
        with trace_scope(get_trace_id() or generate_trace_id()):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as exc:
                _report_error(start, exc)
                raise
            _report_ok(start)
            return result

    return wrapper


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)
