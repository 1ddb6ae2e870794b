"""logger.py - The public Logger facade and the process-wide default instance.

A Logger composes the pieces of the shipping pipeline::

    log()   -> Event -> Scheduler.enqueue -> EventBuffer -> (threshold) -> Dispatcher.send(retries=1)
    error() -> enrich_error -> Event -> Dispatcher.send(retries=3)          (buffer bypassed)

Both paths stamp the event with the trace ID active at call time (see
``context.py``). Neither ``log()`` nor ``error()`` ever raises for transport
problems, and ``log()`` never waits on the network.

Two ways to get a Logger:

    lognorth.config(api_key=..., endpoint=...)   reconfigure the default instance
    lognorth.create_logger(api_key=..., ...)     build an independent instance

Every live Logger is flushed once more at interpreter exit by an ``atexit``
hook. Failures at that point are logged and otherwise ignored.
"""

import atexit
import logging
import weakref
from typing import Any, Callable, Dict, Mapping, Optional

import httpx

from .buffer import Event, EventBuffer
from .context import get_trace_id
from .dispatcher import ERROR_RETRIES, ORDINARY_RETRIES, Dispatcher, SleepFn
from .enrich import enrich_error
from .scheduler import Scheduler, running_loop
from .settings import Config

_logger = logging.getLogger(__name__)

_live_loggers: "weakref.WeakSet[Logger]" = weakref.WeakSet()


class Logger:
    """Buffers, batches and ships events for one configuration.

    Each instance owns its own buffer, flush timer and backoff state, so
    several Loggers (or a Logger per test) never interfere with each other.

    Attributes:
        buffer (EventBuffer): Pending ordinary events.
        dispatcher (Dispatcher): Network side, including backoff state.
        scheduler (Scheduler): Flush timer and in-flight sends.

    Example:
        >>> logger = Logger(Config(api_key="k", endpoint="https://logs.test"))
        >>> logger.log("user signed in", {"user_id": 42})
        >>> await logger.flush()
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Create a Logger.

        Args:
            config: Settings for this instance. Defaults to ``Config.from_env()``.
            transport: Optional httpx transport (e.g. ``httpx.MockTransport``).
            sleep: Optional replacement for ``asyncio.sleep`` used by retries
                and cooldown waits.
            clock: Optional monotonic clock used for cooldown bookkeeping.
        """
        self._config = config if config is not None else Config.from_env()
        self.buffer = EventBuffer(self._config.max_buffer_size)
        self.dispatcher = Dispatcher(self._config, transport=transport, sleep=sleep, clock=clock)
        self.scheduler = Scheduler(self.buffer, self.dispatcher, self._config.batch_size)
        _live_loggers.add(self)

    @property
    def config(self) -> Config:
        return self._config

    # ---------------------------------------------------------------------- #
    # Public interface
    # ---------------------------------------------------------------------- #

    def log(
        self,
        message: str,
        context: Optional[Mapping[str, Any]] = None,
        *,
        duration_ms: Optional[float] = None,
    ) -> None:
        """Queue an informational event for the next batch.

        A ``duration_ms`` key inside ``context`` is lifted to the event's top
        level; an explicit ``duration_ms`` argument wins over it.

        Args:
            message: Human-readable message.
            context: Optional JSON-serialisable key/value pairs.
            duration_ms: Optional duration to report alongside the event.
        """
        ctx, duration_ms = _split_context(context, duration_ms)
        event = Event(
            message,
            duration_ms=duration_ms,
            trace_id=get_trace_id(),
            context=ctx,
        )
        self.scheduler.enqueue(event)

    def error(
        self,
        message: str,
        err: object = None,
        context: Optional[Mapping[str, Any]] = None,
        *,
        duration_ms: Optional[float] = None,
    ):
        """Send an error event immediately, bypassing the buffer.

        Args:
            message: Human-readable message.
            err: The exception (or message string) that caused the error.
            context: Optional extra key/value pairs merged into the event.
            duration_ms: Optional duration to report alongside the event.

        Returns:
            Inside a running event loop, the ``asyncio.Task`` performing the
            send. Outside a loop, a ``concurrent.futures.Future`` for the send
            on the sender thread. Either resolves to True/False and never
            raises; the caller is never kept waiting on the network.
        """
        ctx, duration_ms = _split_context(context, duration_ms)
        info = enrich_error(err)
        ctx = dict(ctx or {})
        ctx.update(
            error=info.message,
            error_class=info.error_type,
            error_file=info.file,
            error_line=info.line,
            error_caller=info.caller,
            stack_trace=info.stack_trace,
        )
        event = Event(
            message,
            duration_ms=duration_ms,
            trace_id=get_trace_id(),
            error_type=info.error_type,
            error_location=info.location,
            context=ctx,
        )
        return self.scheduler.submit(
            self.dispatcher.send([event], ERROR_RETRIES, wait_cooldown=False)
        )

    async def flush(self) -> bool:
        """Send everything currently buffered. No network call if the buffer is empty."""
        return await self.scheduler.flush()

    async def aclose(self) -> None:
        """Flush and wait for every in-flight send (shutdown inside an event loop)."""
        await self.flush()
        await self.scheduler.wait_pending()

    def close(self) -> None:
        """Synchronous best-effort shutdown flush, used by the ``atexit`` hook.

        The remaining events are handed off as one batch. Outside a running
        loop this then waits for every send on the sender thread; inside one it
        only schedules the send, since blocking the loop is not an option.
        Delivery failures are logged by the dispatcher and otherwise ignored.
        """
        batch = self.scheduler.take()
        if batch:
            self.scheduler.submit(self.dispatcher.send(batch, ORDINARY_RETRIES))
        if running_loop() is None:
            self.scheduler.wait_background()

    def adopt(self, other: "Logger") -> None:
        """Move ``other``'s buffered events into this logger, preserving order."""
        for event in other.scheduler.take():
            self.scheduler.enqueue(event)


def _split_context(context: Optional[Mapping[str, Any]], duration_ms: Optional[float]):
    if not context:
        return None, duration_ms
    ctx: Dict[str, Any] = dict(context)
    lifted = ctx.pop("duration_ms", None)
    if duration_ms is None:
        duration_ms = lifted
    return ctx or None, duration_ms


# ---------------------------------------------------------------------------
# Process-wide default instance
# ---------------------------------------------------------------------------

_default: Optional[Logger] = None


def get_logger() -> Logger:
    """Return the default Logger, creating it from the environment on first use."""
    global _default
    if _default is None:
        _default = Logger()
    return _default


def config(
    api_key: Optional[str] = None,
    endpoint: Optional[str] = None,
    *,
    batch_size: Optional[int] = None,
    flush_interval_ms: Optional[int] = None,
    max_buffer_size: Optional[int] = None,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Optional[SleepFn] = None,
) -> Logger:
    """Reconfigure the default Logger.

    Options left as None keep their current value. A new Logger replaces the
    default one; events still buffered on the old instance carry over.

    Raises:
        ValueError: If the resulting configuration is invalid.
    """
    global _default
    previous = get_logger()
    new_config = previous.config.replace(
        api_key=api_key,
        endpoint=endpoint,
        batch_size=batch_size,
        flush_interval_ms=flush_interval_ms,
        max_buffer_size=max_buffer_size,
        timeout=timeout,
    )
    replacement = Logger(new_config, transport=transport, sleep=sleep)
    replacement.adopt(previous)
    _default = replacement
    return replacement


def create_logger(
    config: Optional[Config] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    sleep: Optional[SleepFn] = None,
    clock: Optional[Callable[[], float]] = None,
    **options: Any,
) -> Logger:
    """Build an independent Logger.

    Either pass a ready ``Config`` or its fields as keyword options::

        create_logger(api_key="k", endpoint="https://logs.test", batch_size=50)

    Raises:
        ValueError: If the configuration is invalid.
    """
    if config is None:
        config = Config(**options)
    elif options:
        config = config.replace(**options)
    return Logger(config, transport=transport, sleep=sleep, clock=clock)


def log(message: str, context: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
    """``Logger.log`` on the default instance."""
    get_logger().log(message, context, **kwargs)


def error(message: str, err: object = None, context: Optional[Mapping[str, Any]] = None, **kwargs: Any):
    """``Logger.error`` on the default instance."""
    return get_logger().error(message, err, context, **kwargs)


async def flush() -> bool:
    """``Logger.flush`` on the default instance."""
    return await get_logger().flush()


async def shutdown() -> None:
    """``Logger.aclose`` on the default instance."""
    await get_logger().aclose()


@atexit.register
def _flush_at_exit() -> None:
    for instance in list(_live_loggers):
        instance.close()
