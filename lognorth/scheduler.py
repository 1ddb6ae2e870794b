"""scheduler.py - Decide when buffered events are flushed.

Three things trigger a flush:

    Size:     the buffer reaches ``batch_size`` on enqueue.
    Time:     a single timer, armed on the running loop whenever none is
              pending, fires after the current flush interval (which backoff
              may have enlarged).
    Shutdown: ``Logger.aclose()`` / ``Logger.close()`` or an explicit ``flush()``.

Whatever the trigger, the pending timer is cancelled and the buffer is drained
synchronously *before* anything is awaited; the captured batch is then handed
to the Dispatcher. Background sends run as asyncio Tasks which are kept in
``pending`` until they finish.

A timer belongs to the loop it was armed on. Once that loop is closed (for
example after ``asyncio.run`` returns) the handle is forgotten and the next
enqueue arms a fresh timer on whichever loop is running then.

Outside a running event loop no timer can be armed, and the caller must not
be kept waiting on the network. Sends are then handed to a process-wide
sender thread that owns its own event loop; ``wait_background()`` blocks until
they are done.
"""

import asyncio
import concurrent.futures
import logging
import threading
from typing import Awaitable, List, Optional, Set

from .buffer import Event, EventBuffer
from .dispatcher import ORDINARY_RETRIES, Dispatcher

_logger = logging.getLogger(__name__)

_sender_loop: Optional[asyncio.AbstractEventLoop] = None
_sender_lock = threading.Lock()


def running_loop() -> Optional[asyncio.AbstractEventLoop]:
    """Return the running event loop, or None when called from plain sync code."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def sender_loop() -> asyncio.AbstractEventLoop:
    """Return the loop that runs sends for callers without one, starting it on first use."""
    global _sender_loop
    with _sender_lock:
        if _sender_loop is None or _sender_loop.is_closed():
            loop = asyncio.new_event_loop()
            thread = threading.Thread(target=loop.run_forever, name="lognorth-sender", daemon=True)
            thread.start()
            _sender_loop = loop
        return _sender_loop


class Scheduler:
    """Owns the buffer's flush timer and the sends still in flight."""

    def __init__(self, buffer: EventBuffer, dispatcher: Dispatcher, batch_size: int) -> None:
        self.buffer = buffer
        self.dispatcher = dispatcher
        self.batch_size = batch_size
        self.pending: Set["asyncio.Task[bool]"] = set()
        self.background: Set["concurrent.futures.Future[bool]"] = set()
        self._background_lock = threading.Lock()
        self._timer: Optional[asyncio.TimerHandle] = None
        self._timer_loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def timer_armed(self) -> bool:
        return self._timer is not None and not self._timer_loop.is_closed()

    def enqueue(self, event: Event) -> None:
        """Buffer ``event`` and apply the size and time thresholds."""
        self.buffer.enqueue(event)

        if len(self.buffer) >= self.batch_size:
            batch = self.take()
            self.submit(self.dispatcher.send(batch, ORDINARY_RETRIES))
            return

        if not self._timer_live():
            self._arm()

    def take(self) -> List[Event]:
        """Cancel the pending timer and drain the buffer in one synchronous step."""
        self._cancel_timer()
        return self.buffer.drain()

    async def flush(self) -> bool:
        """Drain the buffer and send whatever it held (no network call if empty)."""
        batch = self.take()
        if not batch:
            return True
        return await self.dispatcher.send(batch, ORDINARY_RETRIES)

    def submit(self, send: Awaitable[bool]):
        """Run a send in the background without blocking the caller.

        Returns:
            The Task wrapping the send when a loop is running, otherwise a
            ``concurrent.futures.Future`` for the send on the sender thread.
            Either resolves to True/False and never raises.
        """
        loop = running_loop()
        if loop is None:
            future = asyncio.run_coroutine_threadsafe(_guarded(send), sender_loop())
            with self._background_lock:
                self.background.add(future)
            future.add_done_callback(self._forget)
            return future
        task = loop.create_task(_guarded(send))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
        return task

    async def wait_pending(self) -> None:
        """Wait for every in-flight send, including those on the sender thread."""
        while self.pending or self.background:
            with self._background_lock:
                futures = [asyncio.wrap_future(f) for f in self.background]
            await asyncio.gather(*self.pending, *futures, return_exceptions=True)

    def wait_background(self, timeout: Optional[float] = None) -> None:
        """Block until sends handed to the sender thread have finished."""
        with self._background_lock:
            futures = list(self.background)
        if futures:
            concurrent.futures.wait(futures, timeout=timeout)

    def _forget(self, future: "concurrent.futures.Future[bool]") -> None:
        with self._background_lock:
            self.background.discard(future)

    def _timer_live(self) -> bool:
        if self._timer is None:
            return False
        current = running_loop()
        if self._timer_loop.is_closed() or (current is not None and current is not self._timer_loop):
            self._cancel_timer()
            return False
        return True

    def _arm(self) -> None:
        loop = running_loop()
        if loop is None:
            return
        delay = self.dispatcher.backoff.interval_ms / 1000
        self._timer = loop.call_later(delay, self._on_timer)
        self._timer_loop = loop

    def _on_timer(self) -> None:
        self._timer = None
        self._timer_loop = None
        batch = self.buffer.drain()
        if batch:
            self.submit(self.dispatcher.send(batch, ORDINARY_RETRIES))

    def _cancel_timer(self) -> None:
        timer, loop = self._timer, self._timer_loop
        self._timer = None
        self._timer_loop = None
        if timer is None or loop.is_closed():
            return
        if loop is running_loop() or not loop.is_running():
            timer.cancel()
        else:
            loop.call_soon_threadsafe(timer.cancel)


async def _guarded(send: Awaitable[bool]) -> bool:
    try:
        return await send
    except Exception:
        _logger.exception("Unexpected failure while sending events")
        return False
