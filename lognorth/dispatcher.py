"""dispatcher.py - Batch transmission with bounded retries and rate-limit backoff.

The Dispatcher is the only component that touches the network. Given a batch
of events it POSTs ``{"events": [...]}`` to ``{endpoint}/api/v1/events/batch``
and reports success as a boolean. It never raises for transport problems:
delivery is best-effort and callers are expected to ignore failures.

Retry policy (``retries`` extra attempts after the first):

    2xx           success; the flush interval relaxes toward its baseline
                  (x0.9, never below the baseline)
    429           rate limited; the flush interval doubles (capped at 60 s)
                  and a cooldown window opens for that long
    other / error retryable; no interval change

Between attempts the dispatcher sleeps 1 s, 2 s, 4 s, ... (``2**attempt``).
Ordinary batches wait out an active cooldown before their first attempt.

The HTTP transport, the sleep coroutine and the clock are injectable so tests
can observe every attempt without real network or real waiting::

    transport = httpx.MockTransport(lambda request: httpx.Response(200))
    dispatcher = Dispatcher(config, transport=transport)
"""

import asyncio
import json
import logging
import time
from typing import Awaitable, Callable, List, Optional

import httpx

from .buffer import Event
from .settings import Config

_logger = logging.getLogger(__name__)

MAX_INTERVAL_MS = 60_000
RETRY_BASE_MS = 1000
RECOVERY_FACTOR = 0.9

ORDINARY_RETRIES = 1
ERROR_RETRIES = 3

SleepFn = Callable[[float], Awaitable[None]]


class BackoffState:
    """Mutable flush-interval and cooldown state owned by one Dispatcher.

    Attributes:
        base_interval_ms (int): The configured flush interval.
        interval_ms (float): The current, possibly enlarged, flush interval.
        cooldown_until (float): Clock value (seconds) until which ordinary
            sends are held back. 0 means no cooldown.
    """

    __slots__ = ("base_interval_ms", "interval_ms", "cooldown_until")

    def __init__(self, base_interval_ms: int) -> None:
        self.base_interval_ms = base_interval_ms
        self.interval_ms: float = base_interval_ms
        self.cooldown_until: float = 0.0

    def record_success(self) -> None:
        self.interval_ms = max(self.base_interval_ms, self.interval_ms * RECOVERY_FACTOR)

    def record_rate_limit(self, now: float) -> None:
        self.interval_ms = min(self.interval_ms * 2, MAX_INTERVAL_MS)
        self.cooldown_until = now + self.interval_ms / 1000

    def remaining_cooldown(self, now: float) -> float:
        """Seconds left in the cooldown window (0 when not cooling down)."""
        return max(0.0, self.cooldown_until - now)


class Dispatcher:
    """Serialises event batches and POSTs them to the collector.

    Attributes:
        backoff (BackoffState): Shared with the Scheduler, which reads the
            current flush interval from it when arming its timer.
        attempts (int): Total HTTP attempts made over this dispatcher's
            lifetime. Handy for assertions in tests.
    """

    def __init__(
        self,
        config: Config,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFn] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Create a dispatcher bound to ``config``.

        Args:
            config: Endpoint, credentials and timeout to use.
            transport: Optional httpx transport; defaults to httpx's own.
            sleep: Coroutine used for every wait. Defaults to ``asyncio.sleep``.
            clock: Monotonic clock in seconds. Defaults to ``time.monotonic``.
        """
        self._config = config
        self._transport = transport
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or time.monotonic
        self.backoff = BackoffState(config.flush_interval_ms)
        self.attempts = 0

    async def send(self, events: List[Event], retries: int = ORDINARY_RETRIES, *, wait_cooldown: bool = True) -> bool:
        """Transmit ``events`` with up to ``retries`` additional attempts.

        Args:
            events: The batch to send. An empty batch is a no-op success.
            retries: Extra attempts after the first one fails.
            wait_cooldown: Sleep out an active rate-limit cooldown before the
                first attempt. Error sends skip this.

        Returns:
            True once the collector accepted the batch (or in disabled mode),
            False after every attempt failed.
        """
        if not events:
            return True
        if not self._config.enabled:
            _logger.debug("No endpoint configured; dropping %d event(s)", len(events))
            return True

        if wait_cooldown:
            remaining = self.backoff.remaining_cooldown(self._clock())
            if remaining > 0:
                _logger.debug("Rate-limit cooldown active; waiting %.2fs", remaining)
                await self._sleep(remaining)

        body = json.dumps({"events": [e.to_dict() for e in events]}, default=str)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._config.api_key}",
        }

        async with httpx.AsyncClient(transport=self._transport, timeout=self._config.timeout) as client:
            for attempt in range(retries + 1):
                self.attempts += 1
                try:
                    response = await client.post(self._config.batch_url, content=body, headers=headers)
                except httpx.HTTPError as exc:
                    _logger.debug("Attempt %d failed: %s", attempt + 1, exc)
                else:
                    if response.is_success:
                        self.backoff.record_success()
                        return True
                    if response.status_code == 429:
                        self.backoff.record_rate_limit(self._clock())
                        _logger.info(
                            "Collector rate limited; flush interval now %dms",
                            self.backoff.interval_ms,
                        )
                    else:
                        _logger.debug("Attempt %d rejected with HTTP %d", attempt + 1, response.status_code)

                if attempt < retries:
                    await self._sleep(RETRY_BASE_MS * 2**attempt / 1000)

        _logger.warning("Dropping %d event(s) after %d failed attempt(s)", len(events), retries + 1)
        return False
