"""settings.py - Immutable per-instance settings for a LogNorth logger.

A Config is built once and handed to a Logger; the logger never mutates it.
Reconfiguring the process-wide default logger (``lognorth.config(...)``)
builds a *new* Config via ``replace()`` and a new Logger around it.

An empty ``endpoint`` is valid and puts the logger into disabled mode: every
call is accepted and silently dropped without touching the network. This is
the state of the default logger until an endpoint is configured, either
explicitly or through the ``LOGNORTH_ENDPOINT`` environment variable.
"""

import dataclasses
import os
from dataclasses import dataclass, field
from typing import Any

ENV_API_KEY = "LOGNORTH_API_KEY"
ENV_ENDPOINT = "LOGNORTH_ENDPOINT"

BATCH_PATH = "/api/v1/events/batch"


@dataclass(frozen=True)
class Config:
    """Settings for one Logger instance.

    Attributes:
        api_key: Bearer token sent with every request. Hidden from ``repr()``.
        endpoint: Base URL of the collector, e.g. ``"https://logs.example.com"``.
            Empty disables transmission.
        batch_size: Number of buffered events that triggers an immediate flush.
        flush_interval_ms: Baseline delay before buffered events are flushed.
            Rate limiting may temporarily enlarge the effective interval.
        max_buffer_size: Hard cap on buffered ordinary events. When reached the
            oldest event is evicted.
        timeout: Per-request HTTP timeout in seconds.

    Raises:
        ValueError: If any numeric setting is not strictly positive.

    Example:
        >>> cfg = Config(api_key="k", endpoint="https://logs.test")
        >>> cfg.batch_url
        'https://logs.test/api/v1/events/batch'
    """

    api_key: str = field(default="", repr=False)
    endpoint: str = ""
    batch_size: int = 10
    flush_interval_ms: int = 5000
    max_buffer_size: int = 1000
    timeout: float = 10.0

    def __post_init__(self) -> None:
        for name in ("batch_size", "flush_interval_ms", "max_buffer_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout!r}")
        if self.api_key is None or self.endpoint is None:
            raise ValueError("api_key and endpoint must be strings, not None")

    @classmethod
    def from_env(cls, **overrides: Any) -> "Config":
        """Build a Config from ``LOGNORTH_*`` environment variables.

        Explicit keyword overrides take precedence over the environment.
        """
        values: dict = {
            "api_key": os.environ.get(ENV_API_KEY, ""),
            "endpoint": os.environ.get(ENV_ENDPOINT, ""),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def replace(self, **changes: Any) -> "Config":
        """Return a validated copy with ``changes`` applied (``None`` values are ignored)."""
        return dataclasses.replace(
            self, **{k: v for k, v in changes.items() if v is not None}
        )

    @property
    def enabled(self) -> bool:
        """True when an endpoint is configured and events will be transmitted."""
        return bool(self.endpoint)

    @property
    def batch_url(self) -> str:
        return f"{self.endpoint.rstrip('/')}{BATCH_PATH}"
