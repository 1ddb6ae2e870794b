"""Shared fixtures: a scriptable fake collector and an instant sleep."""

import json
import threading
from typing import List, Optional

import httpx
import pytest

from lognorth import logger as logger_module


class Collector:
    """Fake collector behind an ``httpx.MockTransport``.

    ``statuses`` is consumed one per request; the last entry repeats forever.
    A status of None simulates a transport failure (connection refused).
    With a ``gate``, every request blocks until the gate is set.
    """

    def __init__(self, *statuses: Optional[int], gate: Optional[threading.Event] = None) -> None:
        self.requests: List[httpx.Request] = []
        self._gate = gate
        self._statuses = list(statuses) or [200]
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        if self._gate is not None:
            self._gate.wait(5)
        self.requests.append(request)
        status = self._statuses.pop(0) if len(self._statuses) > 1 else self._statuses[0]
        if status is None:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(status)

    @property
    def calls(self) -> int:
        return len(self.requests)

    @property
    def bodies(self) -> list:
        return [json.loads(r.content) for r in self.requests]

    @property
    def events(self) -> list:
        return [event for body in self.bodies for event in body["events"]]

    @property
    def messages(self) -> List[str]:
        return [event["message"] for event in self.events]


class FakeSleep:
    """Records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def collector() -> Collector:
    return Collector(200)


@pytest.fixture
def fake_sleep() -> FakeSleep:
    return FakeSleep()


@pytest.fixture(autouse=True)
def _isolate_default_logger(monkeypatch):
    """Give every test a fresh default Logger and leave nothing for the exit hook."""
    monkeypatch.delenv("LOGNORTH_API_KEY", raising=False)
    monkeypatch.delenv("LOGNORTH_ENDPOINT", raising=False)
    logger_module._default = None
    yield
    for instance in list(logger_module._live_loggers):
        instance.scheduler.take()
        instance.scheduler.wait_background(timeout=5)
    logger_module._default = None
