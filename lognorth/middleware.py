"""middleware.py - ASGI middleware that logs every HTTP request.

Works with any ASGI framework (Starlette, FastAPI, Quart, plain ASGI apps)::

    app = LogNorthMiddleware(app)

For each HTTP request the middleware:

    1. Reads the inbound ``X-Trace-ID`` header, or generates a fresh ID.
    2. Runs the wrapped app inside that trace scope, so every ``log()`` /
       ``error()`` made while handling the request carries the same ID.
    3. Echoes the ID back on the response as ``X-Trace-ID``.
    4. On completion logs ``"GET /users → 200"`` with ``{method, path, status}``
       in the context and ``duration_ms`` at the event's top level. Responses
       with status >= 500 additionally get ``error: "HTTP <status>"``.
    5. If the app raises, reports ``"GET /users → error"`` via ``error()`` and
       re-raises; the exception is never swallowed.

Non-HTTP scopes (``lifespan``, ``websocket``) pass straight through.
"""

import time
from typing import Any, Awaitable, Callable, Dict, MutableMapping, Optional

from .context import generate_trace_id, trace_scope
from .logger import Logger, get_logger

TRACE_HEADER = b"x-trace-id"

Scope = MutableMapping[str, Any]
Message = MutableMapping[str, Any]
Receive = Callable[[], Awaitable[Message]]
Send = Callable[[Message], Awaitable[None]]
ASGIApp = Callable[[Scope, Receive, Send], Awaitable[None]]


class LogNorthMiddleware:
    def __init__(self, app: ASGIApp, logger: Optional[Logger] = None) -> None:
        self.app = app
        self._logger = logger

    @property
    def target(self) -> Logger:
        return self._logger if self._logger is not None else get_logger()

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start = time.perf_counter()
        method = scope.get("method", "GET")
        path = scope.get("path", "/")
        trace_id = _inbound_trace_id(scope) or generate_trace_id()
        status: Dict[str, int] = {}

        async def send_with_trace(message: Message) -> None:
            if message["type"] == "http.response.start":
                status["code"] = message["status"]
                headers = [
                    (k, v) for k, v in message.get("headers", []) if k.lower() != TRACE_HEADER
                ]
                headers.append((TRACE_HEADER, trace_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        with trace_scope(trace_id):
            try:
                await self.app(scope, receive, send_with_trace)
            except Exception as exc:
                self.target.error(
                    f"{method} {path} → error",
                    exc,
                    {"method": method, "path": path},
                    duration_ms=_elapsed_ms(start),
                )
                raise

            code = status.get("code", 500)
            context: Dict[str, Any] = {"method": method, "path": path, "status": code}
            if code >= 500:
                context["error"] = f"HTTP {code}"
            self.target.log(f"{method} {path} → {code}", context, duration_ms=_elapsed_ms(start))


def _inbound_trace_id(scope: Scope) -> Optional[str]:
    for key, value in scope.get("headers", []):
        if key.lower() == TRACE_HEADER:
            return value.decode("latin-1").strip() or None
    return None


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)
