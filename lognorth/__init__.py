"""lognorth/__init__.py - Public API for the LogNorth client.

LogNorth ships application events to a remote collector. Ordinary events are
buffered and sent in batches; errors are sent immediately with a larger retry
budget. Every event carries the trace ID active when it was created, so all
events of one request can be correlated on the collector side.

Quick start:
    import lognorth

    # 1. Point the default logger at your collector (or set LOGNORTH_API_KEY /
    #    LOGNORTH_ENDPOINT in the environment)
    lognorth.config(api_key="...", endpoint="https://logs.example.com")

    # 2. Emit events. log() is buffered, error() is sent right away
    lognorth.log("job started", {"job_id": 42})
    try:
        run_job()
    except Exception as exc:
        lognorth.error("job failed", exc, {"job_id": 42})

    # 3. Correlate events across one logical request
    with lognorth.trace_scope(lognorth.generate_trace_id()):
        lognorth.log("inside the request")

    # 4. Flush before shutting down (also done automatically at exit)
    await lognorth.flush()

Exported names:
    Logger, Config:          An independent shipping pipeline and its settings.
    config, create_logger:   Reconfigure the default Logger / build a new one.
    get_logger:              The process-wide default Logger.
    log, error, flush:       Shortcuts for the default Logger.
    shutdown:                Flush and await in-flight sends on the default Logger.
    with_trace_id, trace_scope, get_trace_id, generate_trace_id:
                             Trace ID propagation.
    LogNorthHandler:         ``logging.Handler`` forwarding stdlib records.
    LogNorthMiddleware:      ASGI middleware logging every HTTP request.
    traced:                  Decorator timing a call and reporting its outcome.
"""

from .context import generate_trace_id, get_trace_id, trace_scope, with_trace_id
from .handler import LogNorthHandler
from .instrument import traced
from .logger import Logger, config, create_logger, error, flush, get_logger, log, shutdown
from .middleware import LogNorthMiddleware
from .settings import Config

__all__ = [
    "Config",
    "Logger",
    "config",
    "create_logger",
    "get_logger",
    "log",
    "error",
    "flush",
    "shutdown",
    "with_trace_id",
    "trace_scope",
    "get_trace_id",
    "generate_trace_id",
    "LogNorthHandler",
    "LogNorthMiddleware",
    "traced",
]
__version__ = "0.1.0"
