"""handler.py - Forward standard ``logging`` records to LogNorth.

LogNorthHandler lets an application keep using ``logging.getLogger(...)``
while its records are shipped to the collector::

    import logging
    import lognorth
    from lognorth import LogNorthHandler

    lognorth.config(api_key="...", endpoint="https://logs.example.com")
    logging.getLogger().addHandler(LogNorthHandler())

    logger = logging.getLogger("billing")
    logger.info("invoice created", extra={"context": {"invoice_id": 7}})   # buffered
    logger.exception("charge failed")                                      # sent immediately

Mapping:
    - ERROR and above  -> ``Logger.error(message, exc, context)`` where ``exc``
      is the record's exception (from ``exc_info``), if any.
    - everything else  -> ``Logger.log(message, context)``.

Context always includes ``logger`` and ``level`` and is extended with a
``context`` mapping passed through ``extra``. Records emitted by LogNorth's
own ``lognorth.*`` loggers are ignored so diagnostics cannot loop back into
the pipeline.
"""

import logging
from typing import Any, Dict, Optional

from .logger import Logger, get_logger

_OWN_LOGGER_PREFIX = "lognorth"


class LogNorthHandler(logging.Handler):
    """A logging.Handler that ships records through a LogNorth Logger.

    Attributes:
        _logger (Logger | None): Explicit target. When None, the process-wide
            default Logger is looked up on every record, so reconfiguring it
            with ``lognorth.config()`` takes effect immediately.

    Example:
        >>> import logging
        >>> from lognorth import LogNorthHandler, create_logger
        >>> shipper = create_logger(api_key="k", endpoint="https://logs.test")
        >>> logging.getLogger("app").addHandler(LogNorthHandler(logger=shipper))
    """

    def __init__(self, logger: Optional[Logger] = None, level: int = logging.NOTSET) -> None:
        """Initialise the handler.

        Args:
            logger: Logger to forward to. Defaults to the process-wide default.
            level: Minimum level handled, as for any ``logging.Handler``.
        """
        super().__init__(level)
        self._logger = logger

    @property
    def target(self) -> Logger:
        return self._logger if self._logger is not None else get_logger()

    # ---------------------------------------------------------------------- #
    # Public interface
    # ---------------------------------------------------------------------- #

    def emit(self, record: logging.LogRecord) -> None:
        """Forward one record to ``log()`` or ``error()`` depending on its level."""
        if record.name == _OWN_LOGGER_PREFIX or record.name.startswith(_OWN_LOGGER_PREFIX + "."):
            return
        try:
            message = record.getMessage()
            context = self._context(record)

            if record.levelno >= logging.ERROR:
                exc = record.exc_info[1] if record.exc_info else None
                self.target.error(message, exc, context)
            else:
                self.target.log(message, context)
        except Exception:
            # A LogNorth failure must never silence the application's own logs.
            self.handleError(record)

    # ---------------------------------------------------------------------- #
    # Private helpers
    # ---------------------------------------------------------------------- #

    def _context(self, record: logging.LogRecord) -> Dict[str, Any]:
        context: Dict[str, Any] = {"logger": record.name, "level": record.levelname}
        extra = getattr(record, "context", None)
        if isinstance(extra, dict):
            context.update(extra)
        return context
