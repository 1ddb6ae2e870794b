"""enrich.py - Derive error type and location from an exception or stack text.

Error events carry a few extra fields that let the collector group failures
without shipping whole stack traces around:

    error_type:      The exception class name (``"Error"`` when unknown).
    error_location:  ``"<file basename>:<line>"`` of the raise site.
    error_caller:    The function the error was raised in (may be empty).

Two stack formats are understood. Python tracebacks are read from the
exception's ``__traceback__`` directly; for text input the *last*
``File "...", line N, in func`` frame is the raise site. JavaScript-style
stacks (``at caller (file:line:col)``), as forwarded by browser or Node
front-ends, use the *first* ``at`` frame.

Nothing in this module raises: malformed or absent stacks degrade to empty
strings and line 0.
"""

import os
import re
import traceback
from typing import NamedTuple, Optional, Tuple

_JS_FRAME = re.compile(r"\bat\s+(?:(?P<caller>[^\s(]+)\s+\()?(?P<file>[^\s()]+?):(?P<line>\d+):\d+\)?")
_PY_FRAME = re.compile(r'File "(?P<file>[^"]+)", line (?P<line>\d+)(?:, in (?P<caller>\S+))?')


class ErrorInfo(NamedTuple):
    """Everything the logger needs to turn an error into an event."""

    error_type: str
    message: str
    file: str
    line: int
    caller: str
    stack_trace: str

    @property
    def location(self) -> str:
        if not self.file:
            return ""
        return f"{self.file}:{self.line}"


def parse_stack(text: Optional[str]) -> Tuple[str, str, int]:
    """Extract ``(caller, file_basename, line)`` from stack trace text.

    Args:
        text: A Python traceback or a JavaScript-style stack. May be None.

    Returns:
        The caller name (possibly empty), the file basename and the line
        number, or ``("", "", 0)`` if no frame could be recognised.

    Example:
        >>> parse_stack("Error: boom\\n    at handler (/srv/app/routes.js:42:7)")
        ('handler', 'routes.js', 42)
    """
    if not text:
        return "", "", 0

    py_frames = list(_PY_FRAME.finditer(text))
    match = py_frames[-1] if py_frames else _JS_FRAME.search(text)
    if match is None:
        return "", "", 0

    caller = match.group("caller") or ""
    if caller == "<module>":
        caller = ""
    return caller, _basename(match.group("file")), int(match.group("line"))


def enrich_error(err: object) -> ErrorInfo:
    """Build an ErrorInfo from an exception, a message string, or None."""
    if isinstance(err, BaseException):
        return _from_exception(err)
    if err is None:
        return ErrorInfo("Error", "", "", 0, "", "")
    return ErrorInfo("Error", str(err), "", 0, "", "")


def _from_exception(exc: BaseException) -> ErrorInfo:
    error_type = type(exc).__name__ or "Error"
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))

    caller, file, line = "", "", 0
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if frames:
        last = frames[-1]
        file = _basename(last.filename)
        line = last.lineno or 0
        caller = "" if last.name == "<module>" else last.name
    else:
        # Exceptions rebuilt from foreign payloads may carry their stack as text.
        foreign = getattr(exc, "stack", None)
        if isinstance(foreign, str):
            caller, file, line = parse_stack(foreign)
            stack = foreign

    return ErrorInfo(error_type, str(exc), file, line, caller, stack)


def _basename(path: str) -> str:
    # Handles both POSIX and Windows separators regardless of host OS.
    return os.path.basename(path.replace("\\", "/")) or path
