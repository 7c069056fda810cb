"""Root logger setup: JSON lines for production, a compact console view for dev.

Both formats carry the request's correlation ID, which lives in a contextvar set
by RequestLoggingMiddleware. Each asyncio task sees its own value.
"""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from types import TracebackType
from typing import Any

from pythonjsonlogger.json import JsonFormatter

_correlation_id: contextvars.ContextVar[str] = contextvars.ContextVar(
    "simlr_correlation_id", default=""
)

# Libraries that log every connection/statement at DEBUG
_CHATTY_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "uvicorn.access")

JSON_FIELDS = "%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s %(lineno)d %(message)s"
JSON_RENAMES = {
    "asctime": "timestamp",
    "levelname": "level",
    "name": "logger",
    "funcName": "function",
    "lineno": "line",
}
CONSOLE_FORMAT = "%(asctime)s │ %(levelname)-7s │ %(name)s:%(lineno)d │ %(message)s"


def get_correlation_id() -> str:
    """Correlation ID of the current request ("" outside one)."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context; None mints a UUID4."""
    value = correlation_id or str(uuid.uuid4())
    _correlation_id.set(value)
    return value


class CorrelationIdFilter(logging.Filter):
    """Stamps ``record.correlation_id`` so both formatters can use it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class SimlrJsonFormatter(JsonFormatter):
    """One JSON object per line with stable field names.

    ``app`` is a static field; ``correlation_id`` is dropped when empty
    (startup, background work).
    """

    def __init__(self, app_name: str = "simlr", **kwargs: Any) -> None:
        kwargs.setdefault("rename_fields", JSON_RENAMES)
        kwargs.setdefault("static_fields", {"app": app_name})
        kwargs.setdefault("datefmt", "%Y-%m-%dT%H:%M:%S")
        super().__init__(JSON_FIELDS, **kwargs)

    def process_log_record(self, log_data: dict[str, Any]) -> dict[str, Any]:
        if not log_data.get("correlation_id"):
            log_data.pop("correlation_id", None)
        return super().process_log_record(log_data)


def _cause_chain(exc: BaseException) -> list[BaseException]:
    """Explicit and implicit causes, root cause first. Cycles are cut."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain[::-1]


def _own_frames(tb: TracebackType | None) -> list[traceback.FrameSummary]:
    return [
        frame
        for frame in traceback.extract_tb(tb)
        if "simlr" in frame.filename and "site-packages" not in frame.filename
    ]


class ConsoleFormatter(logging.Formatter):
    """Readable lines; tracebacks trimmed to our own frames.

    10:42:01 │ ERROR   │ simlr.api.exception_handlers:97 │ Unhandled exception
    ╰─► ConnectError: All connection attempts failed
        File "musicbrainz_client.py", line 131, in _send
          response = await self._client.request(method, url, params=params)
    ╰─► ExternalServiceError: MusicBrainz error: request failed after 3 retries
    """

    def __init__(self) -> None:
        super().__init__(fmt=CONSOLE_FORMAT, datefmt="%H:%M:%S")

    def formatException(self, ei: Any) -> str:
        exc = ei[1]
        if exc is None:
            return ""
        lines: list[str] = []
        for link in _cause_chain(exc):
            lines.append(f"╰─► {type(link).__name__}: {link}")
            for frame in _own_frames(link.__traceback__):
                lines.append(f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}')
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "simlr",
) -> None:
    """Install a single stdout handler on the root logger.

    Safe to call more than once (tests, reloads): earlier root handlers are
    removed first.
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(SimlrJsonFormatter(app_name) if json_format else ConsoleFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging ready (level=%s, json=%s)", logging.getLevelName(level), json_format
    )
