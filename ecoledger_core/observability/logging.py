"""Structured logging for EcoLedger.

Every line is one JSON object. Services log with keyword fields
(``logger.info("Points redeemed", user_id=3, cost=50)``) and the HTTP
middleware binds a :class:`RequestContext`, so ledger and task lines written
while a request is handled carry its ``request_id`` without the services
knowing about requests.
"""

import json
import logging
import sys
import traceback
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterator, Optional

DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_SERVICE_NAME = "ecoledger"

PLAIN_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Attributes every LogRecord has; anything else on a record is a field
_RECORD_ATTRIBUTES = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", (), None))
) | {"message", "asctime"}


def _jsonable(value: Any) -> Any:
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return str(value)
    return value


@dataclass
class RequestContext:
    """Request-scoped fields attached to log lines."""

    request_id: Optional[str] = None
    user_id: Optional[int] = None
    report_id: Optional[int] = None
    path: Optional[str] = None
    method: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        fields = {
            "request_id": self.request_id,
            "user_id": self.user_id,
            "report_id": self.report_id,
            "path": self.path,
            "method": self.method,
        }
        result = {key: value for key, value in fields.items() if value is not None}
        result.update(self.extra)
        return result


_current_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "ecoledger_request_context", default=None
)


def current_request_context() -> Optional[RequestContext]:
    return _current_context.get()


@contextmanager
def bind_request_context(context: RequestContext) -> Iterator[RequestContext]:
    """Make ``context`` the default for log calls until the block exits."""
    token = _current_context.set(context)
    try:
        yield context
    finally:
        _current_context.reset(token)


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON."""

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME):
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }
        if record.levelno >= logging.WARNING:
            entry["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        entry.update(
            (key, _jsonable(value))
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES and not key.startswith("_")
        )
        return json.dumps(entry)


class StructuredLogger:
    """Logger taking fields as keyword arguments.

    An explicit ``context`` wins over the one bound for the current request;
    keyword fields win over both.
    """

    def __init__(self, name: str):
        self.name = name
        self._logger = logging.getLogger(name)

    def log(
        self,
        level: int,
        msg: str,
        context: Optional[RequestContext] = None,
        exc_info: bool = False,
        **fields: Any,
    ) -> None:
        if not self._logger.isEnabledFor(level):
            return
        context = context or _current_context.get()
        extra = context.to_dict() if context is not None else {}
        extra.update(fields)
        self._logger.log(level, msg, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, context: Optional[RequestContext] = None, **fields: Any) -> None:
        self.log(logging.DEBUG, msg, context, **fields)

    def info(self, msg: str, context: Optional[RequestContext] = None, **fields: Any) -> None:
        self.log(logging.INFO, msg, context, **fields)

    def warning(
        self,
        msg: str,
        context: Optional[RequestContext] = None,
        exc_info: bool = False,
        **fields: Any,
    ) -> None:
        self.log(logging.WARNING, msg, context, exc_info=exc_info, **fields)

    def error(
        self,
        msg: str,
        context: Optional[RequestContext] = None,
        exc_info: bool = False,
        **fields: Any,
    ) -> None:
        self.log(logging.ERROR, msg, context, exc_info=exc_info, **fields)


_loggers: dict[str, StructuredLogger] = {}


def get_logger(name: str) -> StructuredLogger:
    return _loggers.setdefault(name, StructuredLogger(name))


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    json_format: bool = True,
    service_name: str = DEFAULT_SERVICE_NAME,
) -> None:
    """Route all logging to stdout through one handler.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Emit JSON lines instead of plain text
        service_name: Service name written into every JSON line
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(
        JsonFormatter(service_name=service_name)
        if json_format
        else logging.Formatter(PLAIN_FORMAT)
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers[:] = [handler]
