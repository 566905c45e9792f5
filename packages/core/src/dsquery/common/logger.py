import contextvars
import json
import logging
import uuid
from contextlib import contextmanager
from typing import Iterator, Optional

_trace_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("trace_id", default=None)
_datasource_uid_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("datasource_uid", default=None)

_STANDARD_ATTRS = {
    "args", "asctime", "created", "exc_info", "exc_text", "filename",
    "funcName", "levelname", "levelno", "lineno", "module",
    "msecs", "message", "msg", "name", "pathname", "process",
    "processName", "relativeCreated", "stack_info", "thread", "threadName",
    "taskName", "trace_id", "datasource_uid",
}


class TraceContextFilter(logging.Filter):
    """Injects trace_id and datasource_uid from contextvars into the log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = _trace_id_ctx.get()
        record.datasource_uid = _datasource_uid_ctx.get()
        return True


def new_trace_id() -> str:
    return uuid.uuid4().hex[:16]


@contextmanager
def trace_context(trace_id: Optional[str] = None, datasource_uid: Optional[str] = None) -> Iterator[str]:
    """Scopes a trace id (and optionally a datasource uid) for log records.

    Args:
        trace_id (Optional[str]): The id to bind. A fresh one is generated when omitted.
        datasource_uid (Optional[str]): The datasource the enclosed work targets.

    Yields:
        str: The bound trace id.
    """
    trace_id = trace_id or new_trace_id()
    trace_token = _trace_id_ctx.set(trace_id)
    uid_token = _datasource_uid_ctx.set(datasource_uid)
    try:
        yield trace_id
    finally:
        _datasource_uid_ctx.reset(uid_token)
        _trace_id_ctx.reset(trace_token)


class JsonFormatter(logging.Formatter):
    """Formatter that renders each LogRecord as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }

        if getattr(record, "trace_id", None):
            log_record["trace_id"] = record.trace_id
        if getattr(record, "datasource_uid", None):
            log_record["datasource_uid"] = record.datasource_uid

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                log_record[key] = value

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=str)


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Configures the root logger.

    Args:
        level (str): The logging level (default: INFO).
        json_format (bool): Whether to emit JSON lines (default: False).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.addFilter(TraceContextFilter())

    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - [%(trace_id)s] - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)

    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
