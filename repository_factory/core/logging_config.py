import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from repository_factory.core.config import settings

# LogRecord attributes that are not "extra" fields
_RESERVED_ATTRS = frozenset(
    [
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "message",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    ]
)


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Static fields (service name, version) are attached to every line; values
    passed through ``extra=`` land at the top level next to them, so
    ``logger.debug("...", extra={"entity": "User", "staged": 3})`` can be
    filtered on ``entity`` downstream.
    """

    def __init__(self, static_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.static_fields = dict(static_fields or {})

    def format(self, record):
        log_obj = dict(self.static_fields)
        log_obj.update(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            module=record.module,
            funcName=record.funcName,
            lineNo=record.lineno,
        )

        if record.exc_info:
            log_obj["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_obj["stack_info"] = self.formatStack(record.stack_info)

        log_obj.update(self._extra_fields(record, log_obj))
        return json.dumps(log_obj, ensure_ascii=False, default=str)

    @staticmethod
    def _extra_fields(record, taken) -> Dict[str, Any]:
        return {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS and key not in taken
        }


PLAIN_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Eq. to logging.basicConfig but with JSONFormatter.
    Falls back to settings.LOG_LEVEL / settings.LOG_JSON.
    """
    level = (level or settings.LOG_LEVEL).upper()
    if json_output is None:
        json_output = settings.LOG_JSON

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    if json_output:
        formatter = JSONFormatter({"service": settings.PROJECT_NAME, "version": settings.VERSION})
    else:
        formatter = logging.Formatter(PLAIN_FORMAT)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    # Set levels for noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)

    logging.getLogger(__name__).debug("Logging initialized (level=%s, json=%s)", level, json_output)
