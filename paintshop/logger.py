"""
Structured Logging for the paint shop workflow.
Outputs JSON-formatted logs for machine readability and auditing.
"""

import json
import sys
import logging
from datetime import datetime, timezone

# Configure package logger
logger = logging.getLogger("PaintShop")
logger.setLevel(logging.INFO)
handler = logging.StreamHandler(sys.stdout)
logger.addHandler(handler)

class JsonFormatter(logging.Formatter):
    """JSON formatter that dynamically extracts all extra fields."""

    # Standard LogRecord attributes to exclude (these are Python logging internals)
    STANDARD_ATTRS = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName', 'levelname',
        'levelno', 'lineno', 'module', 'msecs', 'message', 'pathname', 'process',
        'processName', 'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'asctime', 'taskName'
    }

    def format(self, record):
        log_record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "module": record.module,
        }

        for key, value in record.__dict__.items():
            if key not in self.STANDARD_ATTRS and not key.startswith('_'):
                try:
                    json.dumps(value)
                    log_record[key] = value
                except (TypeError, ValueError):
                    # Enums, dataclasses, exceptions
                    log_record[key] = str(value)

        return json.dumps(log_record)

handler.setFormatter(JsonFormatter())

def get_logger(component: str = "WORKFLOW"):
    return ComponentLogger(component)

class ComponentLogger:
    def __init__(self, component):
        self.component = component
        self.logger = logging.getLogger("PaintShop")

    def _extra(self, item_id, kwargs):
        extra = {"component": self.component}
        if item_id: extra["item_id"] = item_id
        extra.update(kwargs)
        return extra

    def info(self, msg, item_id=None, **kwargs):
        self.logger.info(msg, extra=self._extra(item_id, kwargs))

    def warning(self, msg, item_id=None, **kwargs):
        self.logger.warning(msg, extra=self._extra(item_id, kwargs))

    def error(self, msg, item_id=None, **kwargs):
        self.logger.error(msg, extra=self._extra(item_id, kwargs))
