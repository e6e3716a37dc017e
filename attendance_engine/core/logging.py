import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from pythonjsonlogger import jsonlogger
from contextvars import ContextVar

from attendance_engine.core.config import settings

# Correlation id of the current request, set by the HTTP middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Employee the current operation acts on; set by the services around per-employee flows
employee_id_var: ContextVar[Optional[int]] = ContextVar("employee_id", default=None)


@contextmanager
def employee_context(employee_id: int) -> Iterator[None]:
    """Stamp every log line emitted inside the block with `employee_id`."""
    token = employee_id_var.set(employee_id)
    try:
        yield
    finally:
        employee_id_var.reset(token)


class AttendanceJsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super(AttendanceJsonFormatter, self).add_fields(log_record, record, message_dict)

        req_id = request_id_var.get()
        if req_id:
            log_record["request_id"] = req_id

        employee_id = employee_id_var.get()
        if employee_id is not None and "employee_id" not in log_record:
            log_record["employee_id"] = employee_id

        if not log_record.get("timestamp"):
            from datetime import datetime, timezone
            log_record["timestamp"] = datetime.now(timezone.utc).isoformat()

        log_record["level"] = (log_record.get("level") or record.levelname).upper()
        log_record["env"] = settings.environment


def setup_logging(level: Optional[str] = None):
    root = logging.getLogger()
    if any(isinstance(h.formatter, AttendanceJsonFormatter) for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(AttendanceJsonFormatter("%(timestamp) %(level) %(name) %(message)"))
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    # Request lines and SQL echo drown the business events
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
