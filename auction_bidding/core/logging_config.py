"""
Structured logging configuration with trace IDs
"""
import logging
import uuid
import contextvars
from datetime import datetime
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger

from auction_bidding.core.config import Settings, get_settings

# Context variable to store trace ID across calls
trace_id_var = contextvars.ContextVar('trace_id', default=None)

CONTEXT_FIELDS = (
    'auction_id', 'bid_id', 'user_id', 'job_id', 'duration_ms',
    'method', 'path', 'status_code', 'client_ip', 'error',
)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter with trace ID and bidding context fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.utcnow().isoformat()
        log_record['level'] = record.levelname

        trace_id = trace_id_var.get()
        if trace_id:
            log_record['trace_id'] = trace_id

        log_record['service'] = 'auction-bidding'

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_record[field] = getattr(record, field)


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Configure root logging (JSON or plain text)"""
    settings = settings or get_settings()

    if settings.LOG_JSON:
        formatter = CustomJsonFormatter('%(timestamp)s %(level)s %(name)s %(message)s')
    else:
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    root_logger = logging.getLogger()
    root_logger.setLevel(settings.LOG_LEVEL)

    # Avoid stacking handlers when the app is created more than once
    for handler in list(root_logger.handlers):
        if getattr(handler, '_auction_bidding', False):
            root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler._auction_bidding = True
    root_logger.addHandler(console_handler)

    if settings.LOG_FILE:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        file_handler._auction_bidding = True
        root_logger.addHandler(file_handler)

    # Reduce noise from libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)

    return root_logger


def get_trace_id() -> Optional[str]:
    """Get current trace ID"""
    return trace_id_var.get()


def set_trace_id(trace_id: str):
    """Set trace ID for current context"""
    trace_id_var.set(trace_id)


def generate_trace_id() -> str:
    """Generate a new trace ID"""
    return str(uuid.uuid4())
