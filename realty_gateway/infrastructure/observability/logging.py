"""Structured JSON logging for payment workflow auditing"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from realty_gateway.config import settings

# Access lines duplicate http_request_duration_seconds
QUIET_LOGGERS = ("uvicorn.access",)


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Adds timestamp, level and service name to every record"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Route the root logger to stdout as one JSON object per line"""
    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    root.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def log_payment_event(
    request_id: Optional[str],
    event: str,
    payment_id: int,
    client_id: int,
    **fields: Any,
) -> None:
    """
    Audit line for one workflow step (payment_submitted, payment_approved,
    payment_rejected, proof_deleted).
    """
    logging.info(
        "Payment workflow step",
        extra={
            "request_id": request_id,
            "step": event,
            "payment_id": payment_id,
            "client_id": client_id,
            **fields,
        },
    )
