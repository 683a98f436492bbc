"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    service_name = "finboard-api"

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = self.service_name


def setup_logging(level: str = "INFO", service_name: str = "finboard-api") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    formatter.service_name = service_name
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_record_written(
    request_id: Optional[str],
    user_id: str,
    collection: str,
    operation: str,
    record_id: str,
) -> None:
    """Log a committed create/update/delete for audit"""
    logging.info(
        "Record written",
        extra={
            "request_id": request_id,
            "user_id": user_id,
            "step": "record_written",
            "collection": collection,
            "operation": operation,
            "record_id": record_id,
        },
    )
