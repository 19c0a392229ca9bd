"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger

from card_ledger.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
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
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_purchase(
    owner_id: str,
    kind: str,
    amount_cents: int,
    expense_count: int,
    request_id: Optional[str] = None,
) -> None:
    """Log structured purchase outcome for analysis"""
    logging.getLogger("card_ledger.purchases").info(
        "Purchase recorded",
        extra={
            "request_id": request_id,
            "owner_id": owner_id,
            "step": "purchase_complete",
            "purchase_kind": kind,
            "amount_cents": amount_cents,
            "expense_count": expense_count,
        },
    )
