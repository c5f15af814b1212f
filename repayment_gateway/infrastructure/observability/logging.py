"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from repayment_gateway.config import settings


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


def log_loan_created(
    loan_id: str,
    owner_id: str,
    principal: int,
    term_count: int,
    currency: str,
    duration_ms: float,
) -> None:
    """Log loan origination with its schedule shape"""
    logging.info(
        "Loan created",
        extra={
            "loan_id": loan_id,
            "owner_id": owner_id,
            "step": "loan_created",
            "principal": principal,
            "term_count": term_count,
            "currency": currency,
            "duration_ms": duration_ms,
        },
    )


def log_repayment_allocated(
    loan_id: str,
    repayment_id: str,
    amount: int,
    installments_touched: int,
    unallocated: int,
    outstanding_amount: int,
    loan_status: str,
    duration_ms: float,
) -> None:
    """Log structured allocation outcome for reconciliation"""
    logging.info(
        "Repayment allocated",
        extra={
            "loan_id": loan_id,
            "repayment_id": repayment_id,
            "step": "repayment_allocated",
            "amount": amount,
            "installments_touched": installments_touched,
            "unallocated": unallocated,
            "outstanding_amount": outstanding_amount,
            "loan_status": loan_status,
            "duration_ms": duration_ms,
        },
    )
