"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from khata_gateway.config import settings

audit_logger = logging.getLogger("khata_gateway.audit")


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

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s",
        json_default=str,  # Decimal, date, UUID
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_audit(
    request_id: str,
    actor: str,
    shop_id: str,
    entity: str,
    entity_id: str,
    action: str,
    **details: Any,
) -> None:
    """Audit trail for every financial write"""
    audit_logger.info(
        f"{entity} {action}",
        extra={
            "request_id": request_id,
            "actor": actor,
            "shop_id": shop_id,
            "entity": entity,
            "entity_id": entity_id,
            "action": action,
            **{k: str(v) if isinstance(v, Decimal) else v for k, v in details.items()},
        },
    )


def log_domain_error(request_id: str, code: str, message: str, step: str) -> None:
    """Log rejected operation; validation failures are warnings, not errors"""
    logging.warning(
        "Operation rejected",
        extra={
            "request_id": request_id,
            "step": step,
            "error_code": code,
            "error_message": message,
        },
    )
