"""Structured JSON logging for the CLI"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "bankcli"


def setup_logging(level: str = "WARNING") -> None:
    """Configure structured JSON logging on stderr, keeping stdout for data"""
    logger = logging.getLogger()
    logger.setLevel(level.upper())

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_cache_lookup(
    dataset: str,
    from_cache: bool,
    cache_age: Optional[datetime],
    record_count: int,
) -> None:
    """Log structured cache outcome for a single orchestrator call"""
    logging.info(
        "Cache lookup completed",
        extra={
            "step": "cache_lookup",
            "dataset": dataset,
            "outcome": "hit" if from_cache else "fetched",
            "cache_age": cache_age.isoformat() if cache_age else None,
            "record_count": record_count,
        },
    )
