"""Structured logging configuration for the S3 Bucket Compiler."""

import json
import logging
import sys
from typing import Any

from .constants import SERVICE_NAME
from .utils.errors import sanitize_error_message


def setup_structured_logging(level: int = logging.INFO) -> None:
    """Configure structured JSON logging for a host process."""
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_compile_event(
    logger: logging.Logger,
    bucket_name: str | None,
    stage: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured compilation event."""
    if not logger.isEnabledFor(level):
        return
    log_data = {
        "component": SERVICE_NAME,
        "bucket": bucket_name,
        "stage": stage,
        "event": event,
        "reason": reason,
        "message": sanitize_error_message(message),
    }
    log_data.update(kwargs)
    logger.log(level, json.dumps(log_data, default=str))
