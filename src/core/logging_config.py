"""Structured logging configuration for workflow operations.

Supports two modes:
- Production: JSON format for log aggregation
- Development: Human-readable format
"""

import json
import logging
from datetime import UTC, datetime
from typing import Any

from src.core.config import is_production

# Standard LogRecord attributes excluded from the "extra" block
_STANDARD_ATTRS = {
    "name",
    "msg",
    "args",
    "created",
    "filename",
    "funcName",
    "levelname",
    "levelno",
    "lineno",
    "module",
    "msecs",
    "pathname",
    "process",
    "processName",
    "relativeCreated",
    "stack_info",
    "exc_info",
    "exc_text",
    "thread",
    "threadName",
    "taskName",
    "message",
}


class JSONFormatter(logging.Formatter):
    """JSON log formatter for production environments.

    Outputs single-line JSON that log aggregators handle correctly.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # Non-standard attributes passed via extra={}
        extra_fields = {k: v for k, v in record.__dict__.items() if k not in _STANDARD_ATTRS}
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, default=str)


def setup_structured_logging() -> None:
    """Setup logging for the current environment.

    In production, configures the root logger to output single-line JSON.
    This prevents multiline log messages from appearing as separate log entries.
    """
    if is_production():
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.INFO)

        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)

        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        root_logger.addHandler(handler)

        # SQLAlchemy installs its own handler when echo is enabled
        for logger_name in ["sqlalchemy.engine", "sqlalchemy.pool"]:
            lib_logger = logging.getLogger(logger_name)
            lib_logger.handlers = []
            lib_logger.addHandler(handler)
            lib_logger.propagate = False

        logging.info("JSON structured logging enabled for production")
    else:
        # force=True ensures configuration is applied even if logging was already configured
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            force=True,
        )


class StructuredLogger:
    """Structured logger for pipeline stage operations."""

    def __init__(self, logger_name: str = "podflow.workflow"):
        self.logger = logging.getLogger(logger_name)

    def log_workflow_operation(
        self,
        operation: str,
        success: bool,
        details: dict[str, Any] | None = None,
        errors: list[str] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log a workflow operation as a single JSON line."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "operation": operation,
            "success": success,
            "type": "workflow_operation",
        }

        if details:
            log_data["details"] = details

        if errors:
            log_data["errors"] = errors

        if duration_ms is not None:
            log_data["duration_ms"] = round(duration_ms, 2)

        if success:
            self.logger.info(json.dumps(log_data, default=str))
        else:
            self.logger.warning(json.dumps(log_data, default=str))

    def log_stage_transition(
        self,
        campaign_id: str,
        schema_name: str,
        previous_stage: int,
        target_stage: int,
        success: bool,
        actions: list[str],
        errors: list[str] | None = None,
        duration_ms: float | None = None,
    ) -> None:
        """Log the outcome of a stage transition."""
        self.log_workflow_operation(
            operation="stage_transition",
            success=success,
            details={
                "campaign_id": campaign_id,
                "schema_name": schema_name,
                "previous_stage": previous_stage,
                "target_stage": target_stage,
                "actions": actions,
            },
            errors=errors,
            duration_ms=duration_ms,
        )


# Global structured logger instance
workflow_structured_logger = StructuredLogger()
