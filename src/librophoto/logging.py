"""Structured logging for librophoto.

Uses structlog for contextual JSON logging with per-operation tracking
and typed audit events for the capture lifecycle.

Usage:
    from librophoto.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("librophoto.gallery")
    log.info("upload_started", book_id="b1", temp_id="temp-1700000000000-1")
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar

import structlog
from structlog.types import EventDict, Processor

# Context variable for the user action currently being handled
_operation_id_var: ContextVar[str | None] = ContextVar("operation_id", default=None)


def get_operation_id() -> str | None:
    """Get the current operation ID from context."""
    return _operation_id_var.get()


def set_operation_id(operation_id: str | None) -> None:
    """Set the operation ID in context."""
    _operation_id_var.set(operation_id)


def new_operation_id() -> str:
    """Start a new operation and return its ID."""
    operation_id = uuid.uuid4().hex[:12]
    set_operation_id(operation_id)
    return operation_id


def _add_operation_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add operation ID to log event if available."""
    operation_id = get_operation_id()
    if operation_id:
        event_dict["operation_id"] = operation_id
    return event_dict


def setup_logging(level: str = "INFO") -> None:
    """Configure structlog to render JSON lines on stderr."""
    shared_processors: list[Processor] = [
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.add_log_level,
        _add_operation_id,
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # stderr keeps stdout free for CLI output
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_processors,
        )
    )
    logging.basicConfig(handlers=[handler], level=level.upper(), force=True)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a bound logger with optional name.

    Args:
        name: Optional logger name (e.g., 'librophoto.gallery.upload')

    Returns:
        Bound structlog logger instance
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


# --- Audit Event Functions ---
# Typed interfaces for capture lifecycle audit events


def log_capture_reconciled(
    logger: structlog.stdlib.BoundLogger,
    temp_id: str,
    capture_id: str,
    storage_key: str,
) -> None:
    """Log a pending capture replaced by its persisted record.

    Args:
        logger: Logger instance
        temp_id: Temporary id of the pending entry
        capture_id: Store-assigned capture id
        storage_key: Object store key holding the image
    """
    logger.info(
        "capture_reconciled",
        temp_id=temp_id,
        capture_id=capture_id,
        storage_key=storage_key,
    )


def log_capture_rolled_back(
    logger: structlog.stdlib.BoundLogger,
    temp_id: str,
    stage: str,
    error: str,
) -> None:
    """Log a pending capture removed after a failed upload.

    Args:
        logger: Logger instance
        temp_id: Temporary id of the pending entry
        stage: Upload step that failed (object_write, public_url, metadata_insert)
        error: Error message
    """
    logger.warning(
        "capture_rolled_back",
        temp_id=temp_id,
        stage=stage,
        error=error,
    )


def log_capture_deleted(
    logger: structlog.stdlib.BoundLogger,
    capture_id: str,
    blob_removed: bool,
) -> None:
    """Log a capture deleted from the metadata store.

    Args:
        logger: Logger instance
        capture_id: Deleted capture id
        blob_removed: Whether the backing object was removed too
    """
    logger.info(
        "capture_deleted",
        capture_id=capture_id,
        blob_removed=blob_removed,
    )


def log_orphaned_blob(
    logger: structlog.stdlib.BoundLogger,
    storage_key: str,
    reason: str,
) -> None:
    """Log an object left behind without a metadata record.

    Args:
        logger: Logger instance
        storage_key: Object store key that may now be orphaned
        reason: Why it was left behind
    """
    logger.warning(
        "orphaned_blob",
        storage_key=storage_key,
        reason=reason,
    )
