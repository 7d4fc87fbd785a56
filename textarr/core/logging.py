"""
Structured logging configuration using structlog.

Provides consistent, structured logging across the application with:
- JSON output in production
- Pretty console output in development
- Context binding for request tracing (request_id, user_id, platform)
- Redaction of API keys and webhook secrets before rendering
- File output to logs/ directory (one file per process run)
"""

import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any, List

import structlog
from structlog.typing import EventDict, Processor

from textarr.core.config import settings

REDACTED = "***"

# Field names (lowercased, dashes as underscores) whose values never reach a log
SECRET_FIELDS = frozenset(
    {"api_key", "x_api_key", "authorization", "webhook_secret", "x_webhook_secret", "token"}
)


def _cull_old_logs(logs_dir: Path, keep: int) -> None:
    """Delete old log files, keeping only the N most recent."""
    log_files = sorted(
        logs_dir.glob("textarr_*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    for old_file in log_files[keep:]:
        try:
            os.remove(old_file)
        except OSError:
            pass  # Another process may hold it


def redact_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential-bearing fields, including inside header and param dicts."""
    for key, value in list(event_dict.items()):
        event_dict[key] = _redact(key, value)
    return event_dict


def _redact(key: str, value: Any) -> Any:
    normalized = str(key).lower().replace("-", "_")
    if value and (normalized in SECRET_FIELDS or normalized.endswith("_api_key")):
        return REDACTED
    if isinstance(value, dict):
        return {k: _redact(k, v) for k, v in value.items()}
    return value


def configure_logging(log_runs_to_keep: int = 5) -> None:
    """Configure structlog for the application.

    Call this once at application startup, before any logging.

    Args:
        log_runs_to_keep: Number of recent run logs to retain (default: 5)

    Outputs:
        - Console (colored in debug, JSON otherwise)
        - File: logs/textarr_YYYYMMDD_HHMMSS.log
    """
    logs_dir = Path("logs")
    logs_dir.mkdir(exist_ok=True)

    # keep-1 to make room for the new file
    _cull_old_logs(logs_dir, keep=log_runs_to_keep - 1)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = logs_dir / f"textarr_{timestamp}.log"

    shared_processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
    ]

    if settings.debug:
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]

    # Clear existing handlers so reconfiguration does not duplicate output
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        handler.close()
        root_logger.removeHandler(handler)

    level = logging.DEBUG if settings.debug else logging.INFO
    root_logger.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    file_handler = logging.FileHandler(log_file, mode="w")
    file_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(file_handler)

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a logger instance with the given name.

    Usage:
        from textarr.core.logging import get_logger

        log = get_logger(__name__)
        log.info("something_happened", key="value")
    """
    return structlog.get_logger(name)


def bind_context(**kwargs) -> None:
    """
    Bind context variables that will be included in all subsequent logs.

        bind_context(request_id=request_id, user_id="sms:+15551234567")
    """
    structlog.contextvars.bind_contextvars(**kwargs)


def bind_user_context(user_id: str) -> None:
    """Bind a platform identity and its platform, e.g. user_id="sms:+1555..." platform="sms"."""
    platform, _, _ = user_id.partition(":")
    structlog.contextvars.bind_contextvars(user_id=user_id, platform=platform)


def unbind_user_context() -> None:
    structlog.contextvars.unbind_contextvars("user_id", "platform")


def clear_context() -> None:
    """Clear all bound context variables from the logging context."""
    structlog.contextvars.clear_contextvars()


def unbind_context(*keys: str) -> None:
    """Remove specific keys from the logging context."""
    structlog.contextvars.unbind_contextvars(*keys)
