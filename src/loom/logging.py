"""
Loom Logging Infrastructure.

Provides unified logging for the runtime subsystems, with:
- Component-tagged loggers (Scheduler, Reconciler, Hooks, Component, Runtime, Host)
- Console output for human monitoring
- Optional JSONL file output for tooling that tails the log

Log Format Design:
- Each JSONL line is a complete JSON object with full context
- Includes timestamp, component, level, message, and structured metadata
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

# =============================================================================
# Terminal Colors (respects NO_COLOR)
# =============================================================================

_NO_COLOR = bool(os.environ.get("NO_COLOR")) or not sys.stdout.isatty()


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "" if _NO_COLOR else "\033[0m"
    DIM = "" if _NO_COLOR else "\033[2m"

    # Log levels
    DEBUG = "" if _NO_COLOR else "\033[36m"  # Cyan
    INFO = "" if _NO_COLOR else "\033[32m"  # Green
    WARNING = "" if _NO_COLOR else "\033[33m"  # Yellow
    ERROR = "" if _NO_COLOR else "\033[31m"  # Red
    CRITICAL = "" if _NO_COLOR else "\033[35m"  # Magenta

    # Components
    CORE = "" if _NO_COLOR else "\033[34m"  # Blue
    HOST = "" if _NO_COLOR else "\033[36m"  # Cyan
    LOOM = "" if _NO_COLOR else "\033[35m"  # Magenta


# =============================================================================
# JSONL Formatter
# =============================================================================


class JSONLFormatter(logging.Formatter):
    """
    Formats log records as JSON Lines.

    Each log entry is a single JSON object on one line containing:
    - timestamp: ISO 8601 format
    - level: DEBUG, INFO, WARNING, ERROR, CRITICAL
    - component: Scheduler, Reconciler, Hooks, Component, Runtime, Host
    - message: The log message
    - context: Additional structured data (optional)
    - source: Source file/location info (warnings and above)

    Example output:
    {"timestamp":"2024-01-15T10:30:45.123+00:00","level":"WARNING","component":"Component","message":"Render failed","context":{"component":"Counter"}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "component": getattr(record, "component", "Loom"),
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            entry["context"] = context

        if record.levelno >= logging.WARNING:
            source_info: dict[str, Any] = {}
            if record.pathname:
                source_info["file"] = record.pathname
            if record.lineno:
                source_info["line"] = record.lineno
            if record.funcName and record.funcName != "<module>":
                source_info["function"] = record.funcName
            if source_info:
                entry["source"] = source_info

        if record.exc_info and record.exc_info[0]:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.DEBUG,
        logging.INFO: Colors.INFO,
        logging.WARNING: Colors.WARNING,
        logging.ERROR: Colors.ERROR,
        logging.CRITICAL: Colors.CRITICAL,
    }

    def format(self, record: logging.LogRecord) -> str:
        component = getattr(record, "component", "Loom")
        component_color = getattr(record, "component_color", Colors.LOOM)

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        level_color = self.LEVEL_COLORS.get(record.levelno, "")

        if _NO_COLOR:
            prefix = f"[{timestamp}] [{component}]"
        else:
            prefix = (
                f"{Colors.DIM}{timestamp}{Colors.RESET} "
                f"{component_color}[{component}]{Colors.RESET}"
            )

        if record.levelno != logging.INFO:
            level_name = record.levelname
            if not _NO_COLOR:
                level_name = f"{level_color}{level_name}{Colors.RESET}"
            prefix = f"{prefix} {level_name}:"

        message = f"{prefix} {record.getMessage()}"
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        return message


# =============================================================================
# Logger Setup
# =============================================================================


_loggers: dict[str, logging.Logger] = {}
_file_handler: RotatingFileHandler | None = None


def setup_logging(
    level: int = logging.INFO,
    log_dir: Path | str | None = None,
    max_bytes: int = 5 * 1024 * 1024,  # 5MB
    backup_count: int = 3,
) -> logging.Logger:
    """
    Initialize the logging infrastructure for the ``loom`` logger tree.

    Creates:
    - Console output: Human-readable format
    - <log_dir>/loom.log: JSONL format (only when log_dir is given)

    Args:
        level: Minimum log level
        log_dir: Directory for the JSONL log file, or None for console only
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep

    Returns:
        The configured root ``loom`` logger
    """
    global _file_handler

    root_logger = logging.getLogger("loom")
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ConsoleFormatter())
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        _file_handler = RotatingFileHandler(
            directory / "loom.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        _file_handler.setFormatter(JSONLFormatter())
        _file_handler.setLevel(level)
        root_logger.addHandler(_file_handler)

    return root_logger


def get_logger(component: str, color: str = Colors.LOOM) -> logging.Logger:
    """
    Get a logger for a specific runtime component.

    Args:
        component: Component name (e.g., "Scheduler", "Hooks")
        color: ANSI color code for the component tag

    Returns:
        Configured logger instance
    """
    if component in _loggers:
        return _loggers[component]

    logger = logging.getLogger(f"loom.{component.lower().replace(' ', '_')}")

    class ComponentFilter(logging.Filter):
        def filter(self, record: logging.LogRecord) -> bool:
            if not hasattr(record, "component"):
                record.component = component
            if not hasattr(record, "component_color"):
                record.component_color = color
            return True

    logger.addFilter(ComponentFilter())
    _loggers[component] = logger

    return logger


# =============================================================================
# Contextual Logging
# =============================================================================


def log_with_context(
    logger: logging.Logger,
    level: int,
    message: str,
    context: dict[str, Any] | None = None,
    exc_info: BaseException | None = None,
    **kwargs: Any,
) -> None:
    """
    Log a message with structured context data.

    Args:
        logger: Logger instance
        level: Logging level (logging.INFO, logging.ERROR, etc.)
        message: Human-readable message
        context: Structured context data (included in JSONL output)
        exc_info: Exception to attach to the record
        **kwargs: Additional context items
    """
    extra = {"context": {**(context or {}), **kwargs}} if (context or kwargs) else {}
    logger.log(level, message, extra=extra, exc_info=exc_info)


# =============================================================================
# Component Loggers
# =============================================================================


def get_scheduler_logger() -> logging.Logger:
    """Get logger for the render scheduler."""
    return get_logger("Scheduler", Colors.CORE)


def get_reconciler_logger() -> logging.Logger:
    """Get logger for the diff/patch engine."""
    return get_logger("Reconciler", Colors.CORE)


def get_hooks_logger() -> logging.Logger:
    """Get logger for the hooks runtime."""
    return get_logger("Hooks", Colors.CORE)


def get_component_logger() -> logging.Logger:
    """Get logger for component lifecycle events."""
    return get_logger("Component", Colors.LOOM)


def get_runtime_logger() -> logging.Logger:
    """Get logger for runtime-level errors and the error channel."""
    return get_logger("Runtime", Colors.LOOM)


def get_host_logger() -> logging.Logger:
    """Get logger for host adapter operations."""
    return get_logger("Host", Colors.HOST)
