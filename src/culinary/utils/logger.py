"""Logging infrastructure for Culinary Time Machine.

Provides centralized logging with configurable format (text/JSON) and level.
Configured via environment variables:
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- LOG_TYPE: text, json (default: text)

Pipeline code attaches context to its records through ``extra`` (or a
PipelineLogAdapter): the generation a line belongs to, the retry attempt,
the saved recipe it touches. Both formatters render whatever context is set.
"""

import json
import logging
import os
import sys
from typing import Any, MutableMapping, Optional

# Record attributes rendered as context, in display order
CONTEXT_FIELDS = ("generation_id", "attempt", "recipe_id")


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Context attributes set on a record (missing or None ones skipped)."""
    return {
        field: getattr(record, field)
        for field in CONTEXT_FIELDS
        if getattr(record, field, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Formatter that outputs structured JSON, one object per line."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format.

        Returns:
            JSON string with timestamp, level, logger name, message, pipeline
            context and optional traceback.
        """
        log_data: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Include generation / attempt / recipe context if present
        log_data.update(record_context(record))

        # Include exception traceback if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False)


class RichTextFormatter(logging.Formatter):
    """Formatter that outputs colored text with emoji icons."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",      # Cyan
        "INFO": "\033[32m",       # Green
        "WARNING": "\033[33m",    # Yellow
        "ERROR": "\033[31m",      # Red
        "RESET": "\033[0m",       # Reset
    }

    # Emoji icons for each level
    ICONS = {
        "DEBUG": "🔍",
        "INFO": "ℹ️",
        "WARNING": "⚠️",
        "ERROR": "❌",
    }

    # Short labels for context fields: [gen 3] [attempt 2] [recipe 1718000000000]
    CONTEXT_LABELS = {
        "generation_id": "gen",
        "attempt": "attempt",
        "recipe_id": "recipe",
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as colored text.

        Args:
            record: Log record to format.

        Returns:
            Formatted string with color codes, emoji icon and context tags.
        """
        level = record.levelname
        color = self.COLORS.get(level, self.COLORS["RESET"])
        icon = self.ICONS.get(level, "")
        reset = self.COLORS["RESET"]

        # Format: YYYY-MM-DD HH:MM:SS
        timestamp = self.formatTime(record, "%Y-%m-%d %H:%M:%S")

        tags = "".join(
            f"[{self.CONTEXT_LABELS[field]} {value}] " for field, value in record_context(record).items()
        )

        message = f"{color}{icon} {timestamp} {level:<8} {record.name:<22} {tags}{record.getMessage()}{reset}"

        # Include exception traceback if present
        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class PipelineLogAdapter(logging.LoggerAdapter):
    """Logger bound to one generation run.

    Every record carries ``generation_id``; per-call ``extra`` (e.g. attempt)
    is merged on top.
    """

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def get_logger(name: str) -> logging.Logger:
    """Create and configure logger instance.

    Args:
        name: Logger name, typically module name.

    Returns:
        Configured logger instance.
    """
    logger_instance = logging.getLogger(name)

    # Return existing logger if already configured
    if logger_instance.handlers:
        return logger_instance

    # Read configuration from environment
    log_level_str = os.getenv("LOG_LEVEL", "INFO").upper()
    log_type = os.getenv("LOG_TYPE", "text").lower()

    log_level = getattr(logging, log_level_str, logging.INFO)
    logger_instance.setLevel(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if log_type == "json" else RichTextFormatter())
    logger_instance.addHandler(handler)

    return logger_instance


def pipeline_logger(generation_id: int, base: Optional[logging.Logger] = None) -> PipelineLogAdapter:
    """Logger whose records are tagged with one generation id."""
    return PipelineLogAdapter(base or logger, {"generation_id": generation_id})


# Create module-level logger instance
logger = get_logger("culinary_time_machine")

# Suppress per-request chatter from the Gemini SDK and its HTTP transport
logging.getLogger("google.genai").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
