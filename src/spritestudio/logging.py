"""Logging configuration for SpriteStudio.

Everything logs under the ``spritestudio`` namespace.  The CLI installs a
rich console handler; library users get plain stderr output or JSON lines.
"""

from __future__ import annotations

import json
import logging
import os
import sys
import threading
from datetime import datetime, timezone
from typing import Any

DEFAULT_FORMAT = "%(levelname)-5s | %(name)-22s | %(message)s"
VERBOSE_FORMAT = "%(asctime)s | %(levelname)-5s | %(name)-22s | %(message)s"
ROOT_LOGGER = "spritestudio"

# Attributes passed through ``extra=`` that the JSON formatter copies out.
CONTEXT_FIELDS = ("project_id", "character_id", "record_id", "frame_count", "provider")

_SETUP_LOCK = threading.Lock()


class JsonFormatter(logging.Formatter):
    """One JSON object per line, with any known context fields attached."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                payload[field] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _console_handler(logger: logging.Logger, rich_console: bool) -> logging.Handler:
    """Return the single console handler on *logger*, creating it if needed."""
    existing = [
        h for h in logger.handlers if getattr(h, "_spritestudio_console", False)
    ]
    for extra in existing[1:]:
        logger.removeHandler(extra)
    if existing and rich_console == getattr(existing[0], "_rich", False):
        return existing[0]
    if existing:
        logger.removeHandler(existing[0])

    handler: logging.Handler
    if rich_console:
        from rich.console import Console
        from rich.logging import RichHandler

        # stdout is reserved for command output
        handler = RichHandler(
            console=Console(stderr=True), show_path=False, rich_tracebacks=True
        )
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler._spritestudio_console = True  # type: ignore[attr-defined]
    handler._rich = rich_console  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return handler


def setup_logging(
    level: int = logging.INFO,
    verbose: bool = False,
    log_file: str | None = None,
    json_logs: bool = False,
    rich_console: bool = False,
) -> None:
    """Configure logging for the spritestudio package.

    Safe to call repeatedly: the console handler and any file handler for
    the same path are reused rather than duplicated.

    Args:
        level: Logging level (default: INFO).
        verbose: If True, include timestamps in plain-text output.
        log_file: Optional file path to write logs to (in addition to stderr).
        json_logs: Emit structured JSON log lines when True.
        rich_console: Render console output through ``rich`` (used by the CLI).
            Ignored when *json_logs* is set.
    """
    with _SETUP_LOCK:
        logger = logging.getLogger(ROOT_LOGGER)
        logger.setLevel(level)

        console = _console_handler(logger, rich_console and not json_logs)
        if json_logs:
            console.setFormatter(JsonFormatter())
        elif not getattr(console, "_rich", False):
            console.setFormatter(
                logging.Formatter(VERBOSE_FORMAT if verbose else DEFAULT_FORMAT)
            )

        if log_file:
            target = os.path.abspath(str(log_file))
            file_handler = next(
                (
                    h
                    for h in logger.handlers
                    if isinstance(h, logging.FileHandler)
                    and getattr(h, "baseFilename", None) == target
                ),
                None,
            )
            if file_handler is None:
                file_handler = logging.FileHandler(target, encoding="utf-8")
                logger.addHandler(file_handler)
            file_handler.setFormatter(
                JsonFormatter() if json_logs else logging.Formatter(VERBOSE_FORMAT)
            )


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a SpriteStudio module.

    Args:
        name: Module name (e.g., ``"layout"``, ``"workflow"``).

    Returns:
        A logger instance under the ``spritestudio`` namespace.
    """
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
