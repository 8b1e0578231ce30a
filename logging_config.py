"""Centralized logging configuration.

This module provides:
- JSONFormatter for structured, one-object-per-line logging
- PlainFormatter for local debugging
- setup_logging() which always writes to stderr, because stdout
  carries the MCP stdio transport in local mode
"""

import json
import logging
import re
import sys
from typing import Optional


_TAG_RE = re.compile(r'\[([A-Z_]+)\]\s*(.*)', re.DOTALL)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, server_name: str = None):
        super().__init__()
        self.server_name = server_name or "unknown"

    def format(self, record: logging.LogRecord) -> str:
        # Extract tag from message if present: [TAG] message
        tag = None
        message = record.getMessage()
        tag_match = _TAG_RE.match(message)
        if tag_match:
            tag = tag_match.group(1)
            message = tag_match.group(2)

        log_entry = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "server": self.server_name,
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "module": record.module,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            }
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output (local debugging)."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    server_name: str = None,
    log_format: str = "plain",
    level: Optional[str] = "INFO",
) -> logging.Logger:
    """Configure root logging.

    Args:
        server_name: Name stamped on every JSON log entry.
        log_format: "plain" or "json".
        level: Root log level name.

    Returns:
        Configured root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level or logging.INFO)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    if log_format == "json":
        stderr_handler.setFormatter(JSONFormatter(server_name))
    else:
        stderr_handler.setFormatter(PlainFormatter())
    root_logger.addHandler(stderr_handler)

    # Suppress noisy HTTP client logs (google-genai uses httpx)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"[STARTUP] Logging configured ({log_format})")

    return root_logger
