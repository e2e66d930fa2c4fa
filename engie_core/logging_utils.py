"""
Logging Utilities for Engie

- configure_logging(): package logger level and optional rotating log file
- ActivityLog: JSONL record of the suggestion lifecycle of each document

The activity log records ids, kinds and lengths. It never stores the
document text itself.

Author: Engie contributors | 2025-06-11
"""

import json
import logging
import re
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

from .suggestions import Suggestion

PACKAGE_LOGGER = "engie_core"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


# Patterns for secret masking (environment variables, tokens, keys)
SECRET_PATTERNS = [
    (re.compile(r"(API_KEY|TOKEN|SECRET|PASSWORD|PASS|AUTH)[=:]\s*['\"]?([^'\"\ \n]+)", re.I), r"\1=***"),
    (re.compile(r"(Bearer|token)\s+([a-zA-Z0-9_\-\.]+)", re.I), r"\1 ***"),
    (re.compile(r"\bsk-[A-Za-z0-9_\-]{8,}"), "sk-***"),
]


def mask_secrets(text: str) -> str:
    """
    Mask secrets in text before logging.

    Args:
        text: Raw text that may contain secrets

    Returns:
        Text with secrets replaced by ***
    """
    masked = text
    for pattern, replacement in SECRET_PATTERNS:
        masked = pattern.sub(replacement, masked)
    return masked


def configure_logging(config=None) -> logging.Logger:
    """
    Configure the ``engie_core`` logger from a LoggingConfig.

    A RotatingFileHandler is attached when ``config.log_file`` is set;
    calling this twice does not stack handlers.
    """
    from .config import LoggingConfig

    if config is None:
        config = LoggingConfig()

    logger = logging.getLogger(PACKAGE_LOGGER)
    level = getattr(logging, str(config.level).upper(), logging.INFO)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, "_engie_handler", False):
            logger.removeHandler(handler)
            handler.close()

    if config.log_file:
        path = Path(config.log_file)
        if not path.is_absolute():
            path = Path(config.log_dir) / path
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            path,
            maxBytes=config.max_log_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._engie_handler = True
        logger.addHandler(handler)

    return logger


class ActivityLog:
    """
    JSONL log of suggestion lifecycle events.

    One line per event, e.g.:
        {"timestamp": "...", "event": "suggestion_applied", "document": "doc-1",
         "suggestion": "sug-3f2a...", "kind": "spelling", "original_len": 7, ...}
    """

    def __init__(self, path: Path, mask_secrets_enabled: bool = True):
        """
        Initialize activity log.

        Args:
            path: JSONL file to append to (parent directories are created)
            mask_secrets_enabled: Whether to mask secrets in records
        """
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.mask_secrets_enabled = mask_secrets_enabled

    @classmethod
    def from_config(cls, config) -> "ActivityLog":
        return cls(Path(config.log_dir) / config.activity_log)

    def log_event(self, event: str, document_id: str, data: Optional[Dict[str, Any]] = None):
        """Append one event."""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "document": document_id,
        }
        if data:
            record.update(data)

        line = json.dumps(record, ensure_ascii=False)
        if self.mask_secrets_enabled:
            line = mask_secrets(line)

        with self.path.open("a", encoding="utf-8") as f:
            f.write(line + "\n")

    def log_suggestion(self, event: str, document_id: str, suggestion: Suggestion, **extra):
        """Append a suggestion event without recording any document text."""
        data = {
            "suggestion": suggestion.id,
            "kind": suggestion.kind.value,
            "severity": suggestion.severity.value,
            "original_len": len(suggestion.original),
            "replacement_len": len(suggestion.replacement),
        }
        if suggestion.anchor is not None:
            data["start"] = suggestion.anchor.start_index
            data["buffer_version"] = suggestion.anchor.buffer_version
        data.update(extra)
        self.log_event(event, document_id, data)

    def read_events(self, limit: Optional[int] = None) -> list:
        """Read back events (most recent last)."""
        if not self.path.exists():
            return []
        with self.path.open("r", encoding="utf-8") as f:
            events = [json.loads(line) for line in f if line.strip()]
        return events[-limit:] if limit else events
