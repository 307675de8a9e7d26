"""
Structured logging for generation events.

Outputs one JSON line per generation event for Loki ingestion, next to
the regular module loggers.  Only outcome events are logged:

- artifacts.generated
- artifacts.rejected
- artifacts.written

Usage:
    from ksmcustom.logger import GenerationLogger, configure_logging

    configure_logging(level="info", fmt="text")
    events = GenerationLogger(source="resources.yaml")
    events.log_generated(resources=3, metrics=12, rules=4)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Structured event logger for Loki
_event_logger = logging.getLogger("ksmcustom.events")
_event_logger.setLevel(logging.INFO)
_event_logger.propagate = False

# Default handler outputs JSON to stderr so stdout stays free for --stdout output
if not _event_logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _event_logger.addHandler(handler)


class JsonFormatter(logging.Formatter):
    """Formats records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """Configure the ``ksmcustom`` logger hierarchy for CLI use."""
    root = logging.getLogger("ksmcustom")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


class GenerationLogger:
    """
    Structured logger for generation events.

    Each entry carries the input source and event type so runs can be
    filtered and correlated in Loki.
    """

    def __init__(
        self,
        source: str,
        service_name: str = "ksmcustom",
        extra_labels: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize generation logger.

        Args:
            source: Input file (or other origin) of the run
            service_name: Service name for log attribution
            extra_labels: Additional labels for Loki filtering
        """
        self.source = source
        self.service_name = service_name
        self.extra_labels = extra_labels or {}
        self._logger = _event_logger

    def _emit(self, event: str, level: str = "info", **extra_fields: Any) -> None:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "event": event,
            "service": self.service_name,
            "source": self.source,
        }
        entry.update(self.extra_labels)
        entry.update({k: v for k, v in extra_fields.items() if v is not None})

        log_level = getattr(logging, level.upper(), logging.INFO)
        self._logger.log(log_level, json.dumps(entry))

    def log_generated(self, resources: int, metrics: int, rules: int) -> None:
        """Log a successful generation pass."""
        self._emit("artifacts.generated", resources=resources, metrics=metrics, rules=rules)

    def log_rejected(self, reason: str, issues: Optional[list[str]] = None) -> None:
        """Log a generation pass that refused to emit artifacts."""
        self._emit("artifacts.rejected", level="error", reason=reason, issues=issues)

    def log_written(self, path: str, artifact: str, checksum: Optional[str] = None) -> None:
        """Log an artifact written to disk."""
        self._emit("artifacts.written", path=path, artifact=artifact, checksum=checksum)
