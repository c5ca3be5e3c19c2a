"""Logging setup for the huntmap CLI."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

# ``extra`` keys the huntmap modules attach to records.
CONTEXT_FIELDS = ("input", "area", "issue")


@dataclass(frozen=True)
class LogOptions:
    verbose: int = 0
    quiet: bool = False
    log_file: Path | None = None
    json_console: bool = False

    @property
    def console_level(self) -> int:
        if self.quiet:
            return logging.WARNING
        return logging.DEBUG if self.verbose > 0 else logging.INFO


def _context(record: logging.LogRecord) -> dict[str, object]:
    return {
        name: getattr(record, name)
        for name in CONTEXT_FIELDS
        if getattr(record, name, None) is not None
    }


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with the huntmap context under ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, timezone.utc)
        payload = {
            "timestamp": created.isoformat(timespec="seconds").replace("+00:00", "Z"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = _context(record)
        if context:
            payload["extra"] = context
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class HumanFormatter(logging.Formatter):
    """Prefix messages with the input, area, or issue kind they concern."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = _context(record)
        if not context:
            return message
        name, value = next(iter(context.items()))
        return f"[{name} {value}] {message}"


def configure_logging(options: LogOptions) -> logging.Logger:
    """Route logs to stderr, plus a JSON lines file when requested."""
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(options.console_level)
    console.setFormatter(
        JsonFormatter() if options.json_console else HumanFormatter("%(levelname)s: %(message)s")
    )
    root.addHandler(console)

    if options.log_file:
        options.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(options.log_file, encoding="utf-8")
        file_handler.setFormatter(JsonFormatter())
        root.addHandler(file_handler)
    return root
