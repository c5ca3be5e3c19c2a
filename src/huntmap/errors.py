"""Error types and data-quality bookkeeping for world analysis runs."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

LOGGER = logging.getLogger("huntmap.errors")


class FatalInputError(RuntimeError):
    """A primary input could not be read or decoded; the run must abort."""

    def __init__(self, input_name: str, path: Path | str | None, reason: str) -> None:
        self.input_name = input_name
        self.path = Path(path) if path is not None else None
        self.reason = reason
        location = f" ({self.path})" if self.path is not None else ""
        super().__init__(f"{input_name}{location}: {reason}")


class RecoverableRecordError(ValueError):
    """A single record is unusable; it is logged and skipped."""

    def __init__(self, kind: str, subject: str, reason: str) -> None:
        self.kind = kind
        self.subject = subject
        self.reason = reason
        super().__init__(f"{kind} [{subject}]: {reason}")


@dataclass
class IssueLog:
    """Collect recoverable record errors so counts can be audited after a run."""

    issues: list[RecoverableRecordError] = field(default_factory=list)

    def record(self, error: RecoverableRecordError) -> None:
        """Log and keep a recoverable error."""
        LOGGER.warning("%s", error, extra={"issue": error.kind})
        self.issues.append(error)

    def counts(self) -> dict[str, int]:
        """Return issue counts keyed by record kind."""
        return dict(Counter(issue.kind for issue in self.issues))

    def __len__(self) -> int:
        return len(self.issues)
