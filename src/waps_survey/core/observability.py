"""Structured audit trail for survey sessions (JSON Lines)."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class AuditEventType(str, Enum):
    """Survey lifecycle events recorded in the audit trail."""

    SURVEY_STARTED = "survey_started"
    SURVEY_HALTED = "survey_halted"
    BATCH_APPENDED = "batch_appended"


@dataclass
class AuditEntry:
    """A single audit log entry."""

    timestamp: str
    session_id: str
    operation: str
    params: dict[str, Any]
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict())


class AuditLogger:
    """Append-only audit logger for survey sessions.

    Write failures are logged and never interrupt a running survey.
    """

    def __init__(self, log_path: str | Path = "survey_audit.jsonl") -> None:
        """Initialize audit logger.

        Args:
            log_path: Path to the audit log file.
        """
        self.log_path = Path(log_path)
        self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def log_operation(
        self,
        session_id: str,
        operation: AuditEventType | str,
        params: dict[str, Any],
        warnings: list[str] | None = None,
    ) -> AuditEntry:
        """Record one survey operation.

        Args:
            session_id: Survey session identifier.
            operation: Event type or free-form operation name.
            params: Event parameters.
            warnings: Optional warning messages.

        Returns:
            The audit entry that was logged.
        """
        if isinstance(operation, AuditEventType):
            operation = operation.value

        entry = AuditEntry(
            timestamp=datetime.now().isoformat(),
            session_id=session_id,
            operation=operation,
            params=params,
            warnings=warnings or [],
        )

        try:
            with open(self.log_path, "a", encoding="utf-8") as f:
                f.write(entry.to_json() + "\n")
        except OSError as e:
            logger.warning("Failed to write audit log: %s", e)

        return entry

    def get_entries(self, limit: int = 100) -> list[AuditEntry]:
        """Read recent audit entries, most recent first."""
        if not self.log_path.exists():
            return []

        entries = []
        with open(self.log_path, encoding="utf-8") as f:
            for line in f:
                try:
                    entries.append(AuditEntry(**json.loads(line.strip())))
                except (json.JSONDecodeError, TypeError):
                    continue

        return entries[-limit:][::-1]
