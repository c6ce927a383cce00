"""
Structured JSONL gate log for qgate.

Provides a GateLogger class that appends one JSON object per review
decision or failure, so the history of the gate can be queried with jq.

Each log line has the format:
{
  "timestamp": "2026-01-15T12:34:56.789Z",
  "event_type": "review_passed",
  "data": { ... event-specific data ... }
}
"""

import logging
import os
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Types of events that can be logged."""

    REVIEW_PASSED = "review_passed"
    REVIEW_REVISED = "review_revised"
    DISPATCH_FAILED = "dispatch_failed"
    ROLLBACK_FAILED = "rollback_failed"


class LogEntry(BaseModel):
    """A single structured log entry in JSONL format."""

    model_config = ConfigDict(use_enum_values=True)

    timestamp: datetime = Field(..., description="When the event occurred (ISO 8601 format)")
    event_type: EventType = Field(..., description="Type of event")
    data: dict[str, Any] = Field(default_factory=dict, description="Event-specific data")


class GateLogger:
    """
    Append-only JSONL log of quality gate decisions.

    Example:
        gate_log = GateLogger(Path(".qgate/logs/gate.jsonl"))
        gate_log.log_passed("rv-1", "t-1", reviewer_id="u-9", total_xp=280, awarded_to=["u-1"])
    """

    def __init__(self, log_file: Path):
        """
        Initialize logger with a log file path.

        Args:
            log_file: Path to the JSONL log file (will be created if needed)
        """
        self.log_file = Path(log_file)
        self._ensure_log_dir()

    def _ensure_log_dir(self) -> None:
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def init(log_dir: Path | None = None) -> "GateLogger":
        """
        Create a logger writing to ``log_dir/gate.jsonl``.

        Defaults to $XDG_DATA_HOME/qgate/logs (~/.local/share/qgate/logs).
        """
        if log_dir is None:
            xdg_data_home = os.environ.get("XDG_DATA_HOME") or os.path.expanduser(
                "~/.local/share"
            )
            log_dir = Path(xdg_data_home) / "qgate" / "logs"
        return GateLogger(Path(log_dir) / "gate.jsonl")

    def log_event(self, event_type: EventType, data: dict[str, Any] | None = None) -> None:
        """
        Write a log event to the JSONL file.

        Write errors are reported as warnings and never raised, so a broken
        log never blocks a review decision.
        """
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc), event_type=event_type, data=data or {}
        )
        log_line = entry.model_dump_json(exclude_none=True) + "\n"

        try:
            with open(self.log_file, "a", encoding="utf-8") as f:
                f.write(log_line)
        except OSError as e:
            logger.warning("Failed to write to gate log %s: %s", self.log_file, e)

    def log_passed(
        self,
        session_id: str,
        task_id: str,
        *,
        reviewer_id: str,
        total_xp: int,
        awarded_xp: int,
        awarded_to: list[str],
    ) -> None:
        self.log_event(
            EventType.REVIEW_PASSED,
            {
                "session_id": session_id,
                "task_id": task_id,
                "reviewer_id": reviewer_id,
                "total_xp": total_xp,
                "awarded_xp": awarded_xp,
                "awarded_to": awarded_to,
            },
        )

    def log_revised(
        self, session_id: str, task_id: str, *, reviewer_id: str, feedback: str | None
    ) -> None:
        self.log_event(
            EventType.REVIEW_REVISED,
            {
                "session_id": session_id,
                "task_id": task_id,
                "reviewer_id": reviewer_id,
                "feedback": feedback,
            },
        )

    def log_failure(
        self, session_id: str, action: str, error: Exception, *, user_id: str | None = None
    ) -> None:
        self.log_event(
            EventType.DISPATCH_FAILED,
            {
                "session_id": session_id,
                "action": action,
                "user_id": user_id,
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )

    def log_rollback_failed(self, session_id: str, operation: str, error: Exception) -> None:
        self.log_event(
            EventType.ROLLBACK_FAILED,
            {"session_id": session_id, "operation": operation, "error": str(error)},
        )
