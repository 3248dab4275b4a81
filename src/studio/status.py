"""Session journal: workflow events and user-visible notices."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

EVENT_STATUSES = ("started", "completed", "failed", "skipped", "info")


@dataclass(frozen=True)
class WorkflowEvent:
    """One line of a session's activity log.

    ``kind`` is the loading kind the action runs under (``importing``,
    ``video`` ...) or ``advance`` for the step change.
    """

    kind: str
    message: str
    status: str = "info"
    details: Optional[Dict[str, Any]] = None
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.status not in EVENT_STATUSES:
            raise ValueError(f"Unknown event status: {self.status}")

    def as_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "status": self.status,
            "message": self.message,
            "details": dict(self.details or {}),
            "recorded_at": self.recorded_at.isoformat(),
        }


@dataclass(frozen=True)
class Notice:
    """A message the user has to see after a failed action.

    ``kind`` is ``"credential"`` when the key was rejected (the workflow is
    gated again) and ``"failure"`` for every other error.
    """

    kind: str
    operation: str
    message: str

    @property
    def blocking(self) -> bool:
        return self.kind == "credential"

    def as_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "operation": self.operation, "message": self.message, "blocking": self.blocking}
