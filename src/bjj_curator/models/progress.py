"""Messages the curation worker sends to the host process.

Messages cross the process boundary as plain dicts keyed by ``type`` so they
pickle cleanly through a multiprocessing queue.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from bjj_curator.models.curation_run import RunSummary

PROGRESS = "progress"
COMPLETE = "complete"
FAILED = "failed"


@dataclass
class ProgressMessage:
    run_id: str
    message: str
    icon: str = "ℹ️"
    severity: str = "info"  # info, success, warning, error
    data: Optional[dict[str, Any]] = None
    time: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": PROGRESS,
            "run_id": self.run_id,
            "time": self.time,
            "icon": self.icon,
            "message": self.message,
            "severity": self.severity,
            "data": self.data,
        }


@dataclass
class RunCompleteMessage:
    run_id: str
    summary: RunSummary

    def to_dict(self) -> dict[str, Any]:
        return {"type": COMPLETE, "run_id": self.run_id, "summary": self.summary.to_dict()}


@dataclass
class RunFailedMessage:
    run_id: str
    error: str
    # Counters reached before the failure, when the pipeline got that far
    summary: Optional[RunSummary] = None

    def to_dict(self) -> dict[str, Any]:
        data = {"type": FAILED, "run_id": self.run_id, "error": self.error}
        if self.summary is not None:
            data["summary"] = self.summary.to_dict()
        return data


def parse_worker_message(payload: dict[str, Any]):
    """Turn a dict received from the worker back into a message object.

    Raises:
        ValueError: If the payload has an unknown type
    """
    kind = payload.get("type")
    run_id = payload.get("run_id", "")
    if kind == PROGRESS:
        return ProgressMessage(
            run_id=run_id,
            message=payload.get("message", ""),
            icon=payload.get("icon", "ℹ️"),
            severity=payload.get("severity", "info"),
            data=payload.get("data"),
            time=payload.get("time") or datetime.now(timezone.utc).isoformat(),
        )
    if kind == COMPLETE:
        return RunCompleteMessage(run_id=run_id, summary=RunSummary.from_dict(payload.get("summary", {})))
    if kind == FAILED:
        summary = payload.get("summary")
        return RunFailedMessage(
            run_id=run_id,
            error=payload.get("error") or "Unknown worker error",
            summary=RunSummary.from_dict(summary) if summary else None,
        )
    raise ValueError(f"Unknown worker message type: {kind!r}")
