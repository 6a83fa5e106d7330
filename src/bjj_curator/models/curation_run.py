"""Curation run data models."""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Optional


class RunType(str, Enum):
    SCHEDULED = "scheduled"
    MANUAL = "manual"


class RunStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_active(self) -> bool:
        return self in (RunStatus.PENDING, RunStatus.RUNNING)


ACTIVE_STATUSES = (RunStatus.PENDING.value, RunStatus.RUNNING.value)


class GuardrailStatus(str, Enum):
    """Health band of a run's acceptance rate."""

    NO_DATA = "no-data"
    CRITICAL = "critical"
    LOW = "low"
    OK = "ok"
    HIGH = "high"


def classify_acceptance_rate(analyzed: int, added: int) -> tuple[Optional[float], GuardrailStatus]:
    """Compute acceptance rate (percent) and its guardrail band.

    A healthy run accepts roughly 5-15% of what it screens. Zero acceptance
    and very high acceptance are both treated as critical: the first usually
    means the scorer or the analyzer is broken, the second that filtering is.

    Args:
        analyzed: Candidates screened in the run
        added: Candidates accepted into the library

    Returns:
        Tuple of (acceptance rate rounded to 0.01 or None, guardrail status)
    """
    if analyzed <= 0:
        return None, GuardrailStatus.NO_DATA

    rate = round(added / analyzed * 100, 2)
    if rate == 0 or rate < 3:
        return rate, GuardrailStatus.CRITICAL
    if rate < 5:
        return rate, GuardrailStatus.LOW
    if rate <= 15:
        return rate, GuardrailStatus.OK
    if rate <= 25:
        return rate, GuardrailStatus.HIGH
    return rate, GuardrailStatus.CRITICAL


@dataclass
class RunSummary:
    """Counters a worker reports when a run finishes."""

    analyzed: int = 0
    added: int = 0
    rejected: int = 0
    quota_used: int = 0
    skipped_duration: int = 0
    skipped_duplicates: int = 0
    skipped_quota: int = 0
    skipped_other: int = 0
    searches_performed: int = 0
    searches_failed: int = 0
    quota_exhausted: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        # Name used by the run report and progress consumers
        data["approved"] = self.added
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RunSummary":
        added = data.get("added", data.get("approved", 0))
        return cls(
            analyzed=int(data.get("analyzed", 0)),
            added=int(added),
            rejected=int(data.get("rejected", 0)),
            quota_used=int(data.get("quota_used", 0)),
            skipped_duration=int(data.get("skipped_duration", 0)),
            skipped_duplicates=int(data.get("skipped_duplicates", 0)),
            skipped_quota=int(data.get("skipped_quota", 0)),
            skipped_other=int(data.get("skipped_other", 0)),
            searches_performed=int(data.get("searches_performed", 0)),
            searches_failed=int(data.get("searches_failed", 0)),
            quota_exhausted=bool(data.get("quota_exhausted", False)),
        )


@dataclass
class CurationRun:
    """A single execution of the curation pipeline."""

    id: str
    run_type: RunType
    status: RunStatus
    created_at: str
    videos_screened: int = 0
    videos_analyzed: int = 0
    videos_added: int = 0
    videos_rejected: int = 0
    videos_skipped_duration: int = 0
    videos_skipped_duplicates: int = 0
    videos_skipped_quota: int = 0
    videos_skipped_other: int = 0
    searches_performed: int = 0
    searches_failed: int = 0
    quota_used: int = 0
    acceptance_rate: Optional[float] = None
    guardrail_status: Optional[str] = None
    error_message: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None

    @property
    def skip_breakdown(self) -> dict[str, int]:
        return {
            "duration": self.videos_skipped_duration,
            "duplicates": self.videos_skipped_duplicates,
            "quota": self.videos_skipped_quota,
            "other": self.videos_skipped_other,
        }

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["run_type"] = self.run_type.value
        data["status"] = self.status.value
        data["skip_breakdown"] = self.skip_breakdown
        return data


@dataclass
class Eligibility:
    """Answer to "may a run of this type start now?"."""

    eligible: bool
    reason: str
    batch_size: int = 0
    quota_remaining: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
