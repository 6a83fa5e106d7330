"""Typed failures raised inside the curation pipeline.

Each class maps to one handling policy in the pipeline loop: quota
exhaustion ends the run gracefully, analysis and duplicate errors skip a
single candidate, transient network errors skip a single query.
"""

from bjj_curator.models.curation_run import RunSummary
from bjj_curator.utils.retry import NetworkError


class CurationError(Exception):
    """Base class for curation engine errors."""


class QuotaExhaustedError(CurationError):
    """The daily search quota cannot cover the next call."""

    def __init__(self, message: str = "Daily search quota exhausted", remaining: int = 0):
        super().__init__(message)
        self.remaining = remaining


class AnalysisError(CurationError):
    """LLM analysis failed or returned an invalid structure."""


class DuplicateCandidateError(CurationError):
    """A candidate with the same source id is already in the library."""

    def __init__(self, source_id: str):
        super().__init__(f"Video {source_id} is already in the library")
        self.source_id = source_id


class TransientNetworkError(NetworkError, CurationError):
    """Provider or network failure that only affects the current query."""


class WorkerCrashError(CurationError):
    """The worker process died or timed out without reporting a result."""


class RunNotEligibleError(CurationError):
    """A run was requested while the orchestrator would not start one."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RunAbortedError(CurationError):
    """The pipeline stopped on an unhandled error; carries the partial counters."""

    def __init__(self, message: str, summary: RunSummary):
        super().__init__(message)
        self.summary = summary
