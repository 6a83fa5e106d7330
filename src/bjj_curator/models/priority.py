"""Coverage priority model."""

from dataclasses import asdict, dataclass, field
from typing import Any, Optional


@dataclass
class CoveragePriority:
    """A technique (or instructor) the library needs more of, ranked for a run."""

    technique: str
    priority: int
    demand_score: float = 0.0
    coverage_count: int = 0
    target_count: int = 0
    suggested_searches: list[str] = field(default_factory=list)
    instructor: Optional[str] = None

    @property
    def source(self) -> str:
        """Key the exhaustion tracker uses for this priority."""
        return self.instructor or self.technique

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["source"] = self.source
        return data
