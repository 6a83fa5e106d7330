"""Seven-dimension candidate scoring."""

from bjj_curator.services.scoring.context import ScoringContextBuilder
from bjj_curator.services.scoring.engine import (
    BOOST_TABLE,
    DEFAULT_THRESHOLD,
    DIMENSION_WEIGHTS,
    MAX_TOTAL_BOOST,
    ScoringEngine,
    aggregate,
)
from bjj_curator.utils.text import normalize_technique_name

__all__ = [
    "BOOST_TABLE",
    "DEFAULT_THRESHOLD",
    "DIMENSION_WEIGHTS",
    "MAX_TOTAL_BOOST",
    "ScoringContextBuilder",
    "ScoringEngine",
    "aggregate",
    "normalize_technique_name",
]
