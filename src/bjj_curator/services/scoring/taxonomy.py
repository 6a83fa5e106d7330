"""Taxonomy mapping dimension."""

from bjj_curator.models.scoring import Dimension, DimensionScore, ScoringContext
from bjj_curator.models.video import VideoCandidate
from bjj_curator.utils.text import normalize_technique_name

FOUND_SCORE = 85.0
NOT_FOUND_SCORE = 40.0
GI_MISMATCH_PENALTY = 20.0
CATEGORY_MISMATCH_PENALTY = 10.0


def evaluate_taxonomy(candidate: VideoCandidate, context: ScoringContext) -> DimensionScore:
    """Score how cleanly the analyzed technique maps onto the taxonomy."""
    analysis = context.analysis
    node = context.taxonomy_node
    technique = normalize_technique_name(analysis.technique)

    if node is None:
        return DimensionScore(
            Dimension.TAXONOMY_MAPPING,
            NOT_FOUND_SCORE,
            [f"Technique not in official taxonomy: {technique}"],
        )

    score = FOUND_SCORE
    reasons = [f"Maps to taxonomy technique {node.technique_name}"]

    if node.gi_applicability == "gi_only" and analysis.gi_or_nogi == "nogi":
        score -= GI_MISMATCH_PENALTY
        reasons.append("No-gi video for a gi-only technique")
    elif node.gi_applicability == "nogi_only" and analysis.gi_or_nogi == "gi":
        score -= GI_MISMATCH_PENALTY
        reasons.append("Gi video for a no-gi-only technique")

    if node.category and normalize_technique_name(node.category) != normalize_technique_name(
        analysis.position_category
    ):
        score -= CATEGORY_MISMATCH_PENALTY
        reasons.append(f"Position {analysis.position_category} differs from taxonomy category {node.category}")

    return DimensionScore(Dimension.TAXONOMY_MAPPING, score, reasons)
