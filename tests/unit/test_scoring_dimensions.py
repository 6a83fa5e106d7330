"""Unit tests for the seven scoring dimensions."""

from datetime import timedelta

import pytest

from bjj_curator.models.reference import (
    CoverageSnapshot,
    EmergingTechnique,
    FeedbackStats,
    InstructorProfile,
    InstructorTier,
    TaxonomyNode,
)
from bjj_curator.models.scoring import Dimension, ScoringContext
from bjj_curator.services.scoring.belt_level import evaluate_belt_level
from bjj_curator.services.scoring.coverage import coverage_gap_bonus, evaluate_coverage
from bjj_curator.services.scoring.emerging import evaluate_emerging
from bjj_curator.services.scoring.feedback import evaluate_feedback
from bjj_curator.services.scoring.instructor import evaluate_instructor, find_elite_instructor
from bjj_curator.services.scoring.taxonomy import evaluate_taxonomy
from bjj_curator.services.scoring.uniqueness import evaluate_uniqueness

PLAIN_TITLE = "Armbar From Closed Guard"


@pytest.fixture
def context_for(make_analysis, clock):
    def _build(analysis=None, **fields) -> ScoringContext:
        return ScoringContext(analysis=analysis or make_analysis(), now=clock(), **fields)

    return _build


class TestInstructorAuthority:
    def test_registry_elite_uses_credibility(self, make_candidate, context_for):
        profile = InstructorProfile("Gordon Ryan", tier=InstructorTier.ELITE, credibility_score=95)
        result = evaluate_instructor(make_candidate(), context_for(instructor=profile))
        assert result.dimension == Dimension.INSTRUCTOR_AUTHORITY
        assert result.score == 95
        assert result.bonus == 10

    def test_boost_multiplier_adds_bonus(self, make_candidate, context_for):
        profile = InstructorProfile(
            "Coach Lee", tier=InstructorTier.HIGH_QUALITY, credibility_score=80, boost_multiplier=1.2
        )
        result = evaluate_instructor(make_candidate(), context_for(instructor=profile))
        assert result.score == 80
        assert result.bonus == pytest.approx(4.0)

    def test_elite_name_in_title_without_registry(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title="John Danaher Explains The Kimura")
        result = evaluate_instructor(candidate, context_for(make_analysis(instructor_name=None)))
        assert result.score == 90
        assert result.bonus == 10

    def test_anonymous_source(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title=PLAIN_TITLE, channel_name="Random Grappler")
        result = evaluate_instructor(candidate, context_for(make_analysis(instructor_name=None)))
        assert result.score == 30
        assert result.bonus == 0

    def test_unknown_instructor_affiliation_signals(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title=PLAIN_TITLE, channel_name="Gracie Barra HQ")
        result = evaluate_instructor(candidate, context_for(make_analysis(instructor_name="Paulo Silva")))
        assert result.score == 55

    def test_find_elite_instructor(self):
        assert find_elite_instructor("Craig Jones heel hook entries") == "craig jones"
        assert find_elite_instructor("armbar basics") is None


class TestTaxonomyMapping:
    def test_not_in_taxonomy(self, make_candidate, context_for):
        result = evaluate_taxonomy(make_candidate(), context_for())
        assert result.score == 40

    def test_clean_mapping(self, make_candidate, context_for):
        node = TaxonomyNode("armbar", category="closed guard", gi_applicability="both")
        assert evaluate_taxonomy(make_candidate(), context_for(taxonomy_node=node)).score == 85

    def test_gi_and_category_mismatch(self, make_candidate, make_analysis, context_for):
        node = TaxonomyNode("collar drag", category="open guard", gi_applicability="gi_only")
        analysis = make_analysis(technique="collar drag", gi_or_nogi="nogi", position_category="closed guard")
        result = evaluate_taxonomy(make_candidate(), context_for(analysis, taxonomy_node=node))
        assert result.score == 55
        assert len(result.reasons) == 3


class TestCoverageBalance:
    def test_empty_technique(self, make_candidate, context_for):
        coverage = CoverageSnapshot("armbar", current_count=0, target_count=100)
        result = evaluate_coverage(make_candidate(), context_for(coverage=coverage))
        assert result.score == 100
        assert result.bonus == 25

    def test_common_technique_gets_smaller_gap_bonus(self, make_candidate, context_for):
        coverage = CoverageSnapshot(
            "armbar", current_count=20, target_count=100, level_counts={"beginner": 0, "intermediate": 20}
        )
        result = evaluate_coverage(make_candidate(), context_for(coverage=coverage))
        assert result.score == pytest.approx(84.0)
        assert result.bonus == 10

    def test_least_covered_level_adds_bonus(self, make_candidate, context_for):
        coverage = CoverageSnapshot(
            "armbar", current_count=10, target_count=100, level_counts={"beginner": 5, "advanced": 5}
        )
        result = evaluate_coverage(make_candidate(), context_for(coverage=coverage))
        assert result.bonus == 15

    def test_well_covered_has_no_bonus(self, make_candidate, context_for):
        coverage = CoverageSnapshot("armbar", current_count=90, target_count=100)
        result = evaluate_coverage(make_candidate(), context_for(coverage=coverage))
        assert result.score == pytest.approx(28.0)
        assert result.bonus == 0

    @pytest.mark.parametrize(
        "ratio,common,expected",
        [(0.1, False, 25), (0.1, True, 10), (0.4, False, 15), (0.6, True, 3), (0.9, False, 0)],
    )
    def test_gap_bonus_table(self, ratio, common, expected):
        assert coverage_gap_bonus(ratio, common) == expected


class TestUniqueValue:
    def test_fresh_instructor_with_angle_and_details(self, make_candidate, context_for):
        result = evaluate_uniqueness(make_candidate(), context_for())
        assert result.score == 100

    def test_near_duplicate_and_repeat_instructor(self, make_candidate, context_for):
        candidate = make_candidate()
        context = context_for(similar_titles=[candidate.title], instructor_technique_count=2)
        result = evaluate_uniqueness(candidate, context)
        assert result.score == 55
        assert any("Near-duplicate" in reason for reason in result.reasons)


class TestUserFeedback:
    def test_neutral_without_history(self, make_candidate, context_for):
        assert evaluate_feedback(make_candidate(), context_for()).score == 50

    def test_strong_helpful_ratio(self, make_candidate, context_for):
        stats = FeedbackStats(helpful_count=9, unhelpful_count=1)
        result = evaluate_feedback(make_candidate(), context_for(feedback=stats))
        assert result.score == 80
        assert result.bonus == 15

    def test_completion_and_saves(self, make_candidate, context_for):
        stats = FeedbackStats(watch_completion_rate=0.8, saved_count=11)
        result = evaluate_feedback(make_candidate(), context_for(feedback=stats))
        assert result.score == 75
        assert result.bonus == 8

    def test_poor_ratio_lowers_score(self, make_candidate, context_for):
        stats = FeedbackStats(helpful_count=3, unhelpful_count=7)
        assert evaluate_feedback(make_candidate(), context_for(feedback=stats)).score == 30

    def test_too_few_votes_is_inconclusive(self, make_candidate, context_for):
        stats = FeedbackStats(helpful_count=2)
        result = evaluate_feedback(make_candidate(), context_for(feedback=stats))
        assert result.score == 50
        assert result.reasons == ["Feedback history is inconclusive"]


class TestBeltLevelFit:
    def test_beginner_fundamentals(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title="Armbar Fundamentals For White Belts")
        result = evaluate_belt_level(candidate, context_for(make_analysis(skill_level="beginner")))
        assert result.score == 85
        assert result.bonus == 5

    def test_beginner_balance_bonus(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title="Armbar Fundamentals For White Belts")
        coverage = CoverageSnapshot("armbar", level_counts={"intermediate": 3, "advanced": 2})
        result = evaluate_belt_level(
            candidate, context_for(make_analysis(skill_level="beginner"), coverage=coverage)
        )
        assert result.bonus == 7

    def test_advanced_without_signals(self, make_candidate, make_analysis, context_for):
        candidate = make_candidate(title=PLAIN_TITLE, description="")
        result = evaluate_belt_level(candidate, context_for(make_analysis(skill_level="advanced")))
        assert result.score == 70
        assert result.bonus == 3

    def test_intermediate_default(self, make_candidate, context_for):
        result = evaluate_belt_level(make_candidate(), context_for())
        assert result.score == 70
        assert result.bonus == 0


class TestEmergingTechnique:
    def test_validated_record_under_covered(self, make_candidate, context_for):
        record = EmergingTechnique("armbar", status="validated", confidence_score=80)
        result = evaluate_emerging(make_candidate(), context_for(emerging=record))
        assert result.score == 80
        assert result.bonus == 25

    def test_record_already_covered(self, make_candidate, context_for):
        record = EmergingTechnique("armbar", confidence_score=50)
        coverage = CoverageSnapshot("armbar", current_count=90, target_count=100)
        result = evaluate_emerging(make_candidate(), context_for(emerging=record, coverage=coverage))
        assert result.score == 60
        assert result.bonus == 0

    def test_recent_elite_upload(self, make_candidate, context_for, clock):
        published = (clock() - timedelta(days=30)).isoformat().replace("+00:00", "Z")
        result = evaluate_emerging(make_candidate(published_at=published), context_for())
        assert result.score == 90
        assert result.bonus == 15

    def test_trending_mentions(self, make_candidate, context_for):
        candidate = make_candidate(title=PLAIN_TITLE)
        result = evaluate_emerging(candidate, context_for(trending_mentions=5))
        assert result.score == 60
        assert result.bonus == 10

    def test_no_signals(self, make_candidate, context_for):
        result = evaluate_emerging(make_candidate(title=PLAIN_TITLE), context_for())
        assert result.score == 40
        assert result.bonus == 0
        assert result.reasons == ["No emerging signals"]
