"""Unit tests for score aggregation, the scoring engine and context loading."""

import copy

import pytest

from bjj_curator.models.reference import CoverageSnapshot, InstructorProfile, InstructorTier, TaxonomyNode
from bjj_curator.models.scoring import Decision, Dimension, DimensionScore, ScoringContext
from bjj_curator.services.reference_data import ReferenceData
from bjj_curator.services.scoring import ScoringContextBuilder, ScoringEngine, aggregate
from bjj_curator.services.video_library import VideoLibrary


def uniform_scores(score, **overrides):
    """One DimensionScore per dimension; overrides map dimension value to (score, bonus)."""
    results = []
    for dimension in Dimension:
        value, bonus = overrides.get(dimension.value, (score, 0.0))
        results.append(DimensionScore(dimension, value, [f"{dimension.value} reason"], bonus))
    return results


class TestAggregate:
    def test_exact_threshold_accepts(self):
        decision = aggregate(uniform_scores(71))
        assert decision.final_score == 71.0
        assert decision.decision == Decision.ACCEPT
        assert decision.accepted

    def test_just_below_threshold_rejects(self):
        decision = aggregate(uniform_scores(70.9))
        assert decision.decision == Decision.REJECT
        assert "below threshold" in decision.reason

    def test_boosts_capped_per_dimension_and_in_total(self):
        scores = uniform_scores(
            60,
            instructor_authority=(60, 30),
            coverage_balance=(60, 30),
            emerging_technique=(60, 30),
        )
        decision = aggregate(scores)
        assert decision.base_score == 60.0
        assert decision.final_score == 80.0
        assert decision.boosts_applied == ["Elite instructor +10.0", "Coverage gap +10.0"]

    def test_partial_boost_fills_remaining_room(self):
        scores = uniform_scores(
            60,
            instructor_authority=(60, 10),
            coverage_balance=(60, 4),
            emerging_technique=(60, 10),
        )
        decision = aggregate(scores)
        assert decision.final_score == 80.0
        assert decision.boosts_applied[-1] == "Emerging technique +6.0"

    def test_failed_instructor_minimum_withholds_boosts(self):
        scores = uniform_scores(80, instructor_authority=(30, 0), coverage_balance=(80, 25))
        decision = aggregate(scores)
        assert decision.base_score == 67.5
        assert decision.final_score == 67.5
        assert decision.boosts_applied == []
        assert decision.decision == Decision.REJECT
        assert any("instructor_authority" in reason for reason in decision.bad_because)

    def test_failed_taxonomy_minimum_withholds_boosts(self):
        scores = uniform_scores(75, taxonomy_mapping=(35, 0), instructor_authority=(75, 10))
        decision = aggregate(scores)
        assert decision.boosts_applied == []

    def test_low_base_gets_no_boosts(self):
        scores = uniform_scores(45, instructor_authority=(45, 10), coverage_balance=(45, 10))
        decision = aggregate(scores)
        assert decision.final_score == 45.0
        assert decision.boosts_applied == []

    def test_final_score_clamped(self):
        scores = uniform_scores(95, instructor_authority=(95, 10), coverage_balance=(95, 10))
        decision = aggregate(scores)
        assert decision.final_score == 100.0
        assert decision.base_score == 95.0

    def test_custom_threshold(self):
        assert aggregate(uniform_scores(65), threshold=60).accepted

    def test_reason_lists(self):
        scores = uniform_scores(60, instructor_authority=(90, 0), user_feedback=(30, 0))
        decision = aggregate(scores)
        assert decision.good_because == ["instructor_authority reason"]
        assert "user_feedback reason" in decision.bad_because

    def test_missing_dimension_raises(self):
        with pytest.raises(ValueError):
            aggregate(uniform_scores(70)[:-1])

    def test_duplicate_dimension_raises(self):
        scores = uniform_scores(70)
        with pytest.raises(ValueError):
            aggregate(scores + [scores[0]])

    def test_to_dict(self):
        data = aggregate(uniform_scores(71)).to_dict()
        assert data["decision"] == "ACCEPT"
        assert len(data["dimensions"]) == 7

    def test_inputs_left_untouched(self):
        scores = uniform_scores(60, instructor_authority=(90, 10), user_feedback=(30, 0))
        snapshot = copy.deepcopy(scores)

        aggregate(scores)

        assert scores == snapshot


class TestScoringEngine:
    def test_elite_instructor_on_empty_technique_is_accepted(self, make_candidate, make_analysis, clock):
        context = ScoringContext(
            analysis=make_analysis(),
            now=clock(),
            instructor=InstructorProfile("Gordon Ryan", tier=InstructorTier.ELITE, credibility_score=95),
            taxonomy_node=TaxonomyNode("armbar", category="closed guard"),
            coverage=CoverageSnapshot("armbar", current_count=0, target_count=100),
        )
        decision = ScoringEngine().score(make_candidate(), context)

        assert decision.base_score == 85.5
        assert decision.final_score == 100.0
        assert decision.boosts_applied == ["Elite instructor +10.0", "Coverage gap +10.0"]
        assert decision.accepted

    def test_anonymous_off_taxonomy_video_is_rejected(self, make_candidate, make_analysis, clock):
        candidate = make_candidate(title="Armbar From Closed Guard", channel_name="Random Grappler")
        context = ScoringContext(
            analysis=make_analysis(technique="flying armbar", instructor_name=None),
            now=clock(),
            coverage=CoverageSnapshot("flying armbar", target_count=100),
        )
        decision = ScoringEngine().score(candidate, context)

        assert decision.dimension(Dimension.INSTRUCTOR_AUTHORITY).score == 30
        assert decision.boosts_applied == []
        assert decision.decision == Decision.REJECT

    def test_engine_threshold(self, make_candidate, make_analysis, clock):
        context = ScoringContext(analysis=make_analysis(), now=clock())
        strict = ScoringEngine(threshold=101).score(make_candidate(), context)
        assert strict.decision == Decision.REJECT

    def test_same_inputs_same_decision(self, make_candidate, make_analysis, clock):
        candidate = make_candidate()
        context = ScoringContext(
            analysis=make_analysis(),
            now=clock(),
            instructor=InstructorProfile("Gordon Ryan", tier=InstructorTier.ELITE, credibility_score=95),
            taxonomy_node=TaxonomyNode("armbar", category="closed guard"),
            coverage=CoverageSnapshot("armbar", current_count=40, target_count=100),
            similar_titles=["Armbar From Mount"],
        )
        engine = ScoringEngine()

        first = engine.score(candidate, context)
        second = engine.score(candidate, context)

        assert first.to_dict() == second.to_dict()
        assert first == second


class TestScoringContextBuilder:
    @pytest.mark.asyncio
    async def test_build_resolves_registry_and_coverage(self, database, make_candidate, make_analysis, clock):
        reference = ReferenceData(database)
        await reference.seed_defaults()
        await reference.record_competition_meta(["Armbar", "heel hook"])
        await reference.record_competition_meta(["armbar"])
        builder = ScoringContextBuilder(reference, VideoLibrary(database), default_target=100, clock=clock)

        context = await builder.build(make_candidate(), make_analysis(technique="Armbar"))

        assert context.instructor.name == "Gordon Ryan"
        assert context.instructor.tier == InstructorTier.ELITE
        assert context.taxonomy_node.technique_name == "armbar"
        assert context.coverage.current_count == 0
        assert context.coverage.target_count == 100
        assert context.trending_mentions == 2
        assert context.feedback is None
        assert context.now == clock()

    @pytest.mark.asyncio
    async def test_instructor_matched_by_channel(self, database, make_candidate, make_analysis, clock):
        reference = ReferenceData(database)
        await reference.upsert_instructor(
            InstructorProfile("Lachlan Giles", tier=InstructorTier.ELITE, credibility_score=95, channel_id="UC_lg")
        )
        builder = ScoringContextBuilder(reference, VideoLibrary(database), clock=clock)

        context = await builder.build(
            make_candidate(channel_id="UC_lg", channel_name="Absolute MMA"),
            make_analysis(instructor_name=None),
        )

        assert context.instructor.name == "Lachlan Giles"

    @pytest.mark.asyncio
    async def test_library_counts_feed_context(
        self, database, make_candidate, make_analysis, make_decision, clock
    ):
        reference = ReferenceData(database)
        library = VideoLibrary(database)
        analysis = make_analysis()
        accepted = make_decision()
        await library.insert(make_candidate("a1"), analysis, accepted)
        await library.insert(make_candidate("a2", title="Armbar Mistakes"), analysis, accepted)
        builder = ScoringContextBuilder(reference, library, default_target=10, clock=clock)

        context = await builder.build(make_candidate("a3"), analysis)

        assert context.coverage.current_count == 2
        assert context.coverage.level_counts == {"intermediate": 2}
        assert context.instructor_technique_count == 2
        assert len(context.similar_titles) == 2
