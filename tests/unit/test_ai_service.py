"""Unit tests for the Gemini analysis service."""

import json
from unittest.mock import AsyncMock, Mock, patch

import pytest

from bjj_curator.services.ai_service import AIService, parse_analysis_response
from bjj_curator.services.errors import AnalysisError

VALID_ANSWER = {
    "isInstructional": True,
    "technique": "Armbar",
    "techniqueType": "submission",
    "positionCategory": "closed guard",
    "giOrNogi": "gi",
    "qualityScore": 8,
    "skillLevel": "intermediate",
    "instructorName": "John Danaher",
    "keyDetails": ["break posture", "angle off", "pinch knees"],
}


@pytest.fixture
def genai_client():
    return Mock()


@pytest.fixture
def ai_service(genai_client):
    return AIService(api_key="test_key", client=genai_client)


class TestParseAnalysisResponse:
    def test_parses_plain_json(self):
        analysis = parse_analysis_response(json.dumps(VALID_ANSWER))
        assert analysis.is_instructional is True
        assert analysis.instructor_name == "John Danaher"
        assert analysis.key_details == ["break posture", "angle off", "pinch knees"]

    def test_strips_markdown_fence(self):
        text = "```json\n" + json.dumps(VALID_ANSWER) + "\n```"
        assert parse_analysis_response(text).technique == "Armbar"

    def test_strips_bare_fence(self):
        text = "```\n" + json.dumps(VALID_ANSWER) + "\n```\n"
        assert parse_analysis_response(text).quality_score == 8

    def test_unwraps_single_item_list(self):
        assert parse_analysis_response(json.dumps([VALID_ANSWER])).quality_score == 8

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_response(self, text):
        with pytest.raises(AnalysisError, match="empty"):
            parse_analysis_response(text)

    def test_invalid_json(self):
        with pytest.raises(AnalysisError, match="not valid JSON"):
            parse_analysis_response("{not json")

    def test_non_object(self):
        with pytest.raises(AnalysisError, match="not a JSON object"):
            parse_analysis_response("[1, 2]")

    def test_failed_validation(self):
        bad = dict(VALID_ANSWER, qualityScore=42)
        with pytest.raises(AnalysisError, match="failed validation"):
            parse_analysis_response(json.dumps(bad))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"isInstructional": "yes"},
            {"qualityScore": "9"},
            {"isInstructional": 1},
            {"keyDetails": "pinch knees"},
        ],
    )
    def test_wrong_types_are_not_coerced(self, overrides):
        with pytest.raises(AnalysisError, match="failed validation"):
            parse_analysis_response(json.dumps(dict(VALID_ANSWER, **overrides)))

    @pytest.mark.parametrize("technique", ["???", "   ", "--"])
    def test_technique_without_a_name_rejected(self, technique):
        with pytest.raises(AnalysisError, match="failed validation"):
            parse_analysis_response(json.dumps(dict(VALID_ANSWER, technique=technique)))

    def test_integer_quality_score_accepted(self):
        assert parse_analysis_response(json.dumps(dict(VALID_ANSWER, qualityScore=7))).quality_score == 7.0


class TestAIService:
    def test_build_prompt_includes_metadata(self, ai_service, make_candidate):
        prompt = ai_service.build_prompt(make_candidate(description="x" * 5000))
        assert "Gordon Ryan Armbar Details From Closed Guard" in prompt
        assert "BJJ Fanatics" in prompt
        assert "x" * 1500 in prompt
        assert "x" * 1501 not in prompt

    @pytest.mark.asyncio
    async def test_analyze_video(self, ai_service, genai_client, make_candidate):
        genai_client.models.generate_content.return_value = Mock(text=json.dumps(VALID_ANSWER))

        analysis = await ai_service.analyze_video(make_candidate())

        assert analysis.technique == "Armbar"
        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-3-flash-preview"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_rate_limit_retried_then_reported(self, ai_service, genai_client, make_candidate):
        genai_client.models.generate_content.side_effect = Exception("429 RESOURCE_EXHAUSTED")

        with patch("bjj_curator.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            with pytest.raises(AnalysisError, match="Gemini unavailable"):
                await ai_service.analyze_video(make_candidate())

        assert genai_client.models.generate_content.call_count == 4

    @pytest.mark.asyncio
    async def test_rate_limit_recovers(self, ai_service, genai_client, make_candidate):
        genai_client.models.generate_content.side_effect = [
            Exception("rate limit exceeded"),
            Mock(text=json.dumps(VALID_ANSWER)),
        ]

        with patch("bjj_curator.utils.retry.asyncio.sleep", new_callable=AsyncMock):
            analysis = await ai_service.analyze_video(make_candidate())

        assert analysis.skill_level == "intermediate"
        assert genai_client.models.generate_content.call_count == 2

    @pytest.mark.asyncio
    async def test_other_errors_not_retried(self, ai_service, genai_client, make_candidate):
        genai_client.models.generate_content.side_effect = Exception("invalid argument")

        with pytest.raises(AnalysisError, match="Gemini call failed"):
            await ai_service.analyze_video(make_candidate())

        assert genai_client.models.generate_content.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_answer_is_analysis_error(self, ai_service, genai_client, make_candidate):
        genai_client.models.generate_content.return_value = Mock(text="I cannot help with that")

        with pytest.raises(AnalysisError):
            await ai_service.analyze_video(make_candidate())
