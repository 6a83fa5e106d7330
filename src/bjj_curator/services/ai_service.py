"""AI service for instructional video analysis using Google GenAI."""

import asyncio
import json
import logging
import re
from typing import Optional

from google.genai import Client
from google.genai import types
from pydantic import ValidationError

from bjj_curator.models.video import VideoAnalysis, VideoCandidate
from bjj_curator.services.errors import AnalysisError
from bjj_curator.services.prompts import VIDEO_ANALYZER_V2
from bjj_curator.utils.retry import (
    APIRateLimitError,
    NetworkError,
    RetryableError,
    retry_api_call,
)

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_CHARS = 1500

# ```json ... ``` wrapper the model sometimes puts around its answer
_CODE_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)


def parse_analysis_response(text: Optional[str]) -> VideoAnalysis:
    """Parse and validate the model's JSON answer.

    Args:
        text: Raw response text, possibly wrapped in a markdown code fence

    Returns:
        Validated VideoAnalysis

    Raises:
        AnalysisError: If the text is empty, not JSON, or fails validation
    """
    if not text or not text.strip():
        raise AnalysisError("AI response is empty")

    cleaned = text.strip()
    fenced = _CODE_FENCE.match(cleaned)
    if fenced:
        cleaned = fenced.group(1)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise AnalysisError(f"AI response is not valid JSON: {e}") from e

    # Some models wrap a single object in a list
    if isinstance(data, list) and len(data) == 1:
        data = data[0]
    if not isinstance(data, dict):
        raise AnalysisError(f"AI response is not a JSON object: {type(data).__name__}")

    try:
        return VideoAnalysis.model_validate(data)
    except ValidationError as e:
        raise AnalysisError(f"AI response failed validation: {e.error_count()} errors") from e


class AIService:
    """Service for AI-powered video analysis using Gemini."""

    def __init__(
        self,
        api_key: str,
        model_name: str = "gemini-3-flash-preview",
        temperature: float = 0.2,
        client: Optional[Client] = None,
    ):
        """Initialize Google GenAI client.

        Args:
            api_key: Google GenAI API key
            model_name: Gemini model to use
            temperature: Sampling temperature for analysis calls
            client: Prebuilt client (created from api_key when omitted)
        """
        self.api_key = api_key
        self.model_name = model_name
        self.temperature = temperature
        self.client = client or Client(api_key=api_key)
        logger.info(f"Initialized AI service with model: {model_name}")

    def build_prompt(self, candidate: VideoCandidate) -> str:
        duration_minutes = round((candidate.duration_seconds or 0) / 60, 1)
        return VIDEO_ANALYZER_V2.format(
            title=candidate.title,
            channel_name=candidate.channel_name,
            duration_minutes=duration_minutes,
            description=(candidate.description or "")[:MAX_DESCRIPTION_CHARS],
        )

    def _generate(self, prompt: str) -> str:
        try:
            response = self.client.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            # Convert specific errors to retryable errors
            message = str(e).lower()
            if "rate limit" in message or "429" in message or "resource_exhausted" in message:
                raise APIRateLimitError(f"Rate limit hit: {e}") from e
            if "network" in message or "connection" in message or "timeout" in message:
                raise NetworkError(f"Network error: {e}") from e
            raise AnalysisError(f"Gemini call failed: {e}") from e
        return response.text

    @retry_api_call(max_retries=3, base_delay=2.0)
    async def _generate_with_retry(self, prompt: str) -> str:
        return await asyncio.to_thread(self._generate, prompt)

    async def analyze_video(self, candidate: VideoCandidate) -> VideoAnalysis:
        """Classify a candidate and extract its technique metadata.

        Args:
            candidate: Candidate with title, description and duration

        Returns:
            Validated VideoAnalysis

        Raises:
            AnalysisError: If the call fails after retries or the answer is invalid
        """
        prompt = self.build_prompt(candidate)
        try:
            text = await self._generate_with_retry(prompt)
        except RetryableError as e:
            raise AnalysisError(f"Gemini unavailable for {candidate.video_id}: {e}") from e

        analysis = parse_analysis_response(text)
        logger.debug(
            f"Analyzed {candidate.video_id}: {analysis.technique} "
            f"(instructional={analysis.is_instructional}, quality={analysis.quality_score})"
        )
        return analysis
