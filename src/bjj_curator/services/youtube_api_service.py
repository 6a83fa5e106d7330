"""YouTube Data API adapter for candidate search and detail lookup.

Wraps the official YouTube Data API v3 client and charges every call against
the shared QuotaLedger. The ledger is consulted before a call is made so an
exhausted day never reaches the network.

Quota costs:
- search.list: 100 units
- videos.list: 1 unit (batched, 50 per request)
"""

import asyncio
import json
import logging
import threading
from typing import Any, Dict, List, Optional

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from bjj_curator.models.video import VideoCandidate, VideoDetails
from bjj_curator.services.errors import QuotaExhaustedError, TransientNetworkError
from bjj_curator.services.quota_ledger import QuotaLedger

logger = logging.getLogger(__name__)

QUOTA_ERROR_REASONS = {"quotaExceeded", "dailyLimitExceeded"}


def parse_duration(duration: str) -> int:
    """Parse ISO 8601 duration to seconds.

    Args:
        duration: Duration string like "PT5M30S", "PT1H2M3S" or "P1DT2H"

    Returns:
        Duration in seconds, 0 for missing or malformed values
    """
    if not duration or not duration.startswith("P"):
        return 0

    days = hours = minutes = seconds = 0
    date_part, _, time_part = duration[1:].partition("T")

    try:
        if date_part.endswith("D"):
            days = int(date_part[:-1])

        if "H" in time_part:
            hours_part, time_part = time_part.split("H")
            hours = int(hours_part)

        if "M" in time_part:
            minutes_part, time_part = time_part.split("M")
            minutes = int(minutes_part)

        if "S" in time_part:
            seconds_part, _ = time_part.split("S")
            seconds = int(float(seconds_part))
    except ValueError:
        logger.warning(f"Unparseable duration: {duration}")
        return 0

    return days * 86400 + hours * 3600 + minutes * 60 + seconds


def sanitize_search_query(query: str) -> str:
    """Turn taxonomy-style names ("arm_bar") into natural search text."""
    return " ".join(query.replace("_", " ").split())


def _error_reasons(error: HttpError) -> set[str]:
    """Extract the provider's machine-readable reasons from an HttpError."""
    reasons: set[str] = set()
    try:
        payload = json.loads(error.content.decode("utf-8"))
    except (ValueError, AttributeError):
        return reasons
    if not isinstance(payload, dict):
        return reasons
    for item in payload.get("error", {}).get("errors", []) or []:
        if isinstance(item, dict) and item.get("reason"):
            reasons.add(item["reason"])
    return reasons


class YouTubeAPIService:
    """Quota-aware search adapter for YouTube Data API v3."""

    MAX_BATCH_SIZE = 50  # YouTube API limit

    def __init__(
        self,
        api_key: str,
        ledger: QuotaLedger,
        search_cost: int = 100,
        detail_cost: int = 1,
        client: Optional[Any] = None,
    ):
        """Initialize the YouTube API service.

        Args:
            api_key: YouTube Data API v3 key
            ledger: Quota ledger every call is charged against
            search_cost: Units charged per search request
            detail_cost: Units charged per detail request
            client: Prebuilt API client (built from api_key when omitted)
        """
        self.api_key = api_key
        self.ledger = ledger
        self.search_cost = search_cost
        self.detail_cost = detail_cost
        self.youtube = client or build("youtube", "v3", developerKey=api_key, cache_discovery=False)
        self._quota_used = 0
        self._lock = threading.RLock()

    @property
    def quota_used(self) -> int:
        """Total quota units this adapter has spent."""
        return self._quota_used

    def _execute_request(self, request):
        with self._lock:
            return request.execute()

    async def _call(self, request, cost: int, kind: str, description: str) -> dict:
        """Run a billable request: check quota, execute off-loop, debit.

        Raises:
            QuotaExhaustedError: Before the call if the ledger can't cover it,
                or after the provider reports quota exhaustion
            TransientNetworkError: For any other HTTP or connection failure
        """
        await self.ledger.ensure_available(cost)

        try:
            response = await asyncio.to_thread(self._execute_request, request)
        except HttpError as e:
            reasons = _error_reasons(e)
            if reasons & QUOTA_ERROR_REASONS:
                await self.ledger.mark_exhausted(f"Provider refused {description}: {', '.join(sorted(reasons))}")
                raise QuotaExhaustedError("Provider reported daily quota exceeded") from e
            raise TransientNetworkError(f"YouTube API error during {description}: {e}") from e
        except OSError as e:
            raise TransientNetworkError(f"Network error during {description}: {e}") from e

        await self.ledger.debit(cost, kind)
        self._quota_used += cost
        return response

    async def search(self, query: str, max_results: int = 50) -> List[VideoCandidate]:
        """Search for videos matching a query.

        Args:
            query: Search text
            max_results: Maximum number of results (capped at 50 per request)

        Returns:
            List of VideoCandidate objects without details
        """
        query = sanitize_search_query(query)
        request = self.youtube.search().list(
            part="snippet",
            q=query,
            type="video",
            maxResults=min(self.MAX_BATCH_SIZE, max_results),
            relevanceLanguage="en",
            safeSearch="moderate",
        )
        response = await self._call(request, self.search_cost, "search", f"search '{query}'")

        candidates = []
        for item in response.get("items", []):
            video_id = item.get("id", {}).get("videoId")
            if not video_id:
                continue
            snippet = item.get("snippet", {})
            candidates.append(
                VideoCandidate(
                    video_id=video_id,
                    title=snippet.get("title", ""),
                    channel_name=snippet.get("channelTitle", ""),
                    channel_id=snippet.get("channelId", ""),
                    description=snippet.get("description", ""),
                    published_at=snippet.get("publishedAt", ""),
                    thumbnail_url=snippet.get("thumbnails", {}).get("high", {}).get("url", ""),
                )
            )

        logger.info(f"Search '{query}' returned {len(candidates)} videos")
        return candidates

    async def get_details(self, video_ids: List[str]) -> Dict[str, VideoDetails]:
        """Get duration and statistics for videos (batched).

        Args:
            video_ids: Video IDs to look up

        Returns:
            Dict mapping video_id to VideoDetails; unknown IDs are omitted
        """
        details: Dict[str, VideoDetails] = {}

        for i in range(0, len(video_ids), self.MAX_BATCH_SIZE):
            batch = video_ids[i:i + self.MAX_BATCH_SIZE]
            request = self.youtube.videos().list(
                part="contentDetails,statistics",
                id=",".join(batch),
            )
            response = await self._call(
                request, self.detail_cost, "detail", f"details for {len(batch)} videos"
            )

            for item in response.get("items", []):
                stats = item.get("statistics", {})
                details[item["id"]] = VideoDetails(
                    video_id=item["id"],
                    duration_seconds=parse_duration(item.get("contentDetails", {}).get("duration", "")),
                    view_count=int(stats.get("viewCount", 0)),
                    like_count=int(stats.get("likeCount", 0)),
                )

        return details
