"""YouTube Data API v3 client.

Thin async wrapper over httpx. Every request has a bounded timeout and is
retried with exponential backoff on transport errors, 429 and 5xx. Anything
still failing surfaces as CollaboratorUnavailableError.
"""

import logging
import re
from collections.abc import AsyncGenerator
from typing import Any

import httpx

from src.config.settings import get_settings
from src.core.retry import retry_async
from src.exceptions import CollaboratorUnavailableError, ResourceNotFoundError, ValidationError

from .schemas import ChannelInfo, VideoDetails, VideoSummary


logger = logging.getLogger(__name__)

YOUTUBE_SERVICE_NAME = "YouTube"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
EMBED_URL = "https://www.youtube.com/embed/{video_id}"

CATEGORY_IDS = {
    "education": "27",
    "science": "28",
    "technology": "28",
    "howto": "26",
    "news": "25",
    "entertainment": "24",
}
CATEGORY_NAMES = {
    "27": "Education",
    "28": "Science & Technology",
    "26": "Howto & Style",
    "25": "News & Politics",
    "24": "Entertainment",
}
DEFAULT_CATEGORY_ID = "27"

EDUCATIONAL_KEYWORDS = (
    "tutorial", "learn", "course", "lesson", "guide", "how to", "explained",
    "programming", "coding", "mathematics", "science", "education", "study",
    "training", "workshop", "lecture", "university", "academy", "skill",
)

# At least one component; a T must be followed by a time component
_ISO_DURATION = re.compile(
    r"^P(?!$)"
    r"(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?=\d)(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$",
    re.IGNORECASE,
)

# Nominal lengths for the calendar designators
SECONDS_PER_UNIT = {
    "years": 365 * 86400,
    "months": 30 * 86400,
    "weeks": 7 * 86400,
    "days": 86400,
    "hours": 3600,
    "minutes": 60,
}


# === Durations ===

def parse_iso8601_duration(value: str) -> int:
    """Convert an ISO-8601 duration such as ``PT1H2M3S`` into whole seconds.

    Years and months count as 365 and 30 days.
    """
    match = _ISO_DURATION.match(value.strip())
    if not match:
        msg = f"Invalid ISO-8601 duration: {value!r}"
        raise ValidationError(msg)

    parts = match.groupdict(default="0")
    seconds = sum(int(parts[unit]) * factor for unit, factor in SECONDS_PER_UNIT.items())
    return seconds + int(float(parts["seconds"]))


def parse_clock_duration(value: str) -> int:
    """Convert ``SS``, ``MM:SS`` or ``HH:MM:SS`` into seconds."""
    parts = value.strip().split(":")
    if len(parts) > 3 or not all(p.isdigit() for p in parts):
        msg = f"Invalid duration: {value!r}"
        raise ValidationError(msg)

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part)
    return seconds


def normalize_duration(value: str | float | None) -> int | None:
    """Normalize any duration notation the catalog or a client may send to whole seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        msg = "Duration must be a number of seconds or a duration string"
        raise ValidationError(msg)
    if isinstance(value, int | float):
        if value < 0:
            msg = "Duration cannot be negative"
            raise ValidationError(msg)
        return int(value)

    text = value.strip()
    if text.upper().startswith("P"):
        return parse_iso8601_duration(text)
    return parse_clock_duration(text)


# === Helpers ===

def category_id(category: str | None) -> str:
    return CATEGORY_IDS.get((category or "").lower(), DEFAULT_CATEGORY_ID)


def category_name(category_id_value: str | None) -> str:
    return CATEGORY_NAMES.get(category_id_value or "", "Education")


def is_educational(title: str | None, description: str | None) -> bool:
    content = f"{title or ''} {description or ''}".lower()
    return any(keyword in content for keyword in EDUCATIONAL_KEYWORDS)


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _thumbnail(snippet: dict[str, Any]) -> str | None:
    thumbnails = snippet.get("thumbnails") or {}
    for size in ("high", "medium", "default"):
        if size in thumbnails:
            return thumbnails[size].get("url")
    return None


def _safe_duration(raw: str | None) -> int | None:
    if not raw:
        return None
    try:
        return parse_iso8601_duration(raw)
    except ValidationError:
        logger.warning(f"Unparseable duration from YouTube: {raw!r}")
        return None


class _RetryableStatusError(Exception):
    """A 429/5xx answer worth retrying."""


class YouTubeClient:
    """Async YouTube Data API client; use as an async context manager."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.YOUTUBE_API_KEY
        self._max_retries = settings.YOUTUBE_MAX_RETRIES
        self._retry_base_delay = settings.YOUTUBE_RETRY_BASE_DELAY
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or settings.YOUTUBE_API_URL,
            timeout=settings.YOUTUBE_REQUEST_TIMEOUT,
        )
        self._owns_client = http_client is None

    async def __aenter__(self) -> "YouTubeClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        if not self._api_key:
            raise CollaboratorUnavailableError(YOUTUBE_SERVICE_NAME, "YOUTUBE_API_KEY is not configured")

        async def attempt() -> dict[str, Any]:
            response = await self._client.get(path, params={**params, "key": self._api_key})
            if response.status_code == 429 or response.status_code >= 500:
                msg = f"HTTP {response.status_code} from {path}"
                raise _RetryableStatusError(msg)
            response.raise_for_status()
            return response.json()

        try:
            return await retry_async(
                attempt,
                max_attempts=self._max_retries,
                base_delay=self._retry_base_delay,
                retry_on=(httpx.TransportError, _RetryableStatusError),
                label=f"YouTube {path}",
            )
        except (httpx.HTTPError, _RetryableStatusError, ValueError) as e:
            raise CollaboratorUnavailableError(YOUTUBE_SERVICE_NAME, str(e)) from e

    async def search_videos(
        self,
        query: str,
        max_results: int = 10,
        category: str | None = None,
    ) -> list[VideoSummary]:
        """Search embeddable HD videos and enrich them with duration and statistics."""
        params: dict[str, Any] = {
            "part": "snippet",
            "q": query,
            "type": "video",
            "maxResults": max_results,
            "order": "relevance",
            "videoDefinition": "high",
            "videoEmbeddable": "true",
        }
        if category:
            params["videoCategoryId"] = category_id(category)

        data = await self._get("/search", params)
        items = [item for item in data.get("items", []) if (item.get("id") or {}).get("videoId")]
        if not items:
            return []

        details = {d.id: d for d in await self.get_video_details([item["id"]["videoId"] for item in items])}

        results = []
        for item in items:
            video_id = item["id"]["videoId"]
            snippet = item.get("snippet") or {}
            detail = details.get(video_id)
            results.append(
                VideoSummary(
                    video_id=video_id,
                    title=snippet.get("title", ""),
                    description=snippet.get("description"),
                    thumbnail=_thumbnail(snippet),
                    channel_title=snippet.get("channelTitle"),
                    channel_id=snippet.get("channelId"),
                    published_at=snippet.get("publishedAt"),
                    duration=detail.duration if detail else None,
                    view_count=detail.view_count if detail else 0,
                    like_count=detail.like_count if detail else 0,
                    url=WATCH_URL.format(video_id=video_id),
                    embed_url=EMBED_URL.format(video_id=video_id),
                    category=category_name(snippet.get("categoryId")),
                )
            )
        return results

    async def get_video_details(self, video_ids: list[str]) -> list[VideoDetails]:
        if not video_ids:
            return []
        data = await self._get("/videos", {"part": "contentDetails,statistics", "id": ",".join(video_ids)})

        details = []
        for item in data.get("items", []):
            statistics = item.get("statistics") or {}
            details.append(
                VideoDetails(
                    id=item["id"],
                    duration=_safe_duration((item.get("contentDetails") or {}).get("duration")),
                    view_count=_to_int(statistics.get("viewCount")),
                    like_count=_to_int(statistics.get("likeCount")),
                    comment_count=_to_int(statistics.get("commentCount")),
                )
            )
        return details

    async def get_channel_info(self, channel_id: str) -> ChannelInfo:
        data = await self._get("/channels", {"part": "snippet,statistics", "id": channel_id})
        items = data.get("items") or []
        if not items:
            raise ResourceNotFoundError("Channel", channel_id)

        channel = items[0]
        snippet = channel.get("snippet") or {}
        statistics = channel.get("statistics") or {}
        return ChannelInfo(
            channel_id=channel["id"],
            title=snippet.get("title", ""),
            description=snippet.get("description"),
            thumbnail=_thumbnail(snippet),
            subscriber_count=_to_int(statistics.get("subscriberCount")),
            video_count=_to_int(statistics.get("videoCount")),
        )

    async def get_trending_educational(self, category: str = "education") -> list[VideoSummary]:
        """Most popular US videos in a category, keeping only educational-looking ones."""
        params: dict[str, Any] = {
            "part": "snippet,statistics,contentDetails",
            "chart": "mostPopular",
            "regionCode": "US",
            "maxResults": 20,
        }
        if category != "all":
            params["videoCategoryId"] = category_id(category)

        data = await self._get("/videos", params)

        results = []
        for item in data.get("items", []):
            snippet = item.get("snippet") or {}
            if not is_educational(snippet.get("title"), snippet.get("description")):
                continue
            statistics = item.get("statistics") or {}
            video_id = item["id"]
            results.append(
                VideoSummary(
                    video_id=video_id,
                    title=snippet.get("title", ""),
                    description=snippet.get("description"),
                    thumbnail=_thumbnail(snippet),
                    channel_title=snippet.get("channelTitle"),
                    channel_id=snippet.get("channelId"),
                    published_at=snippet.get("publishedAt"),
                    duration=_safe_duration((item.get("contentDetails") or {}).get("duration")),
                    view_count=_to_int(statistics.get("viewCount")),
                    like_count=_to_int(statistics.get("likeCount")),
                    url=WATCH_URL.format(video_id=video_id),
                    embed_url=EMBED_URL.format(video_id=video_id),
                    category=category_name(snippet.get("categoryId")),
                )
            )
        return results


async def get_youtube_client() -> AsyncGenerator[YouTubeClient, None]:
    """FastAPI dependency yielding a request-scoped client."""
    async with YouTubeClient() as client:
        yield client
