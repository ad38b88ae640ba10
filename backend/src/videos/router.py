"""YouTube catalog API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status

from src.auth import CurrentAuth
from src.exceptions import ResourceNotFoundError
from src.lessons.schemas import LessonResponse
from src.middleware.security import api_rate_limit

from .schemas import ChannelInfo, SaveVideoAsLesson, VideoDetails, VideoSummary
from .service import VideoService
from .youtube import YouTubeClient, get_youtube_client


router = APIRouter(prefix="/api/v1/youtube", tags=["youtube"])

YouTube = Annotated[YouTubeClient, Depends(get_youtube_client)]


@router.get("/search")
@api_rate_limit
async def search_videos(
    request: Request,  # Required for rate limiting decorator
    youtube: YouTube,
    _auth: CurrentAuth,
    q: str = Query(..., min_length=1, description="Search query"),
    max_results: int = Query(10, ge=1, le=50, alias="maxResults"),
    category: str | None = None,
) -> list[VideoSummary]:
    """Search embeddable educational videos."""
    return await youtube.search_videos(q, max_results=max_results, category=category)


@router.get("/video/{video_id}")
async def get_video(video_id: str, youtube: YouTube, _auth: CurrentAuth) -> VideoDetails:
    details = await youtube.get_video_details([video_id])
    if not details:
        raise ResourceNotFoundError("Video", video_id)
    return details[0]


@router.get("/trending")
@api_rate_limit
async def get_trending(
    request: Request,  # Required for rate limiting decorator
    youtube: YouTube,
    _auth: CurrentAuth,
    category: str = Query("education", description="education, science, technology, howto, news or all"),
) -> list[VideoSummary]:
    return await youtube.get_trending_educational(category)


@router.get("/channel/{channel_id}")
async def get_channel(channel_id: str, youtube: YouTube, _auth: CurrentAuth) -> ChannelInfo:
    return await youtube.get_channel_info(channel_id)


@router.get("/recommendations")
async def get_recommendations(
    youtube: YouTube,
    auth: CurrentAuth,
    category: str | None = None,
    limit: int = Query(10, ge=1, le=50),
) -> list[VideoSummary]:
    """Videos related to the caller's recent YouTube lessons."""
    return await VideoService(auth, youtube).recommendations(category=category, limit=limit)


@router.post("/save-as-lesson", status_code=status.HTTP_201_CREATED)
async def save_as_lesson(data: SaveVideoAsLesson, youtube: YouTube, auth: CurrentAuth) -> LessonResponse:
    """Save a video as a lesson; each video can be saved once per user."""
    lesson = await VideoService(auth, youtube).save_as_lesson(data)
    return LessonResponse.from_model(lesson)
