from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def format_duration(seconds: int | None) -> str:
    """Render seconds as ``H:MM:SS`` or ``M:SS``."""
    if seconds is None:
        return "Unknown"
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


class VideoDetails(BaseModel):
    """Duration and statistics of one catalog video."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    duration: int | None = Field(None, description="Duration in seconds")
    view_count: int = Field(0, alias="viewCount")
    like_count: int = Field(0, alias="likeCount")
    comment_count: int = Field(0, alias="commentCount")

    @computed_field(alias="durationText")
    @property
    def duration_text(self) -> str:
        return format_duration(self.duration)


class VideoSummary(BaseModel):
    """A catalog search or trending result."""

    model_config = ConfigDict(populate_by_name=True)

    video_id: str = Field(..., alias="videoId")
    title: str
    description: str | None = None
    thumbnail: str | None = None
    channel_title: str | None = Field(None, alias="channelTitle")
    channel_id: str | None = Field(None, alias="channelId")
    published_at: datetime | None = Field(None, alias="publishedAt")
    duration: int | None = Field(None, description="Duration in seconds")
    view_count: int = Field(0, alias="viewCount")
    like_count: int = Field(0, alias="likeCount")
    url: str
    embed_url: str = Field(..., alias="embedUrl")
    category: str = "Education"

    @computed_field(alias="durationText")
    @property
    def duration_text(self) -> str:
        return format_duration(self.duration)


class ChannelInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    channel_id: str = Field(..., alias="channelId")
    title: str
    description: str | None = None
    thumbnail: str | None = None
    subscriber_count: int = Field(0, alias="subscriberCount")
    video_count: int = Field(0, alias="videoCount")


class SaveVideoAsLesson(BaseModel):
    """Request body for saving a catalog video as a lesson."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    video_id: str = Field(..., min_length=1, max_length=50, alias="videoId")
    title: str = Field(..., min_length=1, max_length=300)
    description: str | None = None
    thumbnail: str | None = Field(None, max_length=500)
    channel_title: str | None = Field(None, alias="channelTitle")
    duration: Any = Field(None, description="Seconds, ISO-8601 (PT1H2M3S) or clock notation (1:02:03)")
    goal_id: UUID | None = Field(None, alias="goalId")
    category: str = Field("other", max_length=50)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def _default_tags(cls, value: Any) -> list[str]:
        return value or []
