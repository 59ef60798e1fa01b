"""Pydantic models describing YouTube videos at each pipeline stage."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from tubesum.models.base import TubeBaseModel


class DiscoveredVideo(TubeBaseModel):
    """A candidate video returned by channel discovery, not yet persisted."""

    video_id: str = Field(min_length=1, max_length=255)
    title: str
    description: str = ""
    thumbnail: str = ""
    published_at: datetime
    duration_seconds: Optional[int] = Field(default=None, ge=0)


class VideoMetadata(TubeBaseModel):
    """Snippet metadata for a single video fetched by id."""

    title: str
    thumbnail: str = ""
    published_at: datetime


class Video(TubeBaseModel):
    """Domain model representing a row in the ``videos`` table.

    Rows are created once a summary exists, either by the channel ingestion run or by a
    manual single-video submission attached to the standalone channel.
    """

    id: Optional[UUID] = None
    video_id: str = Field(min_length=1, max_length=255)
    title: str
    thumbnail: str = ""
    summary: str
    video_url: str
    published_at: datetime
    fetched_at: Optional[datetime] = None
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    channel_id: UUID
    channel_name: Optional[str] = None
    channel_url: Optional[str] = None
    category: Optional[str] = None


class PendingVideo(TubeBaseModel):
    """Domain model representing a row in the ``pending_videos`` retry queue."""

    id: Optional[UUID] = None
    video_id: str = Field(min_length=1, max_length=255)
    title: str
    thumbnail: str = ""
    description: str = ""
    video_url: str
    published_at: datetime
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    channel_id: UUID
    retry_count: int = Field(default=0, ge=0)
    added_at: Optional[datetime] = None


__all__ = ["DiscoveredVideo", "PendingVideo", "Video", "VideoMetadata"]
