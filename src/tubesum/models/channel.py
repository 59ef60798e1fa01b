"""Pydantic models describing subscribed YouTube channels."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, field_validator

from tubesum.models.base import TubeBaseModel

STANDALONE_CHANNEL_ID = UUID("00000000-0000-0000-0000-000000000000")
DEFAULT_CATEGORY = "main"


class ChannelInfo(TubeBaseModel):
    """Result of resolving a channel URL, handle or id against the YouTube directory."""

    channel_id: str = Field(min_length=1, max_length=255)
    channel_name: str
    channel_url: str


class Channel(TubeBaseModel):
    """Domain model representing a row in the ``youtube_channels`` table.

    ``channel_id`` is the external YouTube identifier and is unique across channels. The
    ``category`` label groups channels for category-scoped ingestion runs.
    """

    id: Optional[UUID] = None
    channel_id: str = Field(min_length=1, max_length=255)
    channel_name: str
    channel_url: str
    category: str = Field(default=DEFAULT_CATEGORY, min_length=1, max_length=50)
    added_at: Optional[datetime] = None
    video_count: Optional[int] = Field(default=None, ge=0)

    @field_validator("category")
    @classmethod
    def _normalise_category(cls, value: str) -> str:
        return value.strip().lower()


__all__ = ["Channel", "ChannelInfo", "DEFAULT_CATEGORY", "STANDALONE_CHANNEL_ID"]
