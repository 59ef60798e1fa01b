"""Repository for interacting with the `videos` table."""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple
from uuid import UUID

from tubesum.db import ConnectionFactory
from tubesum.db.repositories import BaseRepository
from tubesum.models.video import Video

_JOINED_SELECT = (
    "SELECT v.*, c.channel_name, c.channel_url, c.category "
    "FROM videos v JOIN youtube_channels c ON v.channel_id = c.id"
)


class VideoRepository(BaseRepository[Video]):
    """Data access object encapsulating summarized video persistence logic."""

    table_name = "videos"
    model_type = Video
    insert_fields = (
        "video_id",
        "title",
        "thumbnail",
        "summary",
        "video_url",
        "published_at",
        "duration_seconds",
        "channel_id",
    )

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def exists_by_video_id(self, video_id: str) -> bool:
        """Return whether a summarized video with the external id is stored."""

        return self.exists("video_id = %(video_id)s", {"video_id": video_id})

    def find_with_channel(self, record_id: UUID) -> Optional[Video]:
        """Return a video joined with its channel's name, URL and category."""

        row = self._fetch_optional(f"{_JOINED_SELECT} WHERE v.id = %(id)s", {"id": str(record_id)})
        return self.model_type.model_validate(row) if row is not None else None

    def list_page(
        self,
        *,
        limit: int,
        offset: int,
        channel_id: Optional[UUID] = None,
        category: Optional[str] = None,
    ) -> Tuple[List[Video], int]:
        """Return one page of videos, newest first, plus the total matching count."""

        conditions: List[str] = []
        params: Dict[str, object] = {"limit": limit, "offset": offset}
        if channel_id is not None:
            conditions.append("v.channel_id = %(channel_id)s")
            params["channel_id"] = str(channel_id)
        if category:
            conditions.append("LOWER(c.category) = LOWER(%(category)s)")
            params["category"] = category

        where_clause = f" WHERE {' AND '.join(conditions)}" if conditions else ""
        rows = self._fetch_many(
            f"{_JOINED_SELECT}{where_clause} ORDER BY v.published_at DESC LIMIT %(limit)s OFFSET %(offset)s",
            params,
        )
        count_row = self._fetch_one(
            f"SELECT COUNT(*) AS total FROM videos v JOIN youtube_channels c ON v.channel_id = c.id{where_clause}",
            params,
        )
        return [self.model_type.model_validate(row) for row in rows], int(count_row["total"])


__all__ = ["VideoRepository"]
