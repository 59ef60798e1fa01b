"""Repository for interacting with the `pending_videos` retry queue."""

from __future__ import annotations

from tubesum.db import ConnectionFactory
from tubesum.db.repositories import BaseRepository
from tubesum.models.video import PendingVideo


class PendingVideoRepository(BaseRepository[PendingVideo]):
    """Data access object for videos awaiting a usable transcript."""

    table_name = "pending_videos"
    model_type = PendingVideo
    insert_fields = (
        "video_id",
        "title",
        "thumbnail",
        "description",
        "video_url",
        "published_at",
        "duration_seconds",
        "channel_id",
        "retry_count",
    )

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def exists_by_video_id(self, video_id: str) -> bool:
        return self.exists("video_id = %(video_id)s", {"video_id": video_id})

    def list_oldest_first(self) -> list[PendingVideo]:
        """Return the full queue ordered by enqueue time."""

        return self.fetch_all(order_by="added_at ASC")

    def increment_retry(self, video_id: str) -> int:
        """Bump the retry counter for a queued video and return the affected row count."""

        return self._execute(
            "UPDATE pending_videos SET retry_count = retry_count + 1 WHERE video_id = %(video_id)s",
            {"video_id": video_id},
        )

    def delete_by_video_id(self, video_id: str) -> int:
        return self.delete_where("video_id = %(video_id)s", {"video_id": video_id})


__all__ = ["PendingVideoRepository"]
