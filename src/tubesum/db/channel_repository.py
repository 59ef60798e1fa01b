"""Repository for interacting with the `youtube_channels` table."""

from __future__ import annotations

from typing import Optional

from tubesum.db import ConnectionFactory
from tubesum.db.repositories import BaseRepository, RecordNotFoundError
from tubesum.models.channel import STANDALONE_CHANNEL_ID, Channel


class ChannelRepository(BaseRepository[Channel]):
    """Data access object encapsulating channel persistence logic.

    The standalone sentinel row is excluded from every listing so that neither the admin views
    nor ingestion runs ever treat it as a real channel.
    """

    table_name = "youtube_channels"
    model_type = Channel
    insert_fields = (
        "channel_id",
        "channel_name",
        "channel_url",
        "category",
    )

    def __init__(self, connection_factory: ConnectionFactory) -> None:
        super().__init__(connection_factory)

    def find_by_channel_id(self, channel_id: str) -> Optional[Channel]:
        """Return an existing record by external YouTube channel id, if present."""

        try:
            return self.fetch_one("channel_id = %(channel_id)s", {"channel_id": channel_id})
        except RecordNotFoundError:
            return None

    def list_by_category(self, category: str) -> list[Channel]:
        """Return channels whose category matches case-insensitively."""

        return self.fetch_all(
            "LOWER(category) = LOWER(%(category)s) AND id <> %(sentinel)s",
            {"category": category, "sentinel": str(STANDALONE_CHANNEL_ID)},
            order_by="added_at ASC",
        )

    def list_with_video_counts(self) -> list[Channel]:
        """Return every real channel with the number of summarized videos it owns."""

        rows = self._fetch_many(
            "SELECT c.*, (SELECT COUNT(*) FROM videos v WHERE v.channel_id = c.id) AS video_count "
            "FROM youtube_channels c WHERE c.id <> %(sentinel)s ORDER BY c.added_at DESC",
            {"sentinel": str(STANDALONE_CHANNEL_ID)},
        )
        return [self.model_type.model_validate(row) for row in rows]


__all__ = ["ChannelRepository"]
