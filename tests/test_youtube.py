"""Tests for the YouTube Data API client and duration parsing."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
import respx

from tubesum.config.settings import Settings
from tubesum.services.youtube import (
    YOUTUBE_API_BASE_URL,
    ChannelLookupError,
    YouTubeClient,
    match_iso8601_duration,
    parse_iso8601_duration,
)

SEARCH_URL = f"{YOUTUBE_API_BASE_URL}/search"
VIDEOS_URL = f"{YOUTUBE_API_BASE_URL}/videos"
CHANNELS_URL = f"{YOUTUBE_API_BASE_URL}/channels"
CHANNEL_ID = "UC" + "x" * 22


def _search_item(video_id: str, title: str = "A &amp; B") -> dict:
    return {
        "id": {"kind": "youtube#video", "videoId": video_id},
        "snippet": {
            "title": title,
            "description": "desc",
            "publishedAt": "2026-03-01T10:00:00Z",
            "thumbnails": {
                "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
            },
        },
    }


@pytest_asyncio.fixture
async def client(settings, console):
    async with httpx.AsyncClient() as http_client:
        yield YouTubeClient(settings=settings, console=console, http_client=http_client)


# =============================================================================
# Duration parsing
# =============================================================================


class TestDurationParsing:
    @pytest.mark.parametrize(
        ("token", "expected"),
        [
            ("PT1H2M3S", 3723),
            ("PT5M", 300),
            ("PT45S", 45),
            ("P1DT1S", 86401),
            ("not-a-duration", 0),
            ("", 0),
            ("PT", 0),
        ],
    )
    def test_parse(self, token: str, expected: int) -> None:
        assert parse_iso8601_duration(token) == expected

    def test_match_distinguishes_malformed_from_zero(self) -> None:
        assert match_iso8601_duration("PT0S") == 0
        assert match_iso8601_duration("garbage") is None


# =============================================================================
# Discovery
# =============================================================================


class TestListRecentVideos:
    @pytest.mark.asyncio
    @respx.mock
    async def test_maps_search_results(self, client: YouTubeClient) -> None:
        route = respx.get(SEARCH_URL).mock(
            return_value=httpx.Response(200, json={"items": [_search_item("abcdefghijk"), _search_item("bcdefghijkl")]})
        )

        videos = await client.list_recent_videos(CHANNEL_ID, 24)

        assert [video.video_id for video in videos] == ["abcdefghijk", "bcdefghijkl"]
        assert videos[0].title == "A & B"
        assert videos[0].thumbnail.endswith("hqdefault.jpg")
        assert videos[0].duration_seconds is None
        params = route.calls.last.request.url.params
        assert params["channelId"] == CHANNEL_ID
        assert params["order"] == "date"
        assert params["type"] == "video"
        assert params["maxResults"] == "10"
        assert params["key"] == "yt-test-key"
        assert params["publishedAfter"].endswith("Z")

    @pytest.mark.asyncio
    @respx.mock
    async def test_caps_results_at_ten(self, client: YouTubeClient) -> None:
        items = [_search_item(f"vid{index:08d}") for index in range(12)]
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json={"items": items}))

        videos = await client.list_recent_videos(CHANNEL_ID)

        assert len(videos) == 10

    @pytest.mark.asyncio
    @respx.mock
    @pytest.mark.parametrize(("hours", "expected_hours"), [(0, 0), (None, 24), (6, 6)])
    async def test_window_honours_explicit_hours(self, client: YouTubeClient, hours, expected_hours: int) -> None:
        route = respx.get(SEARCH_URL).mock(return_value=httpx.Response(200, json={"items": []}))

        await client.list_recent_videos(CHANNEL_ID, hours)

        published_after = datetime.strptime(
            route.calls.last.request.url.params["publishedAfter"], "%Y-%m-%dT%H:%M:%SZ"
        ).replace(tzinfo=timezone.utc)
        expected = datetime.now(timezone.utc) - timedelta(hours=expected_hours)
        assert abs(published_after - expected) < timedelta(minutes=5)

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_yields_empty_list(self, client: YouTubeClient) -> None:
        respx.get(SEARCH_URL).mock(return_value=httpx.Response(403, json={"error": {"message": "quota"}}))

        assert await client.list_recent_videos(CHANNEL_ID) == []

    @pytest.mark.asyncio
    @respx.mock
    async def test_network_error_yields_empty_list(self, client: YouTubeClient) -> None:
        respx.get(SEARCH_URL).mock(side_effect=httpx.ConnectError("boom"))

        assert await client.list_recent_videos(CHANNEL_ID) == []

    @pytest.mark.asyncio
    async def test_missing_key_yields_empty_list(self, console) -> None:
        keyless = Settings(DATABASE_URL="postgresql://u:p@localhost:5432/db", YOUTUBE_API_KEY="")
        async with httpx.AsyncClient() as http_client:
            youtube = YouTubeClient(settings=keyless, console=console, http_client=http_client)
            with respx.mock(assert_all_called=False) as mock:
                route = mock.get(SEARCH_URL)
                assert await youtube.list_recent_videos(CHANNEL_ID) == []
                assert not route.called


# =============================================================================
# Durations
# =============================================================================


class TestFetchDurations:
    @pytest.mark.asyncio
    @respx.mock
    async def test_batches_by_fifty_and_skips_malformed(self, client: YouTubeClient) -> None:
        def responder(request: httpx.Request) -> httpx.Response:
            ids = request.url.params["id"].split(",")
            items = [{"id": video_id, "contentDetails": {"duration": "PT1M"}} for video_id in ids]
            if "vid00000000" in ids:
                items[0]["contentDetails"]["duration"] = "bogus"
            return httpx.Response(200, json={"items": items})

        route = respx.get(VIDEOS_URL).mock(side_effect=responder)
        ids = [f"vid{index:08d}" for index in range(60)]

        durations = await client.fetch_durations(ids)

        assert route.call_count == 2
        assert len(route.calls[0].request.url.params["id"].split(",")) == 50
        assert "vid00000000" not in durations
        assert durations["vid00000059"] == 60
        assert len(durations) == 59

    @pytest.mark.asyncio
    @respx.mock
    async def test_failed_batch_is_logged_not_raised(self, client: YouTubeClient) -> None:
        respx.get(VIDEOS_URL).mock(return_value=httpx.Response(500))

        assert await client.fetch_durations(["abcdefghijk"]) == {}


# =============================================================================
# Metadata and channel lookup
# =============================================================================


class TestMetadataAndChannels:
    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_video_metadata(self, client: YouTubeClient) -> None:
        respx.get(VIDEOS_URL).mock(return_value=httpx.Response(200, json={"items": [_search_item("abcdefghijk", "Talk")]}))

        metadata = await client.fetch_video_metadata("abcdefghijk")

        assert metadata is not None
        assert metadata.title == "Talk"
        assert metadata.published_at.year == 2026

    @pytest.mark.asyncio
    @respx.mock
    async def test_fetch_video_metadata_unknown_video(self, client: YouTubeClient) -> None:
        respx.get(VIDEOS_URL).mock(return_value=httpx.Response(200, json={"items": []}))

        assert await client.fetch_video_metadata("abcdefghijk") is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolve_handle(self, client: YouTubeClient) -> None:
        route = respx.get(CHANNELS_URL).mock(
            return_value=httpx.Response(200, json={"items": [{"id": CHANNEL_ID, "snippet": {"title": "Some Channel"}}]})
        )

        info = await client.resolve_channel("https://www.youtube.com/@somechannel")

        assert info.channel_id == CHANNEL_ID
        assert info.channel_name == "Some Channel"
        assert info.channel_url == f"https://www.youtube.com/channel/{CHANNEL_ID}"
        assert route.calls.last.request.url.params["forHandle"] == "@somechannel"

    @pytest.mark.asyncio
    @respx.mock
    async def test_resolve_unknown_channel(self, client: YouTubeClient) -> None:
        respx.get(CHANNELS_URL).mock(return_value=httpx.Response(200, json={"items": []}))

        with pytest.raises(ChannelLookupError):
            await client.resolve_channel(CHANNEL_ID)

    @pytest.mark.asyncio
    async def test_resolve_malformed_identifier(self, client: YouTubeClient) -> None:
        with pytest.raises(ChannelLookupError):
            await client.resolve_channel("https://example.com/not-a-channel")
