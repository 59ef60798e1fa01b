"""Tests for the channel ingestion orchestrator and the pending retry pass."""

from __future__ import annotations

import pytest

from conftest import FakeStore, StubSummarizer, StubTranscripts, StubYouTube, make_channel, make_discovered, transcript_of
from tubesum.services.ingestion import IngestionService
from tubesum.utils.validation import watch_url


@pytest.fixture
def channel():
    return make_channel()


@pytest.fixture
def service(settings, console, store, youtube, transcripts, summarizer, channel) -> IngestionService:
    store.channels[channel.id] = channel
    return IngestionService(
        store=store,
        youtube=youtube,
        transcripts=transcripts,
        summarizer=summarizer,
        settings=settings,
        console=console,
    )


# =============================================================================
# Discovery-time processing
# =============================================================================


class TestRunDiscovery:
    @pytest.mark.asyncio
    async def test_usable_transcript_is_summarized_and_stored(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v1aaaaaaaaa")]
        youtube.durations["v1aaaaaaaaa"] = 3723
        transcripts.texts["v1aaaaaaaaa"] = transcript_of(150)

        report = await service.run()

        stored = store.videos["v1aaaaaaaaa"]
        assert stored.summary.startswith("## 📝 Overview")
        assert stored.duration_seconds == 3723
        assert stored.channel_id == channel.id
        assert stored.video_url == watch_url("v1aaaaaaaaa")
        assert "v1aaaaaaaaa" not in store.pending
        assert report.processed == 1
        assert report.queued == 0

    @pytest.mark.asyncio
    async def test_short_transcript_is_queued_without_summarizing(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, summarizer: StubSummarizer, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v2aaaaaaaaa")]
        transcripts.texts["v2aaaaaaaaa"] = transcript_of(40)

        report = await service.run()

        pending = store.pending["v2aaaaaaaaa"]
        assert pending.retry_count == 0
        assert pending.description == "Description for v2aaaaaaaaa"
        assert "v2aaaaaaaaa" not in store.videos
        assert summarizer.calls == []
        assert report.queued == 1
        assert report.retried == 0

    @pytest.mark.asyncio
    async def test_known_videos_are_skipped_before_transcript_fetch(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v1aaaaaaaaa")]
        transcripts.texts["v1aaaaaaaaa"] = transcript_of(150)
        await service.run()
        transcripts.calls.clear()

        report = await service.run()

        assert transcripts.calls == []
        assert report.skipped == 1
        assert len(store.videos) == 1

    @pytest.mark.asyncio
    async def test_candidates_processed_in_discovery_order(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        ids = ["newestaaaaa", "middleaaaaa", "oldestaaaaa"]
        youtube.recent[channel.channel_id] = [make_discovered(video_id, hours_ago=index + 1) for index, video_id in enumerate(ids)]
        for video_id in ids:
            transcripts.texts[video_id] = transcript_of(200)

        await service.run()

        assert transcripts.calls == ids

    @pytest.mark.asyncio
    async def test_missing_duration_is_left_empty(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("nodurationa")]
        transcripts.texts["nodurationa"] = transcript_of(120)

        await service.run()

        assert store.videos["nodurationa"].duration_seconds is None

    @pytest.mark.asyncio
    async def test_category_is_matched_case_insensitively(
        self, settings, console, store: FakeStore, youtube: StubYouTube, transcripts, summarizer
    ) -> None:
        tech = make_channel("UC" + "t" * 22, name="Tech", category="Tech")
        store.channels[tech.id] = tech
        youtube.recent[tech.channel_id] = [make_discovered("techvideo01")]
        transcripts.texts["techvideo01"] = transcript_of(300)
        service = IngestionService(
            store=store, youtube=youtube, transcripts=transcripts, summarizer=summarizer, settings=settings, console=console
        )

        report = await service.run("TECH")

        assert report.channels == 1
        assert "techvideo01" in store.videos
        assert youtube.discovery_calls == [tech.channel_id]

    @pytest.mark.asyncio
    async def test_no_channels_returns_empty_report(self, settings, console, youtube, transcripts, summarizer) -> None:
        empty_store = FakeStore()
        service = IngestionService(
            store=empty_store, youtube=youtube, transcripts=transcripts, summarizer=summarizer, settings=settings, console=console
        )

        report = await service.run("gaming")

        assert report.channels == 0
        assert youtube.discovery_calls == []

    @pytest.mark.asyncio
    async def test_failing_channel_does_not_stop_others(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        second = make_channel("UC" + "b" * 22, name="Channel B", added_minutes_ago=30)
        store.channels[second.id] = second
        youtube.recent[channel.channel_id] = RuntimeError("quota exceeded")
        youtube.recent[second.channel_id] = [make_discovered("fromsecond1")]
        transcripts.texts["fromsecond1"] = transcript_of(150)

        report = await service.run()

        assert report.failed_channels == ["Channel A"]
        assert "fromsecond1" in store.videos

    @pytest.mark.asyncio
    async def test_store_outage_propagates(self, service, store: FakeStore) -> None:
        store.fail_list_channels = ConnectionError("database unreachable")

        with pytest.raises(ConnectionError):
            await service.run()


# =============================================================================
# Pending queue lifecycle
# =============================================================================


class TestPendingQueue:
    @pytest.mark.asyncio
    async def test_unusable_transcript_is_discarded_on_second_retry(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v2aaaaaaaaa")]
        transcripts.texts["v2aaaaaaaaa"] = transcript_of(40)

        await service.run()
        assert store.pending["v2aaaaaaaaa"].retry_count == 0

        second = await service.run()
        assert store.pending["v2aaaaaaaaa"].retry_count == 1
        assert second.retried == 1
        assert second.skipped == 1

        third = await service.run()
        assert "v2aaaaaaaaa" not in store.pending
        assert "v2aaaaaaaaa" not in store.videos
        assert third.discarded == 1

    @pytest.mark.asyncio
    async def test_transcript_appearing_later_promotes_row(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, summarizer: StubSummarizer, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v2aaaaaaaaa", title="Late captions")]
        youtube.durations["v2aaaaaaaaa"] = 300
        transcripts.texts["v2aaaaaaaaa"] = transcript_of(40)
        await service.run()

        transcripts.texts["v2aaaaaaaaa"] = transcript_of(500)
        report = await service.run()

        assert "v2aaaaaaaaa" not in store.pending
        promoted = store.videos["v2aaaaaaaaa"]
        assert promoted.channel_id == channel.id
        assert promoted.duration_seconds == 300
        assert summarizer.calls[-1][1] == "Late captions"
        assert report.promoted == 1

    @pytest.mark.asyncio
    async def test_promotion_ignores_retry_count(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v3aaaaaaaaa")]
        transcripts.texts["v3aaaaaaaaa"] = transcript_of(10)
        await service.run()
        await service.run()
        assert store.pending["v3aaaaaaaaa"].retry_count == 1

        transcripts.texts["v3aaaaaaaaa"] = transcript_of(100)
        await service.run()

        assert "v3aaaaaaaaa" in store.videos
        assert "v3aaaaaaaaa" not in store.pending

    @pytest.mark.asyncio
    async def test_pending_pass_covers_all_categories(
        self, settings, console, store: FakeStore, youtube, transcripts: StubTranscripts, summarizer
    ) -> None:
        main = make_channel()
        other = make_channel("UC" + "o" * 22, name="Other", category="news")
        store.channels[main.id] = main
        store.channels[other.id] = other
        service = IngestionService(
            store=store, youtube=youtube, transcripts=transcripts, summarizer=summarizer, settings=settings, console=console
        )
        youtube.recent[other.channel_id] = [make_discovered("newsvideo01")]
        transcripts.texts["newsvideo01"] = transcript_of(5)
        await service.run("news")

        transcripts.texts["newsvideo01"] = transcript_of(250)
        report = await service.run("main")

        assert report.promoted == 1
        assert store.videos["newsvideo01"].channel_id == other.id

    @pytest.mark.asyncio
    async def test_process_pending_can_run_standalone(
        self, service, store: FakeStore, youtube: StubYouTube, transcripts: StubTranscripts, channel
    ) -> None:
        youtube.recent[channel.channel_id] = [make_discovered("v4aaaaaaaaa")]
        transcripts.texts["v4aaaaaaaaa"] = transcript_of(20)
        await service.run()

        report = await service.process_pending()

        assert report.retried == 1
        assert store.pending["v4aaaaaaaaa"].retry_count == 1


# =============================================================================
# Idempotence
# =============================================================================


@pytest.mark.asyncio
async def test_repeated_runs_never_duplicate_rows(service, store: FakeStore, youtube: StubYouTube, transcripts, channel) -> None:
    youtube.recent[channel.channel_id] = [make_discovered("goodvideo01"), make_discovered("badvideo001")]
    transcripts.texts["goodvideo01"] = transcript_of(400)
    transcripts.texts["badvideo001"] = transcript_of(30)

    for _ in range(2):
        await service.run()

    assert list(store.videos) == ["goodvideo01"]
    assert list(store.pending) == ["badvideo001"]
    assert not set(store.videos) & set(store.pending)
