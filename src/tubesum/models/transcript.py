"""Pydantic models for transcript processing."""

from __future__ import annotations

from typing import List

from pydantic import Field

from tubesum.models.base import TubeBaseModel


class TranscriptSegment(TubeBaseModel):
    """Segment of a transcript including timing metadata."""

    text: str
    start: float = Field(default=0.0, ge=0.0)
    duration: float = Field(default=0.0, ge=0.0)


class Transcript(TubeBaseModel):
    """Ordered caption segments for a single video."""

    video_id: str
    segments: List[TranscriptSegment] = Field(default_factory=list)

    @property
    def text(self) -> str:
        """Segment texts joined by single spaces."""

        return " ".join(segment.text for segment in self.segments)


__all__ = ["Transcript", "TranscriptSegment"]
