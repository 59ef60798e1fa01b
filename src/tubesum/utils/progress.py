"""Processing stages shared across the CLI and services."""

from __future__ import annotations

from enum import Enum


class ProcessingStage(str, Enum):
    """Lifecycle stages for ingesting a single YouTube video."""

    VALIDATING = "validating"
    FETCHING_METADATA = "fetching_metadata"
    TRANSCRIBING = "transcribing"
    SUMMARIZING = "summarizing"
    STORING = "storing"
    COMPLETE = "complete"
    FAILED = "failed"


__all__ = ["ProcessingStage"]
