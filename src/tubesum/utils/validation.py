"""Validation helpers for YouTube URLs and identifiers."""

from __future__ import annotations

import re
from enum import Enum
from typing import Tuple
from urllib.parse import parse_qs, urlparse


class InvalidYouTubeURLError(ValueError):
    """Raised when a provided URL is not a valid YouTube video link."""


class InvalidChannelIdentifierError(ValueError):
    """Raised when a channel URL, handle or id cannot be interpreted."""


class ChannelIdentifierKind(str, Enum):
    """How a channel reference should be looked up in the YouTube directory."""

    ID = "id"
    HANDLE = "forHandle"
    USERNAME = "forUsername"


_VIDEO_ID_PATTERN = re.compile(r"^[0-9A-Za-z_-]{11}$")
_CHANNEL_ID_PATTERN = re.compile(r"^UC[0-9A-Za-z_-]{22}$")
_HANDLE_PATTERN = re.compile(r"^@[0-9A-Za-z_.\-]{1,100}$")


def extract_video_id(url: str) -> str:
    """Extract and validate a YouTube video ID from a URL or raw ID string."""

    stripped = url.strip()
    if _VIDEO_ID_PATTERN.fullmatch(stripped):
        return stripped

    parsed = urlparse(stripped)
    if parsed.netloc in {"youtu.be", "www.youtu.be"}:
        candidate = parsed.path.lstrip("/")
        if _VIDEO_ID_PATTERN.fullmatch(candidate):
            return candidate

    if parsed.netloc.endswith("youtube.com"):
        if parsed.path == "/watch":
            candidate_list = parse_qs(parsed.query).get("v", [])
            if candidate_list and _VIDEO_ID_PATTERN.fullmatch(candidate_list[0]):
                return candidate_list[0]
        else:
            # Embedded players, shorts and live links carry the id as a path segment.
            path_match = re.search(r"/(?:embed|shorts|live|v)/([0-9A-Za-z_-]{11})", parsed.path)
            if path_match:
                return path_match.group(1)

    raise InvalidYouTubeURLError(f"Invalid YouTube URL or video ID: {url!r}")


def watch_url(video_id: str) -> str:
    """Return the canonical watch URL stored alongside each video."""

    return f"https://youtube.com/watch?v={video_id}"


def channel_url(channel_id: str) -> str:
    """Return the canonical channel page URL for an external channel id."""

    return f"https://www.youtube.com/channel/{channel_id}"


def parse_channel_identifier(raw: str) -> Tuple[ChannelIdentifierKind, str]:
    """Classify a channel URL, ``@handle`` or bare ``UC...`` id for directory lookup."""

    stripped = raw.strip()
    if not stripped:
        raise InvalidChannelIdentifierError("Channel identifier is empty.")
    if _CHANNEL_ID_PATTERN.fullmatch(stripped):
        return ChannelIdentifierKind.ID, stripped
    if _HANDLE_PATTERN.fullmatch(stripped):
        return ChannelIdentifierKind.HANDLE, stripped

    candidate = stripped if "://" in stripped else f"https://{stripped}"
    parsed = urlparse(candidate)
    if not parsed.netloc.endswith("youtube.com"):
        raise InvalidChannelIdentifierError(f"Not a YouTube channel reference: {raw!r}")

    segments = [segment for segment in parsed.path.split("/") if segment]
    if not segments:
        raise InvalidChannelIdentifierError(f"Channel URL has no path: {raw!r}")

    head = segments[0]
    if head.startswith("@") and _HANDLE_PATTERN.fullmatch(head):
        return ChannelIdentifierKind.HANDLE, head
    if head == "channel" and len(segments) > 1 and _CHANNEL_ID_PATTERN.fullmatch(segments[1]):
        return ChannelIdentifierKind.ID, segments[1]
    if head == "user" and len(segments) > 1:
        return ChannelIdentifierKind.USERNAME, segments[1]
    if head == "c" and len(segments) > 1:
        # Legacy custom URLs usually match the channel handle.
        return ChannelIdentifierKind.HANDLE, f"@{segments[1]}"

    raise InvalidChannelIdentifierError(f"Unrecognised channel URL: {raw!r}")


__all__ = [
    "ChannelIdentifierKind",
    "InvalidChannelIdentifierError",
    "InvalidYouTubeURLError",
    "channel_url",
    "extract_video_id",
    "parse_channel_identifier",
    "watch_url",
]
