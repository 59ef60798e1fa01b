"""Tests for settings defaults and the YAML channel seed loader."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from tubesum.config.settings import DEFAULT_CHANNEL_SEED_PATH, Settings, load_channel_seeds


def test_defaults(settings: Settings) -> None:
    assert settings.lookback_hours == 24
    assert settings.min_transcript_chars == 100
    assert settings.max_transcript_chars == 8000
    assert settings.fallback_summary_chars == 300
    assert settings.fetch_schedule == "0 5 * * *"
    assert settings.job_ttl_seconds == 300
    assert settings.openrouter_model == "openrouter/free"


def test_database_url_must_be_postgres() -> None:
    with pytest.raises(ValidationError):
        Settings(DATABASE_URL="mysql://user@localhost/db")


def test_seed_file_accepts_strings_and_mappings(tmp_path: Path) -> None:
    seed_file = tmp_path / "channels.yaml"
    seed_file.write_text(
        "channels:\n"
        "  - https://www.youtube.com/@first\n"
        "  - url: https://www.youtube.com/@second\n"
        "    category: tech\n",
        encoding="utf-8",
    )

    seeds = load_channel_seeds(seed_file).channels

    assert [(seed.url, seed.category) for seed in seeds] == [
        ("https://www.youtube.com/@first", "main"),
        ("https://www.youtube.com/@second", "tech"),
    ]


def test_missing_seed_file_yields_no_channels(tmp_path: Path) -> None:
    assert load_channel_seeds(tmp_path / "absent.yaml").channels == []


def test_unknown_seed_keys_are_rejected(tmp_path: Path) -> None:
    seed_file = tmp_path / "channels.yaml"
    seed_file.write_text("channels:\n  - url: https://www.youtube.com/@x\n    colour: red\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_channel_seeds(seed_file)


def test_bundled_seed_file_parses() -> None:
    load_channel_seeds(DEFAULT_CHANNEL_SEED_PATH)
