"""Pytest configuration helpers."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest


def _ensure_repo_on_path() -> None:
    """Allow tests to import the package without installing it."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


_ensure_repo_on_path()

from chatbox_translator.models.settings import Settings  # noqa: E402


@pytest.fixture
def settings(tmp_path) -> Settings:
    s = Settings()
    s.api_key = "test-key"
    s.cost_file = str(tmp_path / "total_cost.txt")
    s.noise_gate_threshold = 0.3
    s.noise_gate_hold_time = 0.2
    s.silence_threshold = 100
    s.min_transcription_duration = 0.5
    s.pre_padding = 0.0
    return s
