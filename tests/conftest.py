"""Shared fixtures wiring the letter services around in-memory fakes."""

from __future__ import annotations

import sys
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
  sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402

from lifelog.config import Settings, get_settings  # noqa: E402
from tests.fakes import FakeLetterRepository, FakeUserRepository, RecordingPushSender  # noqa: E402

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
  return "asyncio"


@pytest.fixture
def now() -> datetime:
  return NOW


@pytest.fixture
def settings() -> Settings:
  return replace(get_settings(), inactivity_threshold_days=30, warning_window_days=5, warning_interval_hours=24, task_secret="test-task-secret")


@pytest.fixture
def letter_repo() -> FakeLetterRepository:
  return FakeLetterRepository(clock=lambda: NOW)


@pytest.fixture
def user_repo() -> FakeUserRepository:
  return FakeUserRepository()


@pytest.fixture
def push_sender() -> RecordingPushSender:
  return RecordingPushSender()
