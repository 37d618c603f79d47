"""Contracts for letter and user persistence."""

from __future__ import annotations

from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any, Protocol

from lifelog.schema.letters import Letter, User


class StorageError(Exception):
  """Base class for letter/user store failures."""


class LetterWriteError(StorageError):
  """Raised when a letter update fails on transport or permission grounds."""


class LetterRepository(Protocol):
  """Repository contract for letter documents."""

  async def get(self, letter_id: str) -> Letter | None:
    """Fetch a letter, or None when it does not exist."""

  async def update(self, letter_id: str, fields: dict[str, Any]) -> None:
    """Apply a partial update to a letter."""

  def query_pending(self) -> AsyncIterator[Letter]:
    """Stream the letters that are currently pending, once."""

  def query_due(self, now: datetime) -> AsyncIterator[Letter]:
    """Stream undelivered `fixed` and `random` letters whose delivery date is at or before `now`."""

  async def mark_delivered(self, letter_id: str) -> bool:
    """Move an undelivered letter to delivered; False when it was already delivered or is gone."""


class UserRepository(Protocol):
  """Repository contract for user documents."""

  async def get(self, user_id: str) -> User | None:
    """Fetch a user, or None when it does not exist."""

  async def clear_push_token(self, user_id: str) -> None:
    """Forget a push token the provider reported as invalid."""
