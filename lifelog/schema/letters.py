"""Letter and user records as stored in Firestore."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

DEFAULT_SENDER_NAME = "誰か"
DEFAULT_SENDER_EMOJI = "💌"


class LetterStatus(str, Enum):
  PENDING = "pending"
  # Written by the previous Cloud Functions backend once a random date was drawn.
  SCHEDULED = "scheduled"
  DELIVERED = "delivered"


# Statuses from which a letter may still be delivered.
UNDELIVERED_STATUSES = frozenset({LetterStatus.PENDING.value, LetterStatus.SCHEDULED.value})


class DeliveryCondition(str, Enum):
  LAST_LOGIN = "lastLogin"
  FIXED = "fixed"
  RANDOM = "random"


@dataclass(frozen=True)
class Letter:
  """A stored letter waiting for (or past) its delivery condition."""

  id: str
  sender_id: str
  recipient_id: str
  status: str
  # None when the stored value is not a condition this service knows; such letters are never delivered automatically.
  delivery_condition: DeliveryCondition | None = DeliveryCondition.LAST_LOGIN
  last_login_days: int | None = None
  delivery_date: datetime | None = None
  random_start_date: datetime | None = None
  random_end_date: datetime | None = None
  scheduled_delivery_date: datetime | None = None
  delivered_at: datetime | None = None
  last_warned_at: datetime | None = None

  @property
  def is_pending(self) -> bool:
    return self.status == LetterStatus.PENDING.value

  @property
  def awaits_delivery(self) -> bool:
    """Pending, or scheduled by the legacy backend."""
    return self.status in UNDELIVERED_STATUSES

  @classmethod
  def from_document(cls, letter_id: str, data: dict[str, Any]) -> Letter:
    """Build a letter from a raw Firestore document payload."""
    return cls(
      id=letter_id,
      sender_id=str(data.get("senderId") or ""),
      recipient_id=str(data.get("recipientId") or ""),
      status=str(data.get("status") or ""),
      delivery_condition=_parse_condition(data.get("deliveryCondition")),
      last_login_days=_parse_positive_int(data.get("lastLoginDays")),
      delivery_date=as_utc(data.get("deliveryDate")),
      random_start_date=as_utc(data.get("randomStartDate")),
      random_end_date=as_utc(data.get("randomEndDate")),
      scheduled_delivery_date=as_utc(data.get("scheduledDeliveryDate")),
      delivered_at=as_utc(data.get("deliveredAt")),
      last_warned_at=as_utc(data.get("lastWarnedAt")),
    )


@dataclass(frozen=True)
class User:
  """The subset of a user document this service reads."""

  id: str
  fcm_token: str | None = None
  display_name: str | None = None
  emoji: str | None = None
  last_active_at: datetime | None = None

  @classmethod
  def from_document(cls, user_id: str, data: dict[str, Any]) -> User:
    # Older app builds only wrote lastLoginAt.
    last_active = data.get("lastActiveAt") or data.get("lastLoginAt")
    return cls(id=user_id, fcm_token=data.get("fcmToken") or None, display_name=data.get("displayName") or None, emoji=data.get("emoji") or None, last_active_at=as_utc(last_active))


def utc_now() -> datetime:
  return datetime.now(timezone.utc)


def as_utc(value: Any) -> datetime | None:
  """Normalize Firestore timestamps to timezone-aware UTC datetimes."""
  if not isinstance(value, datetime):
    return None
  if value.tzinfo is None:
    return value.replace(tzinfo=timezone.utc)
  return value.astimezone(timezone.utc)


def _parse_condition(raw: Any) -> DeliveryCondition | None:
  """Missing means lastLogin (the app's first letters had no field); anything unrecognised is None."""
  if raw is None or raw == "":
    return DeliveryCondition.LAST_LOGIN
  try:
    return DeliveryCondition(raw)
  except ValueError:
    return None


def _parse_positive_int(raw: Any) -> int | None:
  if isinstance(raw, bool) or not isinstance(raw, int | float):
    return None
  value = int(raw)
  return value if value > 0 else None
