"""Contracts for push notification delivery."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class NotificationKind(str, Enum):
  LETTER_DELIVERED = "letter_delivered"
  DELIVERY_WARNING = "delivery_warning"


class PushOutcome(str, Enum):
  """Result of a single gateway send; callers treat every value as non-fatal."""

  SENT = "sent"
  NO_TOKEN = "no_token"
  USER_NOT_FOUND = "user_not_found"
  INVALID_TOKEN = "invalid_token"
  TRANSPORT_FAILED = "transport_failed"
  LOOKUP_FAILED = "lookup_failed"
  RENDER_FAILED = "render_failed"


@dataclass(frozen=True)
class PushNotification:
  """Represents a push notification addressed to one device token."""

  token: str
  title: str
  body: str
  data: dict[str, str]
  sound: str | None = "default"
  badge: int | None = None


class NotificationError(Exception):
  """Base class for all notification delivery failures."""


class NotificationProviderError(NotificationError):
  """Exception raised when the push provider returns a delivery error."""


class PushTransportError(NotificationProviderError):
  """Exception raised when a push could not be handed to the provider."""


class InvalidPushTokenError(NotificationProviderError):
  """Exception raised when a device token is unregistered or belongs to another sender."""


class PushSender(Protocol):
  """Delivery contract for sending push notifications."""

  def send(self, notification: PushNotification) -> None:
    """Send a push notification synchronously."""
