"""Push notification delivery implementations."""

from __future__ import annotations

import logging

from firebase_admin import exceptions as firebase_exceptions
from firebase_admin import messaging

from lifelog.notifications.contracts import InvalidPushTokenError, PushNotification, PushSender, PushTransportError

logger = logging.getLogger(__name__)


class FcmPushSender(PushSender):
  """Firebase Cloud Messaging sender for iOS devices registered by the app."""

  def __init__(self, *, dry_run: bool = False) -> None:
    self._dry_run = dry_run

  def send(self, notification: PushNotification) -> None:
    """Hand one message to FCM, translating provider errors."""
    message = build_message(notification)
    try:
      message_id = messaging.send(message, dry_run=self._dry_run)
    except (messaging.UnregisteredError, messaging.SenderIdMismatchError) as exc:
      raise InvalidPushTokenError(f"Push token rejected by FCM ({exc.code})") from exc
    except firebase_exceptions.FirebaseError as exc:
      raise PushTransportError(f"FCM delivery failed ({exc.code}): {exc}") from exc
    logger.debug("FCM accepted message_id=%s", message_id)


class NullPushSender(PushSender):
  """No-op push sender used when push notifications are disabled."""

  def send(self, notification: PushNotification) -> None:
    """Drop the notification while recording a debug log."""
    logger.debug("Push notifications disabled; dropping push type=%s", notification.data.get("type"))


def build_message(notification: PushNotification) -> messaging.Message:
  """Build the FCM message with APNs hints the iOS client expects."""
  aps = messaging.Aps(sound=notification.sound, badge=notification.badge)
  return messaging.Message(
    token=notification.token,
    notification=messaging.Notification(title=notification.title, body=notification.body),
    data=dict(notification.data),
    apns=messaging.APNSConfig(payload=messaging.APNSPayload(aps=aps)),
  )
