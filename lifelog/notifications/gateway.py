"""Push notification gateway used by the letter dispatchers."""

from __future__ import annotations

import logging
from typing import Any

from starlette.concurrency import run_in_threadpool

from lifelog.notifications.contracts import InvalidPushTokenError, NotificationKind, NotificationProviderError, PushNotification, PushOutcome, PushSender
from lifelog.notifications.template_renderer import render_push_content
from lifelog.schema.letters import DEFAULT_SENDER_EMOJI, DEFAULT_SENDER_NAME
from lifelog.storage.contracts import LetterRepository, UserRepository

logger = logging.getLogger(__name__)


class PushNotificationGateway:
  """Resolve a user's device token, render the payload, and hand it to the push provider.

  `send` never raises. Every branch maps to a `PushOutcome` so callers (and tests) can tell the
  expected "no token registered" case apart from provider failures, while the orchestration keeps
  treating notifications as best-effort.
  """

  def __init__(self, *, letter_repo: LetterRepository, user_repo: UserRepository, push_sender: PushSender) -> None:
    self._letter_repo = letter_repo
    self._user_repo = user_repo
    self._push_sender = push_sender

  async def send(self, *, user_id: str, letter_id: str, kind: NotificationKind, context: dict[str, Any] | None = None) -> PushOutcome:
    """Send one notification of `kind` about `letter_id` to `user_id`."""
    try:
      user = await self._user_repo.get(user_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Push recipient lookup failed user_id=%s letter_id=%s error=%s", user_id, letter_id, exc, exc_info=True)
      return PushOutcome.LOOKUP_FAILED

    if user is None:
      logger.info("Push skipped; user not found user_id=%s letter_id=%s kind=%s", user_id, letter_id, kind.value)
      return PushOutcome.USER_NOT_FOUND

    if not user.fcm_token:
      logger.info("Push skipped; no FCM token user_id=%s letter_id=%s kind=%s", user_id, letter_id, kind.value)
      return PushOutcome.NO_TOKEN

    placeholders = dict(context or {})
    if kind is NotificationKind.LETTER_DELIVERED:
      placeholders.update(await self._sender_placeholders(letter_id=letter_id, sender_id=placeholders.pop("sender_id", None)))

    try:
      rendered = render_push_content(kind=kind, letter_id=letter_id, placeholders=placeholders)
    except ValueError as exc:
      logger.error("Push content render failed user_id=%s letter_id=%s kind=%s error=%s", user_id, letter_id, kind.value, exc)
      return PushOutcome.RENDER_FAILED

    notification = PushNotification(token=user.fcm_token, title=rendered.title, body=rendered.body, data=rendered.data, sound=rendered.sound, badge=rendered.badge)
    try:
      await run_in_threadpool(self._push_sender.send, notification)
    except InvalidPushTokenError as exc:
      logger.warning("Push token invalid user_id=%s letter_id=%s: %s", user_id, letter_id, exc)
      await self._forget_token(user_id)
      return PushOutcome.INVALID_TOKEN
    except NotificationProviderError as exc:
      logger.error("Push notification delivery failed (provider error) user_id=%s letter_id=%s: %s", user_id, letter_id, exc)
      return PushOutcome.TRANSPORT_FAILED
    except Exception as exc:  # noqa: BLE001
      logger.error("Push notification delivery failed user_id=%s letter_id=%s: %s", user_id, letter_id, exc, exc_info=True)
      return PushOutcome.TRANSPORT_FAILED

    logger.info("Push notification sent user_id=%s letter_id=%s kind=%s", user_id, letter_id, kind.value)
    return PushOutcome.SENT

  async def _sender_placeholders(self, *, letter_id: str, sender_id: str | None) -> dict[str, str]:
    """Look up the sender's display name and emoji, falling back to defaults."""
    name = DEFAULT_SENDER_NAME
    emoji = DEFAULT_SENDER_EMOJI
    try:
      if sender_id is None:
        letter = await self._letter_repo.get(letter_id)
        sender_id = letter.sender_id if letter is not None else None
      sender = await self._user_repo.get(sender_id) if sender_id else None
    except Exception as exc:  # noqa: BLE001
      logger.warning("Sender lookup failed letter_id=%s sender_id=%s; using defaults: %s", letter_id, sender_id, exc)
      sender = None

    if sender is not None:
      name = sender.display_name or name
      emoji = sender.emoji or emoji
    return {"sender_name": name, "sender_emoji": emoji}

  async def _forget_token(self, user_id: str) -> None:
    # Remove invalid tokens immediately to prevent repeated failed sends.
    try:
      await self._user_repo.clear_push_token(user_id)
    except Exception as exc:  # noqa: BLE001
      logger.error("Failed clearing invalid push token user_id=%s error=%s", user_id, exc, exc_info=True)
