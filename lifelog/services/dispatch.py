"""Delivery and warning dispatch for individual letters."""

from __future__ import annotations

import logging

from lifelog.notifications.contracts import NotificationKind, PushOutcome
from lifelog.notifications.gateway import PushNotificationGateway
from lifelog.schema.letters import Letter
from lifelog.storage.contracts import LetterRepository

logger = logging.getLogger(__name__)


class DeliveryDispatcher:
  """Mark a letter delivered, then tell the recipient."""

  def __init__(self, *, letter_repo: LetterRepository, gateway: PushNotificationGateway) -> None:
    self._letter_repo = letter_repo
    self._gateway = gateway

  async def deliver(self, letter_id: str, *, letter: Letter | None = None) -> bool:
    """Deliver `letter_id` and return whether this call performed the transition.

    The status write always lands before the notification. `LetterWriteError` propagates so the
    caller can leave the letter for the next scan.
    """
    if letter is None:
      letter = await self._letter_repo.get(letter_id)
      if letter is None:
        logger.info("Letter %s not found; nothing to deliver.", letter_id)
        return False

    # Only the invocation that wins the conditional write sends the notification.
    if not await self._letter_repo.mark_delivered(letter_id):
      return False

    logger.info("Letter delivered: %s", letter_id)
    await self._gateway.send(user_id=letter.recipient_id, letter_id=letter_id, kind=NotificationKind.LETTER_DELIVERED, context={"sender_id": letter.sender_id})
    return True


class WarningDispatcher:
  """Warn a letter's owner that delivery is close."""

  def __init__(self, *, gateway: PushNotificationGateway) -> None:
    self._gateway = gateway

  async def warn(self, letter: Letter, days_remaining: int) -> PushOutcome:
    if days_remaining < 0:
      raise ValueError("days_remaining must not be negative")
    return await self._gateway.send(user_id=letter.sender_id, letter_id=letter.id, kind=NotificationKind.DELIVERY_WARNING, context={"days_remaining": days_remaining})
