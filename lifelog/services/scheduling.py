"""Pick delivery dates for letters created with a random delivery condition."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime, timedelta

from lifelog.schema.letters import DeliveryCondition, utc_now
from lifelog.storage.contracts import LetterRepository

logger = logging.getLogger(__name__)


class RandomDeliveryScheduler:
  """Write `scheduledDeliveryDate` once for new `random` letters."""

  def __init__(self, *, letter_repo: LetterRepository, min_offset: timedelta = timedelta(days=1), max_offset: timedelta = timedelta(days=365 * 3), rng: random.Random | None = None, clock: Callable[[], datetime] = utc_now) -> None:
    self._letter_repo = letter_repo
    self._min_offset = min_offset
    self._max_offset = max_offset
    self._rng = rng or random.Random()
    self._clock = clock

  async def schedule(self, letter_id: str, now: datetime | None = None) -> datetime | None:
    """Return the scheduled date, or None when the letter needs no scheduling."""
    now = now or self._clock()
    letter = await self._letter_repo.get(letter_id)
    if letter is None:
      logger.info("Letter %s not found; nothing to schedule.", letter_id)
      return None

    if letter.delivery_condition is not DeliveryCondition.RANDOM or not letter.is_pending:
      return None

    # Event delivery is at-least-once; keep the first draw.
    if letter.scheduled_delivery_date is not None:
      logger.info("Letter %s already scheduled for %s", letter_id, letter.scheduled_delivery_date.isoformat())
      return None

    start = letter.random_start_date or now + self._min_offset
    end = letter.random_end_date or now + self._max_offset
    scheduled = start if end <= start else start + (end - start) * self._rng.random()

    await self._letter_repo.update(letter_id, {"scheduledDeliveryDate": scheduled})
    logger.info("Random delivery scheduled: %s -> %s", letter_id, scheduled.isoformat())
    return scheduled
