"""Scheduled scans over letters awaiting delivery."""

from __future__ import annotations

import logging
import math
from collections.abc import AsyncIterator, Callable
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum

from lifelog.schema.letters import DeliveryCondition, Letter, utc_now
from lifelog.services.dispatch import DeliveryDispatcher, WarningDispatcher
from lifelog.storage.contracts import LetterRepository, LetterWriteError, UserRepository

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


class InactivityAction(str, Enum):
  NONE = "none"
  WARN = "warn"
  DELIVER = "deliver"


@dataclass(frozen=True)
class InactivityClassification:
  action: InactivityAction
  days_remaining: int | None = None


def classify_inactivity(elapsed: timedelta, *, threshold: timedelta, warning_window: timedelta) -> InactivityClassification:
  """Decide what an inactivity of `elapsed` means for a letter with `threshold`.

  Inside the warning window the remaining time is rounded up to whole days, so 2.5 days left is
  reported as 3 and the value is always at least 1.
  """
  if elapsed >= threshold:
    return InactivityClassification(InactivityAction.DELIVER)
  if elapsed >= threshold - warning_window:
    days_remaining = max(0, math.ceil((threshold - elapsed) / _ONE_DAY))
    return InactivityClassification(InactivityAction.WARN, days_remaining=days_remaining)
  return InactivityClassification(InactivityAction.NONE)


@dataclass
class ScanReport:
  """Counts for one scan run; failures are only visible here and in logs."""

  scanned: int = 0
  delivered: int = 0
  warned: int = 0
  skipped: int = 0
  failed: int = 0

  def to_dict(self) -> dict[str, int]:
    return asdict(self)


class _PendingLetterScanner:
  """Iterate letters awaiting delivery once, isolating failures per letter."""

  name = "scan"

  def __init__(self, *, letter_repo: LetterRepository, delivery: DeliveryDispatcher, clock: Callable[[], datetime] = utc_now) -> None:
    self._letter_repo = letter_repo
    self._delivery = delivery
    self._clock = clock

  def _letters(self, now: datetime) -> AsyncIterator[Letter]:
    return self._letter_repo.query_pending()

  def _accepts(self, letter: Letter) -> bool:
    raise NotImplementedError

  async def _process(self, letter: Letter, *, now: datetime, report: ScanReport) -> None:
    raise NotImplementedError

  async def scan(self, now: datetime | None = None) -> ScanReport:
    """Run one pass and return its counts. Never raises."""
    now = now or self._clock()
    report = ScanReport()
    logger.info("%s started at %s", self.name, now.isoformat())

    try:
      async for letter in self._letters(now):
        if not letter.awaits_delivery:
          continue
        if letter.delivery_condition is None:
          logger.warning("%s: letter %s has an unknown delivery condition; it is never delivered automatically.", self.name, letter.id)
          continue
        if not self._accepts(letter):
          continue
        report.scanned += 1
        try:
          await self._process(letter, now=now, report=report)
        except LetterWriteError as exc:
          report.failed += 1
          logger.error("%s: write failed for letter %s; left undelivered for the next run: %s", self.name, letter.id, exc)
        except Exception as exc:  # noqa: BLE001
          report.failed += 1
          logger.error("%s: unexpected failure for letter %s: %s", self.name, letter.id, exc, exc_info=True)
    except Exception as exc:  # noqa: BLE001
      logger.error("%s: letter query failed; ending early: %s", self.name, exc, exc_info=True)

    logger.info("%s finished: %s", self.name, report.to_dict())
    return report

  async def _deliver(self, letter: Letter, *, report: ScanReport) -> None:
    if await self._delivery.deliver(letter.id, letter=letter):
      report.delivered += 1
    else:
      report.skipped += 1


class InactivityScanner(_PendingLetterScanner):
  """Deliver `lastLogin` letters whose sender has been inactive too long, warning them first."""

  name = "inactivity scan"

  def __init__(
    self,
    *,
    letter_repo: LetterRepository,
    user_repo: UserRepository,
    delivery: DeliveryDispatcher,
    warning: WarningDispatcher,
    threshold: timedelta,
    warning_window: timedelta,
    warning_interval: timedelta = _ONE_DAY,
    clock: Callable[[], datetime] = utc_now,
  ) -> None:
    super().__init__(letter_repo=letter_repo, delivery=delivery, clock=clock)
    self._user_repo = user_repo
    self._warning = warning
    self._threshold = threshold
    self._warning_window = warning_window
    self._warning_interval = warning_interval

  def _accepts(self, letter: Letter) -> bool:
    return letter.delivery_condition is DeliveryCondition.LAST_LOGIN

  def threshold_for(self, letter: Letter) -> timedelta:
    if letter.last_login_days:
      return timedelta(days=letter.last_login_days)
    return self._threshold

  async def _process(self, letter: Letter, *, now: datetime, report: ScanReport) -> None:
    owner = await self._user_repo.get(letter.sender_id)
    if owner is None or owner.last_active_at is None:
      report.skipped += 1
      logger.info("Letter %s skipped; sender %s has no activity record.", letter.id, letter.sender_id)
      return

    threshold = self.threshold_for(letter)
    # Short thresholds shrink the window so it never starts before zero.
    warning_window = min(self._warning_window, threshold)
    elapsed = now - owner.last_active_at
    decision = classify_inactivity(elapsed, threshold=threshold, warning_window=warning_window)

    if decision.action is InactivityAction.DELIVER:
      await self._deliver(letter, report=report)
      return

    if decision.action is InactivityAction.WARN:
      if letter.last_warned_at is not None and now - letter.last_warned_at < self._warning_interval:
        report.skipped += 1
        logger.debug("Letter %s already warned at %s", letter.id, letter.last_warned_at.isoformat())
        return
      outcome = await self._warning.warn(letter, decision.days_remaining or 0)
      logger.info("Delivery warning for letter %s: %s days remaining, push=%s", letter.id, decision.days_remaining, outcome.value)
      try:
        await self._letter_repo.update(letter.id, {"lastWarnedAt": now})
      except LetterWriteError:
        logger.warning("Letter %s: lastWarnedAt not recorded; the next run may warn again.", letter.id)
        raise
      report.warned += 1
      return

    report.skipped += 1


class DueDateScanner(_PendingLetterScanner):
  """Deliver `fixed` and `random` letters whose delivery date has passed."""

  name = "due date scan"

  def _letters(self, now: datetime) -> AsyncIterator[Letter]:
    return self._letter_repo.query_due(now)

  def _accepts(self, letter: Letter) -> bool:
    return letter.delivery_condition in (DeliveryCondition.FIXED, DeliveryCondition.RANDOM)

  async def _process(self, letter: Letter, *, now: datetime, report: ScanReport) -> None:
    due = letter.delivery_date if letter.delivery_condition is DeliveryCondition.FIXED else letter.scheduled_delivery_date
    if due is None or due > now:
      report.skipped += 1
      return
    await self._deliver(letter, report=report)
