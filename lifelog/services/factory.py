"""Factory helpers wiring the letter services from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from lifelog.config import Settings
from lifelog.core.firebase import get_firestore_client
from lifelog.notifications.contracts import PushSender
from lifelog.notifications.gateway import PushNotificationGateway
from lifelog.notifications.push_sender import FcmPushSender, NullPushSender
from lifelog.services.dispatch import DeliveryDispatcher, WarningDispatcher
from lifelog.services.scanner import DueDateScanner, InactivityScanner
from lifelog.services.scheduling import RandomDeliveryScheduler
from lifelog.storage.contracts import LetterRepository, UserRepository
from lifelog.storage.firestore_repo import FirestoreLetterRepository, FirestoreUserRepository


@dataclass(frozen=True)
class LetterServices:
  """Everything the trigger endpoints call into."""

  inactivity_scanner: InactivityScanner
  due_date_scanner: DueDateScanner
  random_scheduler: RandomDeliveryScheduler


def build_push_sender(settings: Settings) -> PushSender:
  """Pick the FCM sender unless push is switched off."""
  if settings.push_notifications_enabled:
    return FcmPushSender()
  return NullPushSender()


def build_letter_services(settings: Settings, *, letter_repo: LetterRepository, user_repo: UserRepository, push_sender: PushSender) -> LetterServices:
  """Construct the scanners and scheduler around explicit store/transport handles."""
  gateway = PushNotificationGateway(letter_repo=letter_repo, user_repo=user_repo, push_sender=push_sender)
  delivery = DeliveryDispatcher(letter_repo=letter_repo, gateway=gateway)
  warning = WarningDispatcher(gateway=gateway)
  return LetterServices(
    inactivity_scanner=InactivityScanner(
      letter_repo=letter_repo, user_repo=user_repo, delivery=delivery, warning=warning, threshold=settings.inactivity_threshold, warning_window=settings.warning_window, warning_interval=settings.warning_interval
    ),
    due_date_scanner=DueDateScanner(letter_repo=letter_repo, delivery=delivery),
    random_scheduler=RandomDeliveryScheduler(letter_repo=letter_repo, min_offset=timedelta(days=settings.random_delivery_min_days), max_offset=timedelta(days=settings.random_delivery_max_days)),
  )


def build_firestore_letter_services(settings: Settings) -> LetterServices:
  """Production wiring: Firestore stores and FCM transport."""
  client = get_firestore_client()
  if client is None:
    raise RuntimeError("Firestore client unavailable; check Firebase configuration.")
  letter_repo = FirestoreLetterRepository(client, collection=settings.letters_collection)
  user_repo = FirestoreUserRepository(client, collection=settings.users_collection)
  return build_letter_services(settings, letter_repo=letter_repo, user_repo=user_repo, push_sender=build_push_sender(settings))
