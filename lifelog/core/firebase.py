import logging
import os

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.cloud.firestore import AsyncClient

from lifelog.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _app_options(settings: Settings) -> dict[str, str] | None:
  if settings.firebase_project_id:
    return {"projectId": settings.firebase_project_id}
  return None


def initialize_firebase(settings: Settings | None = None) -> None:
  """Initialize the default Firebase app once per process.

  A service-account file is used when configured; otherwise Application Default Credentials (the
  Cloud Run service identity, or `gcloud auth application-default login` locally). Failures are
  logged so the app still starts and answers /health; trigger calls then fail with a clear error.
  """
  if firebase_admin._apps:
    return

  settings = settings or get_settings()
  try:
    cred = credentials.Certificate(settings.firebase_service_account_json_path) if settings.firebase_service_account_json_path else None
    firebase_admin.initialize_app(cred, _app_options(settings))
  except Exception as exc:  # noqa: BLE001
    logger.error("Firebase Admin SDK initialization failed: %s", exc)
    return

  emulator = os.getenv("FIRESTORE_EMULATOR_HOST")
  if emulator:
    logger.warning("Firestore emulator in use at %s", emulator)
  logger.info("Firebase Admin SDK initialized project=%s", settings.firebase_project_id or "<from environment>")


def get_firestore_client() -> AsyncClient | None:
  """Async Firestore client for the default app, initializing Firebase on first use."""
  initialize_firebase()
  try:
    return firestore_async.client()
  except Exception as exc:  # noqa: BLE001
    logger.error("Firestore client unavailable: %s", exc)
    return None
