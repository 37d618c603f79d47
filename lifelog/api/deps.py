"""Shared FastAPI dependencies for the internal trigger endpoints."""

from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from lifelog.config import Settings, get_settings
from lifelog.services.factory import LetterServices, build_firestore_letter_services

logger = logging.getLogger(__name__)


def require_task_secret(
  settings: Annotated[Settings, Depends(get_settings)], authorization: str | None = Header(default=None), x_lifelog_task_secret: str | None = Header(default=None)
) -> None:
  """Reject callers that do not present the shared task secret."""
  # Without a configured secret nothing may trigger deliveries.
  if not settings.task_secret:
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Task authentication is not configured.")
  # Cloud Scheduler OIDC uses Authorization for Cloud Run invoker auth, so check the dedicated header first.
  # Bytes, because compare_digest rejects non-ASCII str and headers are decoded as latin-1.
  shared_secret_valid = secrets.compare_digest((x_lifelog_task_secret or "").encode(), settings.task_secret.encode())
  bearer_valid = secrets.compare_digest((authorization or "").encode(), f"Bearer {settings.task_secret}".encode())
  if not shared_secret_valid and not bearer_valid:
    logger.warning("Unauthorized access attempt to an internal trigger endpoint")
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid task secret.")


@lru_cache(maxsize=1)
def _firestore_services(settings: Settings) -> LetterServices:
  return build_firestore_letter_services(settings)


def get_letter_services(settings: Annotated[Settings, Depends(get_settings)]) -> LetterServices:
  """Return the process-wide Firestore-backed services."""
  return _firestore_services(settings)
