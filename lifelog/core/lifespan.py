import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from lifelog.config import get_settings
from lifelog.core.firebase import initialize_firebase
from lifelog.core.logging import initialize_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
  """Set up logging and Firebase once uvicorn has started."""
  settings = get_settings()
  logger = logging.getLogger("lifelog.core.lifespan")

  try:
    initialize_logging(settings)
    logger.info("Startup complete - logging verified. environment=%s", settings.environment)
  except Exception:  # noqa: BLE001
    # Fall back to uvicorn's handlers rather than refusing to serve.
    logger.warning("Initial logging setup failed; continuing with default handlers.", exc_info=True)

  if not settings.task_secret:
    logger.warning("LIFELOG_TASK_SECRET is not set; internal trigger endpoints will refuse every call.")

  # Initialize Firebase before handling requests.
  initialize_firebase(settings)
  yield
