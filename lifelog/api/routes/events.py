"""Document event hooks forwarded by Eventarc."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, ConfigDict, Field

from lifelog.api.deps import get_letter_services, require_task_secret
from lifelog.services.factory import LetterServices

router = APIRouter(prefix="/events", tags=["events"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


class LetterCreatedEvent(BaseModel):
  model_config = ConfigDict(populate_by_name=True)

  letter_id: str = Field(alias="letterId", min_length=1)


@router.post("/letter-created", status_code=status.HTTP_200_OK)
async def letter_created(event: LetterCreatedEvent, services: Annotated[LetterServices, Depends(get_letter_services)]) -> dict[str, str | None]:
  """Pick a delivery date for new random-condition letters.

  A `StorageError` surfaces as 503 through the app's exception handlers, which makes Eventarc
  redeliver the event; scheduling is idempotent so the retry is safe.
  """
  logger.info("Received letter-created event for %s", event.letter_id)
  scheduled = await services.random_scheduler.schedule(event.letter_id)
  return {"letterId": event.letter_id, "scheduledDeliveryDate": scheduled.isoformat() if scheduled else None}
