from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status

from lifelog.api.deps import get_letter_services, require_task_secret
from lifelog.services.factory import LetterServices

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(require_task_secret)])
logger = logging.getLogger(__name__)


@router.post("/check-inactivity", status_code=status.HTTP_200_OK)
async def check_inactivity(services: Annotated[LetterServices, Depends(get_letter_services)]) -> dict[str, int]:
  """Cloud Scheduler target: deliver or warn on lastLogin letters."""
  report = await services.inactivity_scanner.scan()
  return report.to_dict()


@router.post("/check-due-deliveries", status_code=status.HTTP_200_OK)
async def check_due_deliveries(services: Annotated[LetterServices, Depends(get_letter_services)]) -> dict[str, int]:
  """Cloud Scheduler target: deliver fixed and random letters whose date has passed."""
  report = await services.due_date_scanner.scan()
  return report.to_dict()
