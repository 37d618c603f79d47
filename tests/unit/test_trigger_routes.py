from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from lifelog.api.deps import get_letter_services
from lifelog.config import get_settings
from lifelog.main import app
from lifelog.schema.letters import utc_now
from lifelog.services.factory import build_letter_services
from tests.fakes import letter_doc, user_doc

AUTH = {"x-lifelog-task-secret": "test-task-secret"}


@pytest.fixture
async def client(settings, letter_repo, user_repo, push_sender):
  services = build_letter_services(settings, letter_repo=letter_repo, user_repo=user_repo, push_sender=push_sender)
  app.dependency_overrides[get_settings] = lambda: settings
  app.dependency_overrides[get_letter_services] = lambda: services
  async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
    yield ac
  app.dependency_overrides.clear()


@pytest.mark.anyio
async def test_health(client):
  response = await client.get("/health")

  assert response.status_code == 200
  assert response.json()["status"] == "ok"


@pytest.mark.anyio
async def test_trigger_requires_secret(client, letter_repo):
  response = await client.post("/internal/tasks/check-inactivity")

  assert response.status_code == 403
  assert response.json()["detail"] == "Invalid task secret."


@pytest.mark.anyio
async def test_trigger_refused_when_secret_unconfigured(client, settings):
  app.dependency_overrides[get_settings] = lambda: replace(settings, task_secret=None)

  response = await client.post("/internal/tasks/check-due-deliveries", headers=AUTH)

  assert response.status_code == 403


@pytest.mark.anyio
async def test_inactivity_trigger_returns_report(client, letter_repo, user_repo):
  user_repo.docs["sender-1"] = user_doc(last_active_at=utc_now() - timedelta(days=45))
  user_repo.docs["recipient-1"] = user_doc(token="recipient-token")
  letter_repo.docs["letter-1"] = letter_doc()

  response = await client.post("/internal/tasks/check-inactivity", headers={"authorization": "Bearer test-task-secret"})

  assert response.status_code == 200
  assert response.json() == {"scanned": 1, "delivered": 1, "warned": 0, "skipped": 0, "failed": 0}
  assert response.headers["x-request-id"]


@pytest.mark.anyio
async def test_due_trigger_reports_failures_as_success(client, letter_repo):
  letter_repo.docs["letter-1"] = letter_doc(deliveryCondition="fixed", deliveryDate=utc_now() - timedelta(days=1))
  letter_repo.fail_writes_for.add("letter-1")

  response = await client.post("/internal/tasks/check-due-deliveries", headers=AUTH)

  assert response.status_code == 200
  assert response.json()["failed"] == 1


@pytest.mark.anyio
async def test_letter_created_schedules_random_delivery(client, letter_repo):
  letter_repo.docs["letter-1"] = letter_doc(deliveryCondition="random")

  response = await client.post("/internal/events/letter-created", json={"letterId": "letter-1"}, headers=AUTH)

  assert response.status_code == 200
  body = response.json()
  assert body["letterId"] == "letter-1"
  assert body["scheduledDeliveryDate"] is not None
  assert "scheduledDeliveryDate" in letter_repo.docs["letter-1"]


@pytest.mark.anyio
async def test_letter_created_for_other_conditions_is_a_no_op(client, letter_repo):
  letter_repo.docs["letter-1"] = letter_doc()

  response = await client.post("/internal/events/letter-created", json={"letterId": "letter-1"}, headers=AUTH)

  assert response.status_code == 200
  assert response.json()["scheduledDeliveryDate"] is None


@pytest.mark.anyio
async def test_letter_created_write_failure_asks_for_redelivery(client, letter_repo):
  letter_repo.docs["letter-1"] = letter_doc(deliveryCondition="random")
  letter_repo.fail_writes_for.add("letter-1")

  response = await client.post("/internal/events/letter-created", json={"letterId": "letter-1"}, headers=AUTH)

  assert response.status_code == 503
  assert response.json()["detail"] == "Letter store unavailable."


@pytest.mark.anyio
async def test_letter_created_validates_payload(client):
  response = await client.post("/internal/events/letter-created", json={"letterId": ""}, headers=AUTH)

  assert response.status_code == 422


@pytest.mark.anyio
async def test_incoming_request_id_is_reused(client):
  response = await client.post("/internal/tasks/check-due-deliveries", headers={**AUTH, "x-request-id": "scheduler-attempt-1"})

  assert response.status_code == 200
  assert response.headers["x-request-id"] == "scheduler-attempt-1"


@pytest.mark.anyio
async def test_non_ascii_secret_header_is_rejected_not_crashed(client):
  response = await client.post("/internal/tasks/check-inactivity", headers=[("x-lifelog-task-secret", "tést-secret".encode("latin-1"))])

  assert response.status_code == 403
  assert response.json()["detail"] == "Invalid task secret."
