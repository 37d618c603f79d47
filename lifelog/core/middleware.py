import logging
import time
import uuid
from typing import Any

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("lifelog.core.middleware")

# Headers set by the callers of the internal endpoints, logged so a run can be traced back to its trigger.
_TRIGGER_HEADERS = ("x-cloudscheduler-jobname", "ce-id", "ce-type")


def _trigger_label(headers: Headers) -> str:
  parts = [f"{name}={headers[name]}" for name in _TRIGGER_HEADERS if name in headers]
  return " ".join(parts) or "trigger=unknown"


class RequestLoggingMiddleware:
  """Give every HTTP request an id and log who triggered it, its status and its latency.

  An incoming `x-request-id` is reused so retries from Cloud Scheduler or Eventarc keep the same id
  across attempts. Bodies are never logged.
  """

  def __init__(self, app: ASGIApp) -> None:
    self.app = app

  async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
    if scope["type"] != "http":
      await self.app(scope, receive, send)
      return

    headers = Headers(scope=scope)
    request_id = headers.get("x-request-id") or uuid.uuid4().hex
    scope.setdefault("state", {})["request_id"] = request_id

    started = time.perf_counter()
    logger.info("Request %s %s request_id=%s %s", scope.get("method", "?"), scope.get("path", ""), request_id, _trigger_label(headers))
    response_status: dict[str, Any] = {"code": None}

    async def send_with_request_id(message: Message) -> None:
      if message["type"] == "http.response.start":
        response_status["code"] = message.get("status")
        MutableHeaders(scope=message).setdefault("x-request-id", request_id)
      await send(message)

    try:
      await self.app(scope, receive, send_with_request_id)
    finally:
      elapsed_ms = (time.perf_counter() - started) * 1000
      logger.info("Response request_id=%s status=%s elapsed_ms=%.1f", request_id, response_status["code"] or 500, elapsed_ms)
