import logging
from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lifelog.storage.contracts import StorageError

logger = logging.getLogger("uvicorn.error")


def _coerce_json_safe(value: Any) -> Any:
  """Reduce arbitrary values (exceptions included) to JSON primitives."""
  if value is None or isinstance(value, bool | int | float | str):
    return value
  if isinstance(value, dict):
    return {str(key): _coerce_json_safe(item) for key, item in value.items()}
  if isinstance(value, list | tuple | set):
    return [_coerce_json_safe(item) for item in value]
  if isinstance(value, BaseException):
    message = str(value)
    return f"{type(value).__name__}: {message}" if message else type(value).__name__
  return str(value)


def _sanitize_validation_errors(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
  """Drop raw request input from pydantic errors; letter ids are fine to echo, bodies are not."""
  sanitized: list[dict[str, Any]] = []
  for error in errors:
    scrubbed = {key: value for key, value in error.items() if key != "input"}
    if isinstance(scrubbed.get("ctx"), dict):
      scrubbed["ctx"] = {key: value for key, value in scrubbed["ctx"].items() if key != "input"}
    sanitized.append(_coerce_json_safe(scrubbed))
  return sanitized


def _respond(request: Request, status_code: int, detail: Any, headers: dict[str, str] | None = None) -> JSONResponse:
  """Error body shared by every handler; `requestId` matches the middleware's log lines."""
  request_id = getattr(request.state, "request_id", None)
  content: dict[str, Any] = {"detail": detail}
  if request_id:
    content["requestId"] = request_id
  return JSONResponse(status_code=status_code, content=content, headers=headers)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
  logger.error("Unhandled error request_id=%s path=%s error_type=%s", getattr(request.state, "request_id", None), request.url.path, type(exc).__name__, exc_info=exc)
  return _respond(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error")


async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
  """Answer store outages with 503 so Cloud Scheduler and Eventarc retry the trigger."""
  logger.error("Letter store unavailable request_id=%s path=%s: %s", getattr(request.state, "request_id", None), request.url.path, exc)
  return _respond(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Letter store unavailable.")


async def request_validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
  sanitized_errors = _sanitize_validation_errors(list(exc.errors()))
  logger.warning("Invalid trigger payload request_id=%s path=%s errors=%s", getattr(request.state, "request_id", None), request.url.path, sanitized_errors)
  return _respond(request, status.HTTP_422_UNPROCESSABLE_ENTITY, sanitized_errors)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
  """Keep 4xx details, hide 5xx details."""
  if exc.status_code >= 500:
    logger.error("HTTPException request_id=%s path=%s status_code=%s detail=%s", getattr(request.state, "request_id", None), request.url.path, exc.status_code, exc.detail)
    return _respond(request, exc.status_code, "Internal Server Error")
  return _respond(request, exc.status_code, exc.detail, headers=getattr(exc, "headers", None))
