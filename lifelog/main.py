from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError

from lifelog.api.routes import events, tasks
from lifelog.core.exceptions import global_exception_handler, http_exception_handler, request_validation_exception_handler, storage_exception_handler
from lifelog.core.lifespan import lifespan
from lifelog.core.middleware import RequestLoggingMiddleware
from lifelog.storage.contracts import StorageError

# Internal-only service: no public docs surface.
app = FastAPI(title="Lifelog Letters", version="0.1.0", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)

app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(StorageError, storage_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)

app.add_middleware(RequestLoggingMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Liveness check for Cloud Run."""
  return {"status": "ok", "version": app.version}


app.include_router(tasks.router, prefix="/internal")
app.include_router(events.router, prefix="/internal")
