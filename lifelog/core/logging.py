import logging
import logging.handlers
import sys
import time
import traceback
from pathlib import Path
from types import TracebackType

from lifelog.config import Settings

LOG_LINE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers owned by the server that would otherwise keep their own handlers.
_SERVER_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi")
# The Google client libraries are chatty at debug level.
_QUIET_LOGGERS = ("google", "google.auth", "urllib3", "grpc")

_initialized_path: Path | None = None
_initialized = False


class TruncatedFormatter(logging.Formatter):
  """Keep the first and last frames of a traceback so stdout stays readable in Cloud Logging."""

  keep_tail = 5

  def formatException(self, ei: tuple[type[BaseException] | None, BaseException | None, TracebackType | None]) -> str:  # noqa: N802
    lines = traceback.format_exception(*ei)
    if len(lines) <= self.keep_tail + 1:
      return "".join(lines)
    return "".join([lines[0], "    ...\n", *lines[-self.keep_tail :]])


def _backup_name(default_name: str) -> str:
  """Name backups letters.log-1 instead of letters.log.1."""
  stem, _, suffix = default_name.rpartition(".")
  return f"{stem}-{suffix}" if stem and suffix.isdigit() else default_name


def _stream_handler() -> logging.Handler:
  handler = logging.StreamHandler(sys.stdout)
  handler.setFormatter(TruncatedFormatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return handler


def _file_handler(settings: Settings) -> tuple[logging.Handler, Path] | None:
  """Rotating file handler, or None when file logging is switched off."""
  if not settings.log_dir:
    return None

  log_dir = Path(settings.log_dir).resolve()
  log_path = log_dir / f"lifelog_letters_{time.strftime('%Y%m%d_%H%M%S')}.log"
  try:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path.touch(exist_ok=True)
  except OSError as exc:
    raise RuntimeError(f"Cannot write log file at {log_path}: {exc}") from exc

  handler = logging.handlers.RotatingFileHandler(log_path, encoding="utf-8", maxBytes=settings.log_max_bytes, backupCount=settings.log_backup_count)
  handler.namer = _backup_name
  handler.setFormatter(logging.Formatter(LOG_LINE_FORMAT, datefmt=LOG_DATE_FORMAT))
  return handler, log_path


def setup_logging(settings: Settings) -> Path | None:
  """Route the root logger and the server loggers to the same handlers; return the log file, if any."""
  handlers = [_stream_handler()]
  log_path = None
  file_logging = _file_handler(settings)
  if file_logging is not None:
    file_handler, log_path = file_logging
    handlers.append(file_handler)

  logging.basicConfig(level=logging.DEBUG if settings.debug else logging.INFO, handlers=handlers, force=True)
  for name in _SERVER_LOGGERS:
    server_logger = logging.getLogger(name)
    server_logger.handlers = list(handlers)
    server_logger.propagate = False
  for name in _QUIET_LOGGERS:
    logging.getLogger(name).setLevel(logging.WARNING)
  return log_path


def initialize_logging(settings: Settings) -> None:
  """Configure logging for the process; later calls are no-ops."""
  global _initialized, _initialized_path
  if _initialized:
    return
  _initialized_path = setup_logging(settings)
  _initialized = True

  logger = logging.getLogger("lifelog.core.logging")
  logger.info("Logging initialized. file=%s", _initialized_path or "disabled")
  logger.info("Delivery thresholds: inactivity=%sd warning_window=%sd warning_interval=%sh", settings.inactivity_threshold_days, settings.warning_window_days, settings.warning_interval_hours)
