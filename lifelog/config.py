"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache

from lifelog.utils.env import default_env_path, load_env_file

load_env_file(default_env_path(), override=False)


@dataclass(frozen=True)
class Settings:
  """Typed settings for the letters service."""

  environment: str
  debug: bool
  log_dir: str | None
  log_max_bytes: int
  log_backup_count: int
  firebase_project_id: str | None
  firebase_service_account_json_path: str | None
  letters_collection: str
  users_collection: str
  inactivity_threshold_days: int
  warning_window_days: int
  warning_interval_hours: int
  random_delivery_min_days: int
  random_delivery_max_days: int
  push_notifications_enabled: bool
  task_secret: str | None

  @property
  def inactivity_threshold(self) -> timedelta:
    return timedelta(days=self.inactivity_threshold_days)

  @property
  def warning_window(self) -> timedelta:
    return timedelta(days=self.warning_window_days)

  @property
  def warning_interval(self) -> timedelta:
    return timedelta(hours=self.warning_interval_hours)


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})


def _parse_bool(raw: str | None, *, default: bool = False) -> bool:
  if raw is None or not raw.strip():
    return default
  return raw.strip().lower() in _TRUE_VALUES


def _optional_str(raw: str | None) -> str | None:
  """Strip a raw value; blank means unset."""
  value = (raw or "").strip()
  return value or None


def _env_int(name: str, default: int, *, minimum: int) -> int:
  raw = os.getenv(name)
  try:
    value = int(raw) if raw is not None and raw.strip() else default
  except ValueError as exc:
    raise ValueError(f"{name} must be an integer, got {raw!r}.") from exc
  if value < minimum:
    raise ValueError(f"{name} must be at least {minimum}, got {value}.")
  return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
  """Read the environment once per process; raises ValueError on invalid values."""
  inactivity_threshold_days = _env_int("LIFELOG_INACTIVITY_THRESHOLD_DAYS", 7, minimum=1)
  # The warning window sits inside the threshold, so it must be strictly shorter.
  warning_window_days = _env_int("LIFELOG_WARNING_WINDOW_DAYS", 2, minimum=0)
  if warning_window_days >= inactivity_threshold_days:
    raise ValueError("LIFELOG_WARNING_WINDOW_DAYS must be less than LIFELOG_INACTIVITY_THRESHOLD_DAYS.")

  random_delivery_min_days = _env_int("LIFELOG_RANDOM_DELIVERY_MIN_DAYS", 1, minimum=0)
  random_delivery_max_days = _env_int("LIFELOG_RANDOM_DELIVERY_MAX_DAYS", 1095, minimum=0)
  if random_delivery_max_days < random_delivery_min_days:
    raise ValueError("LIFELOG_RANDOM_DELIVERY_MAX_DAYS must not be less than LIFELOG_RANDOM_DELIVERY_MIN_DAYS.")

  return Settings(
    environment=os.getenv("LIFELOG_ENV", "development").strip().lower(),
    debug=_parse_bool(os.getenv("LIFELOG_DEBUG")),
    log_dir=_optional_str(os.getenv("LIFELOG_LOG_DIR", "./logs")),
    log_max_bytes=_env_int("LIFELOG_LOG_MAX_BYTES", 5 * 1024 * 1024, minimum=1),
    log_backup_count=_env_int("LIFELOG_LOG_BACKUP_COUNT", 10, minimum=0),
    firebase_project_id=_optional_str(os.getenv("FIREBASE_PROJECT_ID")),
    firebase_service_account_json_path=_optional_str(os.getenv("FIREBASE_SERVICE_ACCOUNT_JSON_PATH")),
    letters_collection=_optional_str(os.getenv("LIFELOG_LETTERS_COLLECTION")) or "letters",
    users_collection=_optional_str(os.getenv("LIFELOG_USERS_COLLECTION")) or "users",
    inactivity_threshold_days=inactivity_threshold_days,
    warning_window_days=warning_window_days,
    warning_interval_hours=_env_int("LIFELOG_WARNING_INTERVAL_HOURS", 24, minimum=1),
    random_delivery_min_days=random_delivery_min_days,
    random_delivery_max_days=random_delivery_max_days,
    push_notifications_enabled=_parse_bool(os.getenv("LIFELOG_PUSH_NOTIFICATIONS_ENABLED"), default=True),
    task_secret=_optional_str(os.getenv("LIFELOG_TASK_SECRET")),
  )
