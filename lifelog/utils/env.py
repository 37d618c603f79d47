"""Minimal .env support for running the service and scripts locally."""

from __future__ import annotations

import os
from pathlib import Path

_QUOTES = ('"', "'")


def default_env_path() -> Path:
  """`LIFELOG_ENV_FILE` if set, else `.env` next to the `lifelog` package."""
  explicit = os.getenv("LIFELOG_ENV_FILE")
  if explicit:
    return Path(explicit).expanduser()
  return Path(__file__).resolve().parents[2] / ".env"


def parse_env_line(raw_line: str) -> tuple[str, str] | None:
  """Parse `KEY=value`, `export KEY=value` and quoted values; None for blanks and comments."""
  line = raw_line.strip()
  if not line or line.startswith("#"):
    return None
  line = line.removeprefix("export ").lstrip()
  key, sep, value = line.partition("=")
  key = key.strip()
  if not sep or not key:
    return None

  value = value.strip()
  if len(value) >= 2 and value[0] in _QUOTES and value[-1] == value[0]:
    return key, value[1:-1]
  # Unquoted values may carry a trailing " # comment".
  return key, value.split(" #", 1)[0].rstrip()


def load_env_file(path: Path, *, override: bool = False) -> list[str]:
  """Apply a .env file to `os.environ` and return the keys that were set.

  Real environment variables win unless `override` is true, so Cloud Run configuration is never
  shadowed by a stray file in the image.
  """
  if not path.is_file():
    return []

  applied: list[str] = []
  for raw_line in path.read_text(encoding="utf-8").splitlines():
    parsed = parse_env_line(raw_line)
    if parsed is None:
      continue
    key, value = parsed
    if key in os.environ and not override:
      continue
    os.environ[key] = value
    applied.append(key)
  return applied
