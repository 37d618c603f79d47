"""Run one letter scan against Firestore from the command line.

Useful against the Firestore emulator (set FIRESTORE_EMULATOR_HOST) or for a manual catch-up run
after a scheduler outage.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

# Ensure repo root is on sys.path so local imports resolve before site-packages.
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from lifelog.config import get_settings
from lifelog.core.logging import initialize_logging
from lifelog.services.factory import build_firestore_letter_services


def _parse_now(raw: str | None) -> datetime | None:
  if not raw:
    return None
  parsed = datetime.fromisoformat(raw)
  if parsed.tzinfo is None:
    parsed = parsed.replace(tzinfo=timezone.utc)
  return parsed


async def _run(scan: str, now: datetime | None) -> dict[str, int]:
  settings = get_settings()
  initialize_logging(settings)
  services = build_firestore_letter_services(settings)
  scanner = services.inactivity_scanner if scan == "inactivity" else services.due_date_scanner
  report = await scanner.scan(now)
  return report.to_dict()


def main() -> None:
  parser = argparse.ArgumentParser(description=__doc__)
  parser.add_argument("scan", choices=["inactivity", "due"], help="Which scan to run.")
  parser.add_argument("--now", default=None, help="ISO-8601 timestamp to evaluate against (default: current UTC time).")
  args = parser.parse_args()
  report = asyncio.run(_run(args.scan, _parse_now(args.now)))
  print(json.dumps(report))


if __name__ == "__main__":
  main()
