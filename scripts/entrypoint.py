import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("entrypoint")


def main() -> None:
  """Hand the process over to uvicorn serving the task endpoints."""
  port = os.getenv("PORT", "8080")
  logger.info("Starting lifelog letters service on port %s", port)
  # exec keeps uvicorn as PID 1 so Cloud Run's SIGTERM reaches it directly.
  os.execvp("uvicorn", ["uvicorn", "lifelog.main:app", "--host", "0.0.0.0", "--port", port, "--no-server-header"])


if __name__ == "__main__":
  main()
