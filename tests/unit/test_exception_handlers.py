"""Unit tests for API exception sanitization behavior."""

from __future__ import annotations

from lifelog.core.exceptions import _sanitize_validation_errors


def test_sanitize_validation_errors_removes_input_and_serializes_exception_ctx() -> None:
  """Validation errors stay JSON-serializable and never echo the request payload."""
  errors = [{"type": "value_error", "loc": ("body", "letterId"), "msg": "Value error, bad id", "input": {"letterId": "x"}, "ctx": {"error": ValueError("bad id"), "input": {"letterId": "x"}}}]
  sanitized = _sanitize_validation_errors(errors)
  assert "input" not in sanitized[0]
  assert sanitized[0]["ctx"]["error"] == "ValueError: bad id"
  assert "input" not in sanitized[0]["ctx"]
  assert sanitized[0]["loc"] == ["body", "letterId"]
