"""Push notification template rendering.

Titles and bodies are Japanese to match the app's locale. The `data` payload is what the iOS
client routes on when the user taps the notification, so its `type` values are part of the
app contract and must not change.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from lifelog.notifications.contracts import NotificationKind

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z0-9_]+)\s*\}\}")


@dataclass(frozen=True)
class PushTemplate:
  """Template metadata for one notification kind."""

  kind: NotificationKind
  title_template: str
  body_template: str
  data_type: str
  required_placeholders: frozenset[str]
  badge: int | None = None
  sound: str = "default"


TEMPLATES: dict[NotificationKind, PushTemplate] = {
  NotificationKind.LETTER_DELIVERED: PushTemplate(
    kind=NotificationKind.LETTER_DELIVERED, title_template="{{sender_emoji}} 手紙が届きました", body_template="{{sender_name}}さんからの手紙です", data_type="letter", required_placeholders=frozenset({"sender_name", "sender_emoji"}), badge=1
  ),
  NotificationKind.DELIVERY_WARNING: PushTemplate(
    kind=NotificationKind.DELIVERY_WARNING,
    title_template="⚠️ 手紙が配信されます",
    body_template="あと{{days_remaining}}日ログインがないと、大切な人への手紙が配信されます",
    data_type="delivery_warning",
    required_placeholders=frozenset({"days_remaining"}),
  ),
}


@dataclass(frozen=True)
class RenderedPush:
  title: str
  body: str
  data: dict[str, str]
  sound: str
  badge: int | None


def render_push_content(*, kind: NotificationKind, letter_id: str, placeholders: dict[str, Any]) -> RenderedPush:
  """Render title, body and routing data for a notification kind."""
  template = _get_template(kind)
  _validate_placeholders(template=template, placeholders=placeholders)
  title = _render_text(template.title_template, placeholders=placeholders)
  body = _render_text(template.body_template, placeholders=placeholders)
  # FCM data values must be strings.
  data = {"type": template.data_type, "letterId": str(letter_id)}
  return RenderedPush(title=title, body=body, data=data, sound=template.sound, badge=template.badge)


def _validate_placeholders(*, template: PushTemplate, placeholders: dict[str, Any]) -> None:
  """Ensure required placeholders exist to avoid sending malformed pushes."""
  missing = sorted(template.required_placeholders - set(placeholders.keys()))
  if missing:
    raise ValueError(f"Missing placeholders for push template '{template.kind.value}': {', '.join(missing)}")


def _render_text(raw_template: str, *, placeholders: dict[str, Any]) -> str:
  """Replace {{name}} markers; unknown markers are left untouched."""

  def _replace(match: re.Match[str]) -> str:
    key = match.group(1)
    if key not in placeholders:
      return match.group(0)
    return str(placeholders[key])

  return _PLACEHOLDER_RE.sub(_replace, raw_template)


def _get_template(kind: NotificationKind) -> PushTemplate:
  template = TEMPLATES.get(kind)
  if template is None:
    raise ValueError(f"Unknown push template '{kind}'")
  return template
