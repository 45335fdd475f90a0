"""Human readable text for every ``(domain, action)`` logging event.

Templates live in ``event_templates.json`` next to this module as
``{domain: {action: template}}``. Anything that is not a string template is
ignored. A broken or missing file leaves a single ``app.load_error`` entry so
logging keeps working with derived text.
"""

from __future__ import annotations

import json
from pathlib import Path

TEMPLATES_PATH = Path(__file__).with_name("event_templates.json")

EventKey = tuple[str, str]


def load_event_templates(path: Path = TEMPLATES_PATH) -> dict[EventKey, str]:
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {("app", "load_error"): f"Event templates file missing: {path.name}"}
    except (OSError, ValueError) as e:
        return {("app", "load_error"): f"Failed to load event templates: {e}"[:200]}
    if not isinstance(raw, dict):
        return {("app", "load_error"): "Event templates root must be an object"}
    return {
        (domain, action): text
        for domain, actions in raw.items()
        if isinstance(actions, dict)
        for action, text in actions.items()
        if isinstance(text, str)
    }


EVENT_TEMPLATES: dict[EventKey, str] = load_event_templates()


def reload_event_templates() -> None:
    # Updated in place so references held by importers stay current
    EVENT_TEMPLATES.clear()
    EVENT_TEMPLATES.update(load_event_templates())


__all__ = ["EVENT_TEMPLATES", "load_event_templates", "reload_event_templates"]
