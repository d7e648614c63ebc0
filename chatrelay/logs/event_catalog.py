"""Human-readable templates for ``log_event`` keyed by ``(domain, action)``."""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

TEMPLATES_PATH = Path(__file__).with_name("event_templates.json")
LOAD_ERROR = ("app", "load_error")

EVENT_TEMPLATES: dict[tuple[str, str], str] = {}


def _flatten(raw: Any) -> dict[tuple[str, str], str]:
    if not isinstance(raw, Mapping):
        return {}
    return {
        (domain, action): template
        for domain, actions in raw.items()
        if isinstance(domain, str) and isinstance(actions, Mapping)
        for action, template in actions.items()
        if isinstance(action, str) and isinstance(template, str)
    }


def reload_event_templates(path: Path | None = None) -> None:
    """(Re)read the template file into ``EVENT_TEMPLATES``.

    A missing or unreadable file leaves only a ``("app", "load_error")``
    entry; every other event then falls back to derived text.
    """
    global EVENT_TEMPLATES  # noqa: PLW0603
    source = path or TEMPLATES_PATH
    try:
        raw = json.loads(source.read_text(encoding="utf-8"))
    except FileNotFoundError:
        EVENT_TEMPLATES = {LOAD_ERROR: "Event templates file missing"}
    except (OSError, ValueError) as e:
        EVENT_TEMPLATES = {LOAD_ERROR: f"Failed to load event templates: {e}"[:200]}
    else:
        EVENT_TEMPLATES = _flatten(raw)


def render_event(domain: str, action: str, context: Mapping[str, object]) -> str | None:
    """Fill the template for an event, or return None when none is registered.

    A template referencing a field absent from ``context`` is returned as is.
    """
    template = EVENT_TEMPLATES.get((domain, action))
    if template is None:
        return None
    try:
        return template.format(**context)
    except (KeyError, IndexError, ValueError):
        return template


reload_event_templates()

__all__ = ["EVENT_TEMPLATES", "reload_event_templates", "render_event"]
