"""
Task Draft Normalizer

Canonicalizes model-produced task drafts: priority onto the four-level enum,
loose dates onto ISO-8601, effort into a sane range, tags into a clean set.
Every function is total; malformed values are omitted, never raised.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Optional, Union

from dateutil import parser as date_parser

from draftline.models import Priority, TaskDraft

PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")

PRIORITY_SYNONYMS = {
    "lowest": "low",
    "minor": "low",
    "trivial": "low",
    "normal": "medium",
    "standard": "medium",
    "default": "medium",
    "important": "high",
    "major": "high",
    "critical": "urgent",
    "blocker": "urgent",
    "immediate": "urgent",
}

DEFAULT_EFFORT_MINUTES = 50
MIN_EFFORT_MINUTES = 5
MAX_EFFORT_MINUTES = 8 * 60

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

_ISO_DATETIME_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)
_NEXT_WEEKDAY_RE = re.compile(r"^next\s+(" + "|".join(WEEKDAY_NAMES) + r")$")


def clamp_priority(value: Any) -> Optional[Priority]:
    """
    Map any value onto a priority.

    None or blank gives None; exact names and synonyms map directly;
    anything else is "medium".
    """
    if value is None:
        return None
    text = str(value).strip().lower()
    if not text:
        return None
    if text in PRIORITIES:
        return text  # type: ignore[return-value]
    return PRIORITY_SYNONYMS.get(text, "medium")  # type: ignore[return-value]


def normalize_date_like(value: Any, now: Optional[datetime] = None) -> Optional[str]:
    """
    Normalize a loose date onto ISO-8601.

    ISO date-times pass through unchanged. "today", "tomorrow" and
    "next <weekday>" resolve against now; the weekday form is always in the
    future. Anything else goes through dateutil, zone-less results taking
    now's zone. Unparseable input gives None.
    """
    if not isinstance(value, str) or not value.strip():
        return None
    if _ISO_DATETIME_RE.match(value.strip()):
        return value

    now = now or datetime.now().astimezone()
    lowered = value.strip().lower()

    if lowered == "today":
        return now.isoformat()
    if lowered == "tomorrow":
        return (now + timedelta(days=1)).isoformat()

    match = _NEXT_WEEKDAY_RE.match(lowered)
    if match:
        delta = (WEEKDAY_NAMES.index(match.group(1)) - now.weekday()) % 7 or 7
        return (now + timedelta(days=delta)).isoformat()

    try:
        default = now.replace(hour=0, minute=0, second=0, microsecond=0, tzinfo=None)
        parsed = date_parser.parse(value, default=default)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed.isoformat()


def infer_effort_minutes(value: Any) -> int:
    """Clamp effort to [5, 480]; 50 for absent, non-numeric, non-finite or non-positive."""
    if value is None or isinstance(value, bool):
        return DEFAULT_EFFORT_MINUTES
    if isinstance(value, int):
        if value <= 0:
            return DEFAULT_EFFORT_MINUTES
        return max(MIN_EFFORT_MINUTES, min(value, MAX_EFFORT_MINUTES))
    try:
        minutes = float(value)
    except (TypeError, ValueError):
        return DEFAULT_EFFORT_MINUTES
    except OverflowError:
        # Finite but past the float range, e.g. a huge Fraction
        return MAX_EFFORT_MINUTES if value > 0 else DEFAULT_EFFORT_MINUTES
    if not math.isfinite(minutes) or minutes <= 0:
        return DEFAULT_EFFORT_MINUTES
    # Half-up rounding
    rounded = math.floor(minutes + 0.5)
    return max(MIN_EFFORT_MINUTES, min(rounded, MAX_EFFORT_MINUTES))


def normalize_tags(tags: Any) -> Optional[list[str]]:
    """Lower-case, strip and de-duplicate tags in order; None when nothing is left."""
    if isinstance(tags, str):
        tags = [tags]
    if not isinstance(tags, Iterable):
        return None
    cleaned: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        tag = tag.strip().lower()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned or None


def _field(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw:
            return raw[name]
    return None


def normalize_task_draft(
    raw: Union[TaskDraft, Mapping[str, Any]],
    now: Optional[datetime] = None,
) -> TaskDraft:
    """
    Normalize one draft.

    Accepts a TaskDraft or a mapping with camelCase or snake_case keys.
    """
    if isinstance(raw, TaskDraft):
        raw = {
            "title": raw.title,
            "description": raw.description,
            "due_at": raw.due_at,
            "hard_deadline": raw.hard_deadline,
            "effort_minutes": raw.effort_minutes,
            "priority": raw.priority,
            "tags": raw.tags,
            "requires_human": raw.requires_human,
        }

    title = _field(raw, "title")
    description = _field(raw, "description")
    requires_human = _field(raw, "requiresHuman", "requires_human")

    return TaskDraft(
        title=title.strip() if isinstance(title, str) else "",
        description=description if isinstance(description, str) and description.strip() else None,
        due_at=normalize_date_like(_field(raw, "dueAt", "due_at"), now),
        hard_deadline=normalize_date_like(_field(raw, "hardDeadline", "hard_deadline"), now),
        effort_minutes=infer_effort_minutes(_field(raw, "effortMinutes", "effort_minutes")),
        priority=clamp_priority(_field(raw, "priority")),
        tags=normalize_tags(_field(raw, "tags")),
        requires_human=requires_human if isinstance(requires_human, bool) else None,
    )


def post_process_task_drafts(
    drafts: Iterable[Union[TaskDraft, Mapping[str, Any]]],
    now: Optional[datetime] = None,
) -> list[TaskDraft]:
    """Normalize a list of drafts."""
    return [normalize_task_draft(draft, now) for draft in drafts]
