"""
Projections of the final event list.

Daily plan, weekly rollup and unscheduled ids are all derived from the
ordered events; none of them adds or reorders anything.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

from draftline.models import DraftEvent

SPILLED_REASON = "spilled to next day"


@dataclass
class DailyPlan:
    """Events falling on one local date."""
    date_key: str  # YYYY-MM-DD in the plan's timezone
    events: list[DraftEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {"dateKey": self.date_key, "events": [e.to_dict() for e in self.events]}


@dataclass
class WeeklyRollup:
    """Minutes scheduled per local date, from the Monday of the first event's week."""
    week_start_date_key: str
    total_events: int = 0
    total_minutes: int = 0
    by_day_minutes: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekStartDateKey": self.week_start_date_key,
            "totalEvents": self.total_events,
            "totalMinutes": self.total_minutes,
            "byDayMinutes": dict(self.by_day_minutes),
        }


def _date_key(event: DraftEvent, zone: ZoneInfo) -> str:
    return event.start.astimezone(zone).date().isoformat()


def build_daily_plan(events: Iterable[DraftEvent], tz: str) -> list[DailyPlan]:
    """Group events by local date, keeping event order within and across days."""
    zone = ZoneInfo(tz)
    days: dict[str, DailyPlan] = {}
    for event in events:
        key = _date_key(event, zone)
        days.setdefault(key, DailyPlan(date_key=key)).events.append(event)
    return list(days.values())


def build_weekly_rollup(events: Iterable[DraftEvent], tz: str) -> Optional[WeeklyRollup]:
    """Sum scheduled minutes per local date; None when there are no events."""
    zone = ZoneInfo(tz)
    events = list(events)
    if not events:
        return None

    first_day = events[0].start.astimezone(zone).date()
    week_start = first_day - timedelta(days=first_day.weekday())
    rollup = WeeklyRollup(week_start_date_key=week_start.isoformat())

    for event in events:
        key = _date_key(event, zone)
        rollup.by_day_minutes[key] = rollup.by_day_minutes.get(key, 0) + event.duration_minutes
        rollup.total_minutes += event.duration_minutes
        rollup.total_events += 1
    return rollup


def unscheduled_ids(events: Iterable[DraftEvent]) -> list[str]:
    """Ids of events that had to be pushed off their requested day."""
    return [e.id for e in events if SPILLED_REASON in e.reasons]
