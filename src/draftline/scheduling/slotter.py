"""
Intent Slotter

Turns a structured scheduling intent (USI) into proposed calendar drafts:
expand the cadence into occurrence days, seed each day at the intent's
window hour, step past busy time, and enforce the daily cap and gaps.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import date, datetime, time, timedelta
from itertools import islice
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

from dateutil.rrule import DAILY, WEEKLY, rrule
import structlog

from draftline.models import DraftEvent, Slot, Source, USI, event_id
from draftline.scheduling.fit import fit_duration, insert_buffers

logger = structlog.get_logger(__name__)


# Seed hour per window; evening when unspecified
WINDOW_HOURS = {
    "morning": 9,
    "afternoon": 13,
    "evening": 18,
    "night": 20,
}
DEFAULT_WINDOW_HOUR = 18

SEARCH_STEP = timedelta(minutes=30)
SEARCH_STEPS = 16
HORIZON_DAYS = 7


def _rrule_weekday(day: int) -> int:
    """0=Sunday..6=Saturday to dateutil's 0=Monday..6=Sunday."""
    return (day - 1) % 7


def titleize(goal: str) -> str:
    title = re.sub(r"^i\s+want\s+to\s+", "", goal.strip(), flags=re.IGNORECASE)
    return title[:1].upper() + title[1:]


class IntentSlotter:
    """
    Places occurrences of a scheduling intent on the calendar.

    Busy time is supplied by the caller as Slots; nothing is fetched here.
    """

    def __init__(
        self,
        min_gap_minutes: int = 10,
        daily_cap: int = 4,
        max_occurrences: int = 10,
    ):
        self.min_gap_minutes = min_gap_minutes
        self.daily_cap = daily_cap
        self.max_occurrences = max_occurrences

    def expand_occurrences(self, usi: USI, now: Optional[datetime] = None) -> list[date]:
        """
        Expand the intent's cadence into occurrence days.

        The horizon runs from start_date (default: today in the intent's zone)
        to end_date (default: start + 7 days), inclusive.
        """
        zone = ZoneInfo(usi.timezone)
        today = (now or datetime.now(zone)).astimezone(zone).date()
        start = usi.start_date or today
        end = usi.end_date or start + timedelta(days=HORIZON_DAYS)
        if end < start:
            return []

        cadence = usi.cadence
        if cadence.kind == "once":
            return [start]

        dtstart = datetime.combine(start, time())
        until = datetime.combine(end, time(23, 59, 59))
        days = [_rrule_weekday(d) for d in (cadence.days_of_week or []) if 0 <= d <= 6]

        if cadence.kind == "daily":
            rule = rrule(DAILY, dtstart=dtstart, until=until)
        elif cadence.kind == "every_other_day":
            rule = rrule(DAILY, dtstart=dtstart, until=until, interval=2)
        elif cadence.kind == "weekly":
            rule = rrule(
                WEEKLY,
                dtstart=dtstart,
                until=until,
                byweekday=days or [start.weekday()],
                interval=max(1, cadence.interval or 1),
            )
        elif days:
            rule = rrule(WEEKLY, dtstart=dtstart, until=until, byweekday=days)
        else:
            rule = rrule(DAILY, dtstart=dtstart, until=until, interval=max(1, cadence.interval or 1))

        limit = usi.count or self.max_occurrences
        return [occurrence.date() for occurrence in islice(rule, limit)]

    def slot(
        self,
        usi: USI,
        now: Optional[datetime] = None,
        busy: Iterable[Slot] = (),
    ) -> list[DraftEvent]:
        """
        Propose draft events for an intent.

        Args:
            usi: The structured intent
            now: Reference instant; occurrences before it are skipped
            busy: Existing commitments to avoid

        Returns:
            Draft events sorted by start, at least min_gap_minutes apart
        """
        zone = ZoneInfo(usi.timezone)
        now = now or datetime.now(zone)
        busy = sorted(busy, key=lambda b: b.start)
        hour = WINDOW_HOURS.get(usi.window or "", DEFAULT_WINDOW_HOUR)

        slots: list[Slot] = []
        per_day: Counter[date] = Counter()

        for day in self.expand_occurrences(usi, now):
            seed = datetime.combine(day, time(hour), tzinfo=zone)
            block = self._find_free(fit_duration(seed, usi.duration_min, "focus"), busy)
            if block is None:
                logger.debug("occurrence_no_free_slot", goal=usi.goal, day=day.isoformat())
                continue
            if block.start < now:
                continue
            if per_day[block.start.date()] >= self.daily_cap:
                logger.debug("occurrence_over_daily_cap", goal=usi.goal, day=day.isoformat())
                continue
            per_day[block.start.date()] += 1
            slots.append(block)

        title = titleize(usi.goal) or "Focus block"
        events = []
        for block in insert_buffers(slots, self.min_gap_minutes):
            start_iso = block.start.isoformat()
            events.append(DraftEvent(
                id=event_id(title, start_iso),
                title=title,
                start=block.start,
                end=block.end,
                timezone=usi.timezone,
                source=Source.MANUAL,
                reasons=[
                    f"proposed {int(block.duration.total_seconds() // 60)} min block",
                    f"cadence:{usi.cadence.kind}",
                ],
            ))

        logger.info("intent_slotted", goal=usi.goal, proposed=len(events))
        return events

    def _find_free(self, block: Slot, busy: list[Slot]) -> Optional[Slot]:
        """First 30-minute step from block's start that overlaps no busy slot."""
        length = block.duration
        for step in range(SEARCH_STEPS):
            start = block.start + step * SEARCH_STEP
            end = start + length
            if not any(start < b.end and b.start < end for b in busy):
                return Slot(start=start, end=end)
        return None
