"""
Temporal Phrase Parser

Extracts an absolute start/end instant from free text such as
"Thu 10 AM PT", "tomorrow 3-4pm" or "Sep 3 at 3pm ET".

The phrase is read as wall-clock time in its source zone (from a zone
abbreviation, else the target zone) and converted to the target zone.
Parsing never raises: anything unparseable yields None.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

logger = structlog.get_logger(__name__)


# Upper-case abbreviations only; "et" or "mt" in running text are words
ZONE_ABBREVIATIONS = {
    "PT": "America/Los_Angeles",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "MT": "America/Denver",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "CT": "America/Chicago",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "ET": "America/New_York",
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "UTC": "UTC",
    "GMT": "UTC",
}

WEEKDAYS = ["mon", "tue", "wed", "thu", "fri", "sat", "sun"]

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MERIDIEM = r"[ap]\.?m\.?(?![a-z])"

DEFAULT_CLOCK = time(9, 0)
TONIGHT_CLOCK = time(20, 0)


@dataclass(frozen=True)
class ParsedTime:
    """An absolute time span recovered from a phrase."""
    start: datetime
    end: datetime
    timezone: str
    source_zone: str
    has_explicit_time: bool = True
    phrase: str = ""

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()


@dataclass
class _DateHit:
    kind: str  # "explicit", "relative", "weekday"
    span: tuple[int, int]
    day: Optional[date] = None
    word: str = ""
    weekday: int = 0
    next_prefix: bool = False
    clock: Optional[time] = None


@dataclass
class _ClockHit:
    span: tuple[int, int]
    hour: int
    minute: int
    meridiem: Optional[str]
    bare: bool = False  # "at H" or "H:MM" without a meridiem
    # Upper bound of a range such as "3-4pm"
    end_hour: Optional[int] = None
    end_minute: int = 0
    end_meridiem: Optional[str] = None


class TemporalPhraseParser:
    """
    Parses time phrases into zone-aware instants.

    Dates are located first and masked out, so "9/11" or "2025-09-11" are
    never mistaken for clock times.
    """

    ZONE_PATTERN = r"\b(" + "|".join(sorted(ZONE_ABBREVIATIONS, key=len, reverse=True)) + r")\b"

    # Explicit calendar dates, most specific first
    DATE_PATTERNS = [
        (r"\b(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})(?:[T ](?P<hh>\d{2}):(?P<mm>\d{2}))?\b", "iso"),
        (
            r"\b(?P<mon>jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|"
            r"aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)\b\.?"
            r"\s+(?P<d>\d{1,2})(?:st|nd|rd|th)?\b(?:,?\s+(?P<y>\d{4})\b)?",
            "month_day",
        ),
        (r"\b(?P<m>\d{1,2})/(?P<d>\d{1,2})(?:/(?P<y>\d{4}|\d{2}))?\b", "numeric"),
    ]

    RELATIVE_PATTERN = r"\b(today|tonight|tomorrow)\b"

    WEEKDAY_PATTERN = (
        r"\b(?:(?P<next>(?i:next))\s+)?"
        r"(?P<day>(?i:monday|tuesday|wednesday|thursday|friday|saturday|sunday)"
        r"|Mon|Tues?|Wed|Thu(?:rs?)?|Fri|Sat|Sun)\b\.?"
    )

    # Clock forms, in priority order
    RANGE_PATTERN = (
        r"(?<![:\w])(?P<h1>\d{1,2})(?::(?P<m1>\d{2}))?\s*(?P<mer1>" + _MERIDIEM + r")?"
        r"\s*(?:-|–|\bto\b)\s*"
        r"(?P<h2>\d{1,2})(?::(?P<m2>\d{2}))?\s*(?P<mer2>" + _MERIDIEM + r")"
    )
    CLOCK_PATTERNS = [
        (r"\b(?P<h>\d{1,2}):(?P<m>\d{2})(?!\d)\s*(?P<mer>" + _MERIDIEM + r")?", "hhmm"),
        (r"(?<![:\w])(?P<h>\d{1,2})\s*(?P<mer>" + _MERIDIEM + r")", "h_meridiem"),
        (r"\bat\s+(?P<h>\d{1,2})\b(?![:/\d])", "at_h"),
        (r"\b(?P<word>noon|midnight)\b", "named"),
    ]

    DURATION_PATTERN = r"\b(?P<amount>\d+(?:\.\d+)?)\s*(?P<unit>hours?|hrs?|h|minutes?|mins?)\b"

    def __init__(self, default_duration_minutes: int = 30):
        self.default_duration = timedelta(minutes=default_duration_minutes)

        self._zone_re = re.compile(self.ZONE_PATTERN)
        self._date_res = [
            (re.compile(p, re.IGNORECASE), kind) for p, kind in self.DATE_PATTERNS
        ]
        self._relative_re = re.compile(self.RELATIVE_PATTERN, re.IGNORECASE)
        self._weekday_re = re.compile(self.WEEKDAY_PATTERN)
        self._range_re = re.compile(self.RANGE_PATTERN, re.IGNORECASE)
        self._clock_res = [
            (re.compile(p, re.IGNORECASE), kind) for p, kind in self.CLOCK_PATTERNS
        ]
        self._duration_re = re.compile(self.DURATION_PATTERN, re.IGNORECASE)

    def parse(
        self,
        text: str,
        now: Optional[datetime] = None,
        target_tz: str = "UTC",
    ) -> Optional[ParsedTime]:
        """
        Parse the first time phrase in text.

        Args:
            text: Free text containing a time reference
            now: Reference instant (aware; naive is read in target_tz)
            target_tz: IANA zone the result is expressed in

        Returns:
            ParsedTime, or None when nothing schedulable was found
        """
        if not text:
            return None
        try:
            target = ZoneInfo(target_tz)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("invalid_target_zone", target_tz=target_tz)
            return None

        if now is None:
            now = datetime.now(target)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=target)

        try:
            return self._parse(text, now, target, target_tz)
        except (ValueError, OverflowError) as e:
            logger.debug("time_phrase_invalid", text=text[:60], error=str(e))
            return None

    def _parse(
        self, text: str, now: datetime, target: ZoneInfo, target_tz: str
    ) -> Optional[ParsedTime]:
        zone_match = self._zone_re.search(text)
        source_name = ZONE_ABBREVIATIONS[zone_match.group(1)] if zone_match else target_tz
        source = ZoneInfo(source_name)
        local_now = now.astimezone(source)

        date_hit = self._find_date(text, local_now)
        masked = _mask(text, date_hit.span) if date_hit else text

        clock_hit = self._find_clock(masked)
        if date_hit is None and clock_hit is None:
            return None

        if clock_hit is not None:
            masked = _mask(masked, clock_hit.span)
        duration = self._find_duration(masked)

        has_explicit_time = True
        end_clock: Optional[time] = None
        if clock_hit is not None and clock_hit.end_hour is not None:
            clock, end_clock = self._resolve_range(clock_hit)
        elif clock_hit is not None:
            clock = self._resolve_clock(clock_hit, evening=bool(date_hit and date_hit.word == "tonight"))
        elif date_hit is not None and date_hit.clock is not None:
            clock = date_hit.clock
        elif date_hit is not None and date_hit.word == "tonight":
            clock, has_explicit_time = TONIGHT_CLOCK, False
        else:
            clock, has_explicit_time = DEFAULT_CLOCK, False

        start_local = self._resolve_day(date_hit, clock, local_now, source)
        start = start_local.astimezone(target)

        if end_clock is not None:
            end_local = datetime.combine(start_local.date(), end_clock, tzinfo=source)
            if end_local <= start_local:
                end_local += timedelta(days=1)
            end = end_local.astimezone(target)
        else:
            end = (start.astimezone(ZoneInfo("UTC")) + (duration or self.default_duration)).astimezone(target)

        spans = [hit.span for hit in (date_hit, clock_hit) if hit is not None]
        phrase = " ".join(text[a:b].strip() for a, b in sorted(spans))
        if zone_match:
            phrase = f"{phrase} {zone_match.group(1)}".strip()

        return ParsedTime(
            start=start,
            end=end,
            timezone=target_tz,
            source_zone=source_name,
            has_explicit_time=has_explicit_time,
            phrase=phrase,
        )

    def _find_date(self, text: str, local_now: datetime) -> Optional[_DateHit]:
        for pattern, kind in self._date_res:
            match = pattern.search(text)
            if not match:
                continue
            groups = match.groupdict()
            year = int(groups["y"]) if groups.get("y") else local_now.year
            if year < 100:
                year += 2000
            if kind == "month_day":
                month = MONTHS[groups["mon"][:3].lower()]
            else:
                month = int(groups["m"])
            # date() raises on impossible values; caught by parse()
            hit = _DateHit(
                kind="explicit",
                span=match.span(),
                day=date(year, month, int(groups["d"])),
            )
            if groups.get("hh"):
                hit.clock = time(int(groups["hh"]), int(groups["mm"]))
            return hit

        match = self._relative_re.search(text)
        if match:
            return _DateHit(kind="relative", span=match.span(), word=match.group(1).lower())

        match = self._weekday_re.search(text)
        if match:
            return _DateHit(
                kind="weekday",
                span=match.span(),
                weekday=WEEKDAYS.index(match.group("day")[:3].lower()),
                next_prefix=bool(match.group("next")),
            )
        return None

    def _find_clock(self, text: str) -> Optional[_ClockHit]:
        match = self._range_re.search(text)
        if match:
            return _ClockHit(
                span=match.span(),
                hour=int(match.group("h1")),
                minute=int(match.group("m1") or 0),
                meridiem=_meridiem(match.group("mer1")),
                end_hour=int(match.group("h2")),
                end_minute=int(match.group("m2") or 0),
                end_meridiem=_meridiem(match.group("mer2")),
            )

        for pattern, kind in self._clock_res:
            match = pattern.search(text)
            if not match:
                continue
            if kind == "named":
                hour = 12 if match.group("word").lower() == "noon" else 0
                return _ClockHit(span=match.span(), hour=hour, minute=0, meridiem="named")
            groups = match.groupdict()
            meridiem = _meridiem(groups.get("mer"))
            return _ClockHit(
                span=match.span(),
                hour=int(groups["h"]),
                minute=int(groups.get("m") or 0),
                meridiem=meridiem,
                bare=meridiem is None,
            )
        return None

    def _find_duration(self, text: str) -> Optional[timedelta]:
        match = self._duration_re.search(text)
        if not match:
            return None
        amount = float(match.group("amount"))
        unit = match.group("unit").lower()
        minutes = amount * 60 if unit.startswith("h") else amount
        if minutes <= 0 or minutes > 24 * 60:
            return None
        return timedelta(minutes=round(minutes))

    def _resolve_clock(self, hit: _ClockHit, evening: bool = False) -> time:
        hour, minute, meridiem = hit.hour, hit.minute, hit.meridiem
        if meridiem == "named":
            return time(hour, 0)
        if meridiem is not None:
            return _to_24h(hour, minute, meridiem)
        if hit.bare and (1 <= hour <= 7 or (evening and 1 <= hour < 12)):
            # "at 3" means 3pm
            hour += 12
        return time(hour, minute)

    def _resolve_range(self, hit: _ClockHit) -> tuple[time, time]:
        end = _to_24h(hit.end_hour, hit.end_minute, hit.end_meridiem)
        if hit.meridiem is not None:
            return _to_24h(hit.hour, hit.minute, hit.meridiem), end

        # The first bound inherits the second's meridiem unless that would
        # put it after the end ("11-1pm" is 11am to 1pm)
        start = _to_24h(hit.hour, hit.minute, hit.end_meridiem)
        if start >= end:
            other = "am" if hit.end_meridiem == "pm" else "pm"
            flipped = _to_24h(hit.hour, hit.minute, other)
            if flipped < end:
                start = flipped
        return start, end

    def _resolve_day(
        self,
        hit: Optional[_DateHit],
        clock: time,
        local_now: datetime,
        zone: ZoneInfo,
    ) -> datetime:
        today = local_now.date()

        if hit is None:
            moment = datetime.combine(today, clock, tzinfo=zone)
            if moment < local_now:
                moment += timedelta(days=1)
            return moment

        if hit.kind == "explicit":
            return datetime.combine(hit.day, clock, tzinfo=zone)

        if hit.kind == "relative":
            offset = 1 if hit.word == "tomorrow" else 0
            return datetime.combine(today + timedelta(days=offset), clock, tzinfo=zone)

        days_ahead = (hit.weekday - today.weekday()) % 7
        if days_ahead == 0 and hit.next_prefix:
            days_ahead = 7
        moment = datetime.combine(today + timedelta(days=days_ahead), clock, tzinfo=zone)
        if moment < local_now:
            moment += timedelta(days=7)
        return moment

    def detect_ambiguity(self, text: str) -> bool:
        """
        True when text names a clock time but neither a zone nor a day.

        "3pm" is ambiguous; "Thu 3pm", "3pm ET" and "tomorrow 3pm" are not.
        """
        if not text:
            return False
        if self._zone_re.search(text):
            return False
        masked = text
        for pattern, _ in self._date_res:
            match = pattern.search(masked)
            if match:
                masked = _mask(masked, match.span())
        has_day = bool(self._relative_re.search(text) or self._weekday_re.search(text))
        has_date = masked != text
        return self._find_clock(masked) is not None and not (has_day or has_date)


def _meridiem(raw: Optional[str]) -> Optional[str]:
    if not raw:
        return None
    return "pm" if raw.lower().startswith("p") else "am"


def _to_24h(hour: int, minute: int, meridiem: Optional[str]) -> time:
    if meridiem is None:
        return time(hour, minute)
    if not 1 <= hour <= 12:
        raise ValueError(f"hour {hour} with meridiem")
    return time(hour % 12 + (12 if meridiem == "pm" else 0), minute)


def _mask(text: str, span: tuple[int, int]) -> str:
    start, end = span
    return text[:start] + " " * (end - start) + text[end:]


# Module-level instance for convenience
_parser: Optional[TemporalPhraseParser] = None


def get_parser() -> TemporalPhraseParser:
    """Get or create the parser singleton."""
    global _parser
    if _parser is None:
        _parser = TemporalPhraseParser()
    return _parser


def parse_time_phrase(
    text: str,
    now: Optional[datetime] = None,
    target_tz: str = "UTC",
) -> Optional[ParsedTime]:
    """Convenience function to parse a time phrase."""
    return get_parser().parse(text, now, target_tz)


def detect_ambiguity(text: str) -> bool:
    """Convenience function: does text name a clock time with no zone or day?"""
    return get_parser().detect_ambiguity(text)
