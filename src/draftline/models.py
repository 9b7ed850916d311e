"""
Draftline Data Models

Plain dataclasses for the records that flow through the pipeline: inbound
signals, calendar drafts, task drafts, scheduling intents and the scores the
classifiers produce. Inputs are frozen; outputs serialize to the camelCase
shape consumed by persistence and UI collaborators via ``to_dict()``.
"""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Literal, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Source(str, enum.Enum):
    """Where a signal came from."""
    EMAIL = "email"
    SLACK = "slack"
    MANUAL = "manual"

    @classmethod
    def coerce(cls, value: Any) -> "Source":
        """Accept enum members, values, or names ("EMAIL", "email")."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value == text:
                return member
        raise ValueError(f"Unknown signal source: {value!r}")


Priority = Literal["low", "medium", "high", "urgent"]
CadenceKind = Literal["once", "daily", "weekly", "every_other_day", "custom"]
Window = Literal["morning", "afternoon", "evening", "night"]


# ---------------------------------------------------------------------------
#  Inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignalHeaders:
    """The mail headers the focus classifier reads. Everything else is dropped."""
    content_type: Optional[str] = None
    list_id: Optional[str] = None
    list_unsubscribe: Optional[str] = None
    precedence: Optional[str] = None
    from_address: Optional[str] = None

    _HEADER_NAMES = {
        "content-type": "content_type",
        "list-id": "list_id",
        "list-unsubscribe": "list_unsubscribe",
        "precedence": "precedence",
        "from": "from_address",
    }

    @classmethod
    def from_mapping(cls, headers: Optional[Mapping[str, Any]]) -> "SignalHeaders":
        """Pick the known headers out of a raw header mapping (case-insensitive)."""
        if not headers:
            return cls()
        values: dict[str, str] = {}
        for key, value in headers.items():
            name = cls._HEADER_NAMES.get(str(key).strip().lower())
            if name and value is not None:
                values[name] = str(value)
        return cls(**values)

    @property
    def sender_domain(self) -> Optional[str]:
        """Domain part of the From address, lower-cased."""
        if not self.from_address or "@" not in self.from_address:
            return None
        domain = self.from_address.rsplit("@", 1)[1]
        return domain.strip(" >\"'").lower() or None


@dataclass(frozen=True)
class ThreadMetadata:
    """Conversation shape of the thread a signal belongs to."""
    participants: int = 0
    reply_count: int = 0
    user_replied: bool = False


@dataclass(frozen=True)
class Signal:
    """
    A unit of raw external text entering the pipeline.

    Owned by the caller; the pipeline only reads it.
    """
    source: Source
    title: str
    body: Optional[str] = None
    headers: SignalHeaders = field(default_factory=SignalHeaders)
    thread_metadata: Optional[ThreadMetadata] = None
    id: Optional[str] = None
    source_ref: Optional[str] = None
    received_at: Optional[datetime] = None

    @property
    def text(self) -> str:
        """Title and body joined for lexical matching."""
        return f"{self.title} {self.body or ''}".strip()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Signal":
        """Build a signal from the camelCase wire shape."""
        thread = data.get("threadMetadata") or data.get("thread_metadata")
        received = data.get("receivedAt") or data.get("received_at")
        return cls(
            source=Source.coerce(data.get("source", "manual")),
            title=str(data.get("title") or ""),
            body=data.get("body"),
            headers=SignalHeaders.from_mapping(data.get("headers")),
            thread_metadata=ThreadMetadata(
                participants=int(thread.get("participants", 0) or 0),
                reply_count=int(thread.get("replyCount", thread.get("reply_count", 0)) or 0),
                user_replied=bool(thread.get("userReplied", thread.get("user_replied", False))),
            ) if isinstance(thread, Mapping) else None,
            id=data.get("id"),
            source_ref=data.get("sourceRef") or data.get("source_ref"),
            received_at=datetime.fromisoformat(received) if isinstance(received, str) else received,
        )


# ---------------------------------------------------------------------------
#  Pipeline outputs
# ---------------------------------------------------------------------------

@dataclass
class EventMeta:
    """Optional extension fields carried on a draft event."""
    specificity_score: Optional[float] = None
    deliverable: Optional[str] = None
    resources: Optional[list[str]] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.specificity_score is not None:
            out["specificityScore"] = self.specificity_score
        if self.deliverable is not None:
            out["deliverable"] = self.deliverable
        if self.resources is not None:
            out["resources"] = list(self.resources)
        return out


@dataclass
class DraftEvent:
    """A provisional calendar-event candidate."""
    id: str
    title: str
    start: datetime
    end: datetime
    timezone: str
    source: Source
    reasons: list[str] = field(default_factory=list)
    source_ref: Optional[str] = None
    meta: Optional[EventMeta] = None

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("DraftEvent times must be timezone-aware")
        if not self.start < self.end:
            raise ValueError(f"DraftEvent start must precede end: {self.start} >= {self.end}")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {self.timezone}") from e

    @property
    def start_iso(self) -> str:
        return self.start.isoformat()

    @property
    def end_iso(self) -> str:
        return self.end.isoformat()

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "startISO": self.start_iso,
            "endISO": self.end_iso,
            "timezone": self.timezone,
            "source": self.source.value,
            "reasons": list(self.reasons),
        }
        if self.source_ref is not None:
            out["sourceRef"] = self.source_ref
        if self.meta is not None:
            out["meta"] = self.meta.to_dict()
        return out

    def __repr__(self) -> str:
        return f"<DraftEvent {self.title[:30]!r} at {self.start_iso}>"


@dataclass
class Suggestion:
    """A signal that did not become a draft event, and why."""
    title: str
    reason: str
    source: Optional[Source] = None
    source_ref: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"title": self.title, "reason": self.reason}
        if self.source is not None:
            out["source"] = self.source.value
        if self.source_ref is not None:
            out["sourceRef"] = self.source_ref
        return out


@dataclass
class TaskDraft:
    """A provisional to-do item, normalized."""
    title: str
    description: Optional[str] = None
    due_at: Optional[str] = None
    hard_deadline: Optional[str] = None
    effort_minutes: int = 50
    priority: Optional[Priority] = None
    tags: Optional[list[str]] = None
    requires_human: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"title": self.title, "effortMinutes": self.effort_minutes}
        optional = {
            "description": self.description,
            "dueAt": self.due_at,
            "hardDeadline": self.hard_deadline,
            "priority": self.priority,
            "tags": list(self.tags) if self.tags else None,
            "requiresHuman": self.requires_human,
        }
        out.update({k: v for k, v in optional.items() if v is not None})
        return out


@dataclass
class Cadence:
    """How often a scheduling intent repeats."""
    kind: CadenceKind = "once"
    days_of_week: Optional[list[int]] = None  # 0=Sun..6=Sat
    interval: Optional[int] = None


@dataclass
class USI:
    """Unstructured Scheduling Intent: a free-text request made structured."""
    goal: str
    timezone: str
    duration_min: int = 60
    cadence: Cadence = field(default_factory=Cadence)
    window: Optional[Window] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    count: Optional[int] = None
    priority: int = 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "goal": self.goal,
            "durationMin": self.duration_min,
            "cadence": {
                "kind": self.cadence.kind,
                "daysOfWeek": self.cadence.days_of_week,
                "interval": self.cadence.interval,
            },
            "window": self.window,
            "startDate": self.start_date.isoformat() if self.start_date else None,
            "endDate": self.end_date.isoformat() if self.end_date else None,
            "count": self.count,
            "timezone": self.timezone,
            "priority": self.priority,
        }


# ---------------------------------------------------------------------------
#  Scores and small value types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FocusEval:
    """How likely a signal is to merit attention."""
    score: float
    reason: str
    force_allow: bool = False


@dataclass(frozen=True)
class QAItem:
    question: str
    answer: str


@dataclass
class AnswerMap:
    """Which sub-question each part of an answer covers."""
    items: list[QAItem] = field(default_factory=list)
    coverage: float = 0.0
    relevance: float = 0.0


@dataclass(frozen=True)
class Slot:
    """A block of time with aware start and end."""
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def event_id(title: str, start_iso: str) -> str:
    """Stable draft id: first 16 hex chars of sha256("title|startISO")."""
    return hashlib.sha256(f"{title}|{start_iso}".encode("utf-8")).hexdigest()[:16]
