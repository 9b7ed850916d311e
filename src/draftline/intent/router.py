"""
Intent Router

Classifies a free-text request as a scheduling request, a planning request,
or a mix of both, using disjoint lexical cue sets.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger(__name__)


class IntentLabel(str, Enum):
    """What the user is asking for."""

    SCHEDULE_REQUEST = "schedule_request"  # Put something on the calendar
    PLAN_REQUEST = "plan_request"          # Think through a plan, no events
    MIXED = "mixed"                        # Plan, and propose events


@dataclass
class RoutedIntent:
    """A routed utterance and the cues that decided it."""

    intent: IntentLabel
    reasons: list[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"RoutedIntent({self.intent.value}: {', '.join(self.reasons)})"


class IntentRouter:
    """
    Routes utterances to an intent label.

    ``conversational_default`` decides only the cue-free, non-empty case:
    ``mixed`` when on, ``plan_request`` when off. Empty input and input with
    both cue sets are ``mixed`` regardless.
    """

    # Scheduling verbs and nouns
    SCHEDULE_PATTERNS = [
        (r"\b(re)?schedul(e|ing)\b", "schedule verb"),
        (r"\bbook\b", "booking"),
        (r"\b(add to|put on|on) (?:my )?calendar\b|\bcalendar events?\b", "calendar"),
        (r"\binvite\b", "invite"),
        (r"\b(time[- ]?block|block (?:off )?time|create (?:an? )?event|make events?)\b", "time block"),
    ]

    # Time expressions also imply scheduling
    TIME_PATTERNS = [
        (r"\b\d{1,2}(:\d{2})?\s?(am|pm)\b|\b\d{1,2}:\d{2}\b|\b(noon|midnight)\b", "clock time"),
        (r"\b(mon|tues|wednes|thurs|fri|satur|sun)day\b", "weekday"),
        (r"\b(today|tomorrow|tonight|this (?:morning|afternoon|evening))\b", "relative day"),
    ]

    # Planning cues
    PLAN_PATTERNS = [
        (r"\bplan(s|ning)?\b", "plan"),
        (r"\bcareer\b", "career"),
        (r"\broadmap\b", "roadmap"),
        (r"\bthink(ing)? (about|through)\b", "think about"),
        (r"\bstrateg(y|ies|ize)\b", "strategy"),
        (r"\b(goals?|milestones?)\b", "goals"),
    ]

    # QA-only phrasing cancels scheduling cues
    QA_ONLY_PATTERN = r"\b(just|only)\s+(tell|explain|show|list|summari[sz]e)\b"

    def __init__(self, conversational_default: bool = True):
        self.conversational_default = conversational_default

        self._schedule_re = [
            (re.compile(p, re.IGNORECASE), cue) for p, cue in self.SCHEDULE_PATTERNS + self.TIME_PATTERNS
        ]
        self._plan_re = [
            (re.compile(p, re.IGNORECASE), cue) for p, cue in self.PLAN_PATTERNS
        ]
        self._qa_only_re = re.compile(self.QA_ONLY_PATTERN, re.IGNORECASE)

    def route(self, text: str) -> RoutedIntent:
        """
        Route an utterance.

        Args:
            text: The user's message

        Returns:
            RoutedIntent with the label and the cues that fired
        """
        text = (text or "").strip()
        if not text:
            return RoutedIntent(IntentLabel.MIXED, ["empty input"])

        schedule_cues = [cue for pattern, cue in self._schedule_re if pattern.search(text)]
        plan_cues = [cue for pattern, cue in self._plan_re if pattern.search(text)]

        if schedule_cues and self._qa_only_re.search(text):
            logger.debug("schedule_cues_cancelled", cues=schedule_cues)
            schedule_cues = []

        if schedule_cues and plan_cues:
            result = RoutedIntent(IntentLabel.MIXED, ["planning and scheduling cues"] + plan_cues + schedule_cues)
        elif schedule_cues:
            result = RoutedIntent(IntentLabel.SCHEDULE_REQUEST, ["scheduling cues"] + schedule_cues)
        elif plan_cues:
            result = RoutedIntent(IntentLabel.PLAN_REQUEST, ["planning cues"] + plan_cues)
        elif self.conversational_default:
            result = RoutedIntent(IntentLabel.MIXED, ["ambiguous, conversational default"])
        else:
            result = RoutedIntent(IntentLabel.PLAN_REQUEST, ["ambiguous, planning default"])

        logger.debug("intent_routed", intent=result.intent.value, reasons=result.reasons)
        return result


def is_schedule_allowed(intent: IntentLabel | str) -> bool:
    """True when an intent may produce calendar drafts."""
    return IntentLabel(intent) in (IntentLabel.SCHEDULE_REQUEST, IntentLabel.MIXED)
