"""
Near-duplicate merging for draft candidates.

Two candidates describe the same occurrence when they start within the
merge window of their group's earliest member and either share a person's
name or have near-identical subjects once times and zones are stripped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

import structlog

from draftline.models import EventMeta, Source
from draftline.relevance.similarity import SimilarityFn, dice_coefficient

logger = structlog.get_logger(__name__)

MERGED_REASON = "merged-dup"
PERSON_REASON = "named person"

_CLOCK_RE = re.compile(r"\b\d{1,2}(:\d{2})?\s*([ap]m)?\b")
_ZONE_MERIDIEM_RE = re.compile(
    r"\b(et|est|edt|pt|pst|pdt|ct|cst|cdt|mt|mst|mdt|utc|gmt|am|pm)\b"
)
_DIGITS_RE = re.compile(r"\d+")
_NON_LETTER_RE = re.compile(r"[^a-z ]")
_SPACES_RE = re.compile(r"\s+")

_CAPITALIZED_RE = re.compile(r"\b[A-Z][a-z][A-Za-z'-]*\b")

# Capitalized words that are not people
NOT_PERSON = {
    # honorifics
    "dr", "prof", "mr", "mrs", "ms", "mx", "sir",
    # meeting vocabulary
    "zoom", "teams", "google", "meet", "webex", "slack", "call", "meeting",
    "interview", "sync", "standup", "lunch", "coffee", "dinner", "chat",
    "review", "demo", "join", "with", "re", "fwd", "invite", "invitation",
    "reminder", "the", "and", "for", "office", "hours",
    # days and months
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "mon", "tue", "tues", "wed", "thu", "thur", "thurs", "fri", "sat", "sun",
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
    "today", "tomorrow", "tonight", "noon", "midnight", "next",
}


@dataclass
class Candidate:
    """A parsed, gated signal on its way to becoming a draft event."""
    index: int  # position in the input batch
    title: str
    start: datetime
    end: datetime
    source: Source
    reasons: list[str] = field(default_factory=list)
    source_ref: Optional[str] = None
    meta: Optional[EventMeta] = None

    def add_reason(self, reason: str) -> None:
        if reason not in self.reasons:
            self.reasons.append(reason)


def normalize_subject(title: str) -> str:
    """Lower-case title with zone names, meridiems, clock times and digits removed."""
    text = (title or "").lower()
    text = _CLOCK_RE.sub(" ", text)
    text = _ZONE_MERIDIEM_RE.sub(" ", text)
    text = _DIGITS_RE.sub(" ", text)
    text = _NON_LETTER_RE.sub(" ", text)
    return _SPACES_RE.sub(" ", text).strip()


def person_tokens(title: str) -> set[str]:
    """
    Likely personal names in a title, lower-cased.

    Capitalized words other than the first word, minus honorifics, meeting
    vocabulary, and day or month names.
    """
    tokens = set()
    for match in _CAPITALIZED_RE.finditer(title or ""):
        if not title[:match.start()].strip():
            continue
        word = match.group(0).lower()
        if word not in NOT_PERSON:
            tokens.add(word)
    return tokens


def _similar_subject(
    subject: str,
    group: list[Candidate],
    similarity: SimilarityFn,
    threshold: float,
) -> bool:
    if not subject:
        return False
    for member in group:
        other = normalize_subject(member.title)
        if other and similarity(subject, other) >= threshold:
            return True
    return False


def dedupe_candidates(
    candidates: Iterable[Candidate],
    similarity: SimilarityFn = dice_coefficient,
    window_minutes: int = 45,
    threshold: float = 0.8,
) -> list[Candidate]:
    """
    Merge near-duplicate candidates.

    Candidates are taken in (start, input index) order. Each one joins the
    first group whose earliest member starts within the window and that
    shares a person token with, or has a similar subject to, any member.
    The earliest member represents the group and collects the others'
    reasons.

    Returns:
        One representative per group, sorted by (start, index)
    """
    window = timedelta(minutes=window_minutes)
    ordered = sorted(candidates, key=lambda c: (c.start, c.index))
    groups: list[list[Candidate]] = []
    via_person: list[bool] = []

    for cand in ordered:
        persons = person_tokens(cand.title)
        subject = normalize_subject(cand.title)

        for g, group in enumerate(groups):
            if cand.start - group[0].start > window:
                continue
            if any(persons & person_tokens(m.title) for m in group):
                via_person[g] = True
            elif not _similar_subject(subject, group, similarity, threshold):
                continue
            group.append(cand)
            break
        else:
            groups.append([cand])
            via_person.append(False)

    merged: list[Candidate] = []
    for group, person_match in zip(groups, via_person):
        rep = group[0]
        if len(group) > 1:
            for other in group[1:]:
                for reason in other.reasons:
                    rep.add_reason(reason)
            rep.add_reason(MERGED_REASON)
            if person_match:
                rep.add_reason(PERSON_REASON)
            logger.debug(
                "candidates_merged",
                title=rep.title[:50],
                merged=[m.index for m in group[1:]],
                via_person=person_match,
            )
        merged.append(rep)
    return merged
