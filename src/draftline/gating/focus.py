"""
Focus Classifier

Scores how likely a signal is to merit attention versus bulk or marketing
noise. Calendar payloads and meeting vocabulary are a hard allow; everything
else accumulates signed weights from headers, thread shape and vocabulary.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

import structlog

from draftline.config import DEFAULT_ALLOW_DOMAINS
from draftline.models import FocusEval, Signal

logger = structlog.get_logger(__name__)


class FocusClassifier:
    """
    Deterministic focus scorer.

    The score is a clamped sum of the WEIGHTS below; ``threshold`` separates
    "focused" from "low_confidence".
    """

    WEIGHTS = {
        "small_thread": 0.25,
        "user_replied": 0.3,
        "reply_depth": 0.2,
        "allow_domain": 0.25,
        "action_vocabulary": 0.2,
        "list_id": -0.5,
        "list_unsubscribe": -0.3,
        "bulk_precedence": -0.3,
        "marketing_vocabulary": -0.25,
        "image_only": -0.15,
    }

    CALENDAR_BODY_PATTERN = r"BEGIN:VCALENDAR|BEGIN:VEVENT|\binvite\b|\.ics\b"
    MEETING_PATTERN = r"\b(reschedule|calendar|meeting|interview|call|zoom|google meet|teams)\b"
    ACTION_PATTERN = (
        r"\b(schedule|next week|availability|follow up|deadline|offer|invoice|"
        r"contract|paper|assignment|deliverable|decide|decision|approve)\b"
    )
    MARKETING_PATTERN = r"\bunsubscribe\b|\bview in browser\b|\bno-?reply\b|\bnewsletter\b|% off\b"
    PRECEDENCE_PATTERN = r"bulk|list|auto|junk"

    SMALL_THREAD_MAX = 6
    IMAGE_ONLY_MAX_CHARS = 200

    def __init__(
        self,
        allow_domains: Optional[Iterable[str]] = None,
        threshold: float = 0.6,
    ):
        domains = DEFAULT_ALLOW_DOMAINS if allow_domains is None else allow_domains
        self.allow_domains = {d.strip().lower() for d in domains if d and d.strip()}
        self.threshold = threshold

        self._calendar_body_re = re.compile(self.CALENDAR_BODY_PATTERN, re.IGNORECASE)
        self._meeting_re = re.compile(self.MEETING_PATTERN, re.IGNORECASE)
        self._action_re = re.compile(self.ACTION_PATTERN, re.IGNORECASE)
        self._marketing_re = re.compile(self.MARKETING_PATTERN, re.IGNORECASE)
        self._precedence_re = re.compile(self.PRECEDENCE_PATTERN, re.IGNORECASE)
        self._tag_re = re.compile(r"<[^>]+>")

    def evaluate(self, signal: Signal) -> FocusEval:
        """Score a signal. Never raises for missing headers or thread data."""
        headers = signal.headers
        subject = signal.title or ""
        body = signal.body or ""
        text = f"{subject} {body}"

        if (
            "text/calendar" in (headers.content_type or "").lower()
            or self._calendar_body_re.search(body)
            or self._meeting_re.search(text)
        ):
            return FocusEval(score=1.0, reason="calendar_invite", force_allow=True)

        fired = self._fired_rules(signal, text, body)
        score = sum(self.WEIGHTS[rule] for rule in fired)
        score = max(0.0, min(1.0, round(score, 4)))
        reason = "focused" if score >= self.threshold else "low_confidence"

        logger.debug(
            "focus_evaluated",
            title=subject[:50],
            score=score,
            reason=reason,
            rules=fired,
        )
        return FocusEval(score=score, reason=reason, force_allow=False)

    def _fired_rules(self, signal: Signal, text: str, body: str) -> list[str]:
        headers = signal.headers
        thread = signal.thread_metadata
        fired: list[str] = []

        if thread is not None:
            if 0 < thread.participants <= self.SMALL_THREAD_MAX:
                fired.append("small_thread")
            if thread.user_replied:
                fired.append("user_replied")
            if thread.reply_count >= 2:
                fired.append("reply_depth")

        if self.is_allowed_domain(headers.sender_domain):
            fired.append("allow_domain")
        if self.has_action_vocabulary(text):
            fired.append("action_vocabulary")

        if headers.list_id:
            fired.append("list_id")
        if headers.list_unsubscribe:
            fired.append("list_unsubscribe")
        if self._precedence_re.search(headers.precedence or ""):
            fired.append("bulk_precedence")
        if self._marketing_re.search(text):
            fired.append("marketing_vocabulary")
        if self._is_image_only(headers.content_type or "", body):
            fired.append("image_only")

        return fired

    def is_allowed_domain(self, domain: Optional[str]) -> bool:
        """True when domain, or a parent of it, is on the allow-list."""
        if not domain:
            return False
        return any(domain == d or domain.endswith("." + d) for d in self.allow_domains)

    def has_action_vocabulary(self, text: str) -> bool:
        return bool(self._action_re.search(text or ""))

    def _is_image_only(self, content_type: str, body: str) -> bool:
        if "<img" not in body.lower() and "<img" not in content_type.lower():
            return False
        visible = self._tag_re.sub(" ", body).strip()
        return len(visible) < self.IMAGE_ONLY_MAX_CHARS
