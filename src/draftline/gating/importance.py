"""
Importance Scorer

Simple heuristic over recency, contact, category and keywords, scored 0..100.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

Category = Literal["people", "recruiters", "receipts", "promotions", "other"]
Badge = Literal["High", "Medium", "Low"]

CATEGORY_BOOST = {
    "people": 15,
    "receipts": 5,
    "promotions": -10,
}


class ImportanceScorer:
    """Scores how important a message is, independent of its time phrase."""

    RECENCY_MAX = 50
    KNOWN_CONTACT_BOOST = 20
    KEYWORD_BOOST = 10

    def score(
        self,
        timestamp: datetime,
        now: Optional[datetime] = None,
        is_known_contact: bool = False,
        category: Optional[Category] = None,
        has_keywords: bool = False,
    ) -> int:
        """
        Score a message.

        Args:
            timestamp: When the message was received
            now: Reference instant (defaults to the current UTC time)
            is_known_contact: Sender is a known correspondent
            category: Mailbox category, if known
            has_keywords: Action or decision language present

        Returns:
            Integer score in [0, 100]
        """
        if now is None:
            now = datetime.now(timezone.utc)
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=now.tzinfo or timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timestamp.tzinfo)

        age_days = max(0.0, (now - timestamp).total_seconds() / 86400)
        total = max(0.0, self.RECENCY_MAX - age_days)

        if is_known_contact:
            total += self.KNOWN_CONTACT_BOOST
        total += CATEGORY_BOOST.get(category or "other", 0)
        if has_keywords:
            total += self.KEYWORD_BOOST

        return max(0, min(100, round(total)))


def importance_badge(score: int) -> Badge:
    if score >= 70:
        return "High"
    if score >= 40:
        return "Medium"
    return "Low"
